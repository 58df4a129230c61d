"""MCP tools. Importing this package registers every tool in ``TOOLS``."""

from . import analysis, app, debug, device, file, network, performance, shell  # noqa: F401
from .base import TOOLS, ToolContext, ToolSpec, tool

__all__ = ["TOOLS", "ToolContext", "ToolSpec", "tool"]
