#!/usr/bin/env python3
"""React Native ADB MCP Server."""

import asyncio
import json
from typing import Any, Dict, Iterable, List, Optional

from loguru import logger
from mcp.server import Server
from mcp.server.lowlevel.helper_types import ReadResourceContents
from mcp.server.stdio import stdio_server
from mcp.types import GetPromptResult, Prompt, Resource, TextContent, Tool

from . import __version__, prompts, resources
from .config import Settings, get_settings
from .errors import MCPServerError, ValidationError
from .log import configure_logging
from .performance import track
from .tools import TOOLS, ToolContext


def format_error(error: MCPServerError) -> str:
    """Render an error the way every tool reports failures."""
    prefix = f"Error while trying to {error.context}" if error.context else "Error"
    text = f"{prefix}: {error.message}"
    if error.details:
        text += "\n\nDetails:\n" + json.dumps(error.details, indent=2, default=str)
    return text


def format_result(result: Any) -> str:
    if isinstance(result, str):
        return result
    return json.dumps(result, indent=2, default=str)


class RNAdbMCPServer:
    """React Native ADB MCP Server implementation."""

    def __init__(self, settings: Optional[Settings] = None, ctx: Optional[ToolContext] = None):
        """Initialize the server and register MCP handlers."""
        self.settings = settings or get_settings()
        self.ctx = ctx or ToolContext.create(self.settings)
        self.server = Server(self.settings.server_name, version=__version__)

        self.server.list_tools()(self.list_tools)
        self.server.call_tool()(self.call_tool)
        self.server.list_prompts()(self.list_prompts)
        self.server.get_prompt()(self.get_prompt)
        self.server.list_resources()(self.list_resources)
        self.server.read_resource()(self.read_resource)

    async def list_tools(self) -> List[Tool]:
        """List available tools."""
        return [
            Tool(name=spec.name, description=spec.description, inputSchema=spec.input_schema())
            for spec in TOOLS.values()
        ]

    async def call_tool(self, name: str, arguments: Optional[Dict[str, Any]]) -> List[TextContent]:
        """Call a tool with the given arguments."""
        logger.info("tool call: {}", name)
        try:
            spec = TOOLS.get(name)
            if spec is None:
                raise ValidationError(f"Unknown tool: {name}", {"available": sorted(TOOLS)})
            with track(f"tool.{name}"):
                result = await spec.run(self.ctx, arguments)
        except MCPServerError as e:
            logger.warning("tool {} failed: {} {}", name, e.code, e.message)
            return [TextContent(type="text", text=format_error(e))]
        return [TextContent(type="text", text=format_result(result))]

    async def list_prompts(self) -> List[Prompt]:
        return prompts.list_prompts()

    async def get_prompt(self, name: str, arguments: Optional[Dict[str, str]]) -> GetPromptResult:
        return prompts.get_prompt(name, arguments)

    async def list_resources(self) -> List[Resource]:
        return resources.list_resources()

    async def read_resource(self, uri: Any) -> Iterable[ReadResourceContents]:
        return await resources.read_resource(self.ctx, str(uri))

    async def run(self):
        """Run the server over stdio."""
        logger.info("starting {} {} with {} tools", self.settings.server_name, __version__, len(TOOLS))
        async with stdio_server() as (read_stream, write_stream):
            await self.server.run(
                read_stream,
                write_stream,
                self.server.create_initialization_options(),
            )


def main():
    """Main entry point."""
    settings = get_settings()
    configure_logging(settings)
    server = RNAdbMCPServer(settings)
    asyncio.run(server.run())


if __name__ == "__main__":
    main()
