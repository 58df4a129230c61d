"""Logcat and screenshot tools."""

import asyncio
import os
import re
import tempfile
import time
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

from loguru import logger
from PIL import Image
from pydantic import Field

from ..adb.types import LogcatEntry
from ..errors import ADBError, ValidationError
from ..paths import is_directory_writable, resolve_path
from .base import DeviceInput, ToolContext, resolve_target_device, tool

LOGCAT_LINE_RE = re.compile(
    r"^(\d{2}-\d{2}\s+\d{2}:\d{2}:\d{2}\.\d+)\s+(\d+)\s+(\d+)\s+([VDIWEFS])\s+(.*?)\s*:\s(.*)$"
)
LOGCAT_TAG_RE = re.compile(r"^[A-Za-z0-9_.\-]+$")
STREAM_SHUTDOWN_SECONDS = 5

Priority = Literal["V", "D", "I", "W", "E", "F", "S"]
ImageFormat = Literal["png", "jpg", "jpeg", "webp", "bmp", "gif"]


class ReadLogcatInput(DeviceInput):
    priority: Optional[Priority] = Field(default=None, description="Minimum priority (V, D, I, W, E, F, S)")
    tags: List[str] = Field(default_factory=list, description="Only show these tags, e.g. ReactNativeJS")
    format: Literal["threadtime", "brief", "time", "tag", "raw"] = Field(
        default="threadtime", description="logcat output format",
    )
    max_count: int = Field(default=500, ge=1, le=10000, description="Number of most recent lines to read")
    grep: Optional[str] = Field(default=None, description="Case-insensitive text the line must contain")
    clear_after: bool = Field(default=False, description="Clear the log buffer after reading")


class WatchLogcatInput(DeviceInput):
    duration_seconds: int = Field(default=10, ge=1, le=60, description="How long to collect output")
    max_lines: int = Field(default=500, ge=1, le=5000, description="Stop early after this many lines")
    priority: Optional[Priority] = Field(default=None, description="Minimum priority")
    tags: List[str] = Field(default_factory=list, description="Only show these tags")


class ScreenshotInput(DeviceInput):
    output_path: str = Field(description="Path where to save the screenshot")
    format: ImageFormat = Field(default="png", description="Image format (png, jpg, webp, etc.). Default is png")


def build_filter_spec(priority: Optional[str], tags: List[str]) -> List[str]:
    """Translate tag/priority options into logcat filterspecs."""
    for tag in tags:
        if not LOGCAT_TAG_RE.match(tag):
            raise ValidationError(f"Invalid logcat tag: {tag}", {"tag": tag})
    if tags:
        return [f"{tag}:{priority or 'V'}" for tag in tags] + ["*:S"]
    if priority:
        return [f"*:{priority}"]
    return []


def parse_logcat(output: str) -> List[LogcatEntry]:
    """Parse ``threadtime`` lines; anything else is skipped."""
    entries = []
    for line in output.splitlines():
        match = LOGCAT_LINE_RE.match(line.strip())
        if match:
            timestamp, pid, tid, level, tag, message = match.groups()
            entries.append(LogcatEntry(timestamp, int(pid), int(tid), level, tag, message))
    return entries


@tool(
    name="read_logcat",
    description="Reads recent logcat output, optionally filtered by tag, priority or text",
    input_model=ReadLogcatInput,
    action="read logcat",
    category="debug",
)
async def read_logcat(ctx: ToolContext, params: ReadLogcatInput) -> Dict[str, Any]:
    device_id = await resolve_target_device(ctx, params.device_id)
    args = ["logcat", "-d", "-v", params.format, "-t", str(params.max_count)]
    args += build_filter_spec(params.priority, params.tags)

    result = await ctx.adb.execute(args, device_id=device_id)
    lines = [line for line in result.stdout.splitlines() if line.strip()]
    if params.grep:
        needle = params.grep.lower()
        lines = [line for line in lines if needle in line.lower()]

    if params.clear_after:
        await ctx.adb.execute(["logcat", "-c"], device_id=device_id)

    response: Dict[str, Any] = {
        "success": True,
        "device_id": device_id,
        "line_count": len(lines),
        "lines": lines,
        "summary": f"Read {len(lines)} logcat line(s) from {device_id}",
    }
    if params.format == "threadtime":
        entries = parse_logcat("\n".join(lines))
        response["errors"] = [e.to_dict() for e in entries if e.level in ("E", "F")]
    return response


@tool(
    name="watch_logcat",
    description="Streams live logcat output for a few seconds and returns what was captured",
    input_model=WatchLogcatInput,
    action="watch logcat",
    category="debug",
)
async def watch_logcat(ctx: ToolContext, params: WatchLogcatInput) -> Dict[str, Any]:
    device_id = await resolve_target_device(ctx, params.device_id)
    filter_spec = build_filter_spec(params.priority, params.tags)

    lines: List[str] = []
    enough = asyncio.Event()

    def on_line(line: str) -> None:
        if len(lines) < params.max_lines:
            lines.append(line)
        if len(lines) >= params.max_lines:
            enough.set()

    handle = await ctx.adb.execute_stream(
        ["logcat", "-v", "threadtime", "-T", "1", *filter_spec], on_line, device_id=device_id,
    )
    try:
        await asyncio.wait_for(enough.wait(), params.duration_seconds)
    except asyncio.TimeoutError:
        pass
    finally:
        handle.stop()
        try:
            await asyncio.wait_for(handle.wait(), STREAM_SHUTDOWN_SECONDS)
        except asyncio.TimeoutError:
            if handle.running:
                handle.process.kill()

    process_errors = [line for line in lines if line.startswith("PROCESS_ERROR: ")]
    if process_errors and len(process_errors) == len(lines):
        raise ADBError("Failed to stream logcat", {"errors": process_errors})

    return {
        "success": True,
        "device_id": device_id,
        "line_count": len(lines),
        "truncated": len(lines) >= params.max_lines,
        "lines": lines,
        "summary": f"Captured {len(lines)} line(s) in up to {params.duration_seconds}s",
    }


@tool(
    name="clear_logcat",
    description="Clears the device log buffer",
    input_model=DeviceInput,
    action="clear logcat",
    category="debug",
)
async def clear_logcat(ctx: ToolContext, params: DeviceInput) -> Dict[str, Any]:
    device_id = await resolve_target_device(ctx, params.device_id)
    await ctx.adb.execute(["logcat", "-c"], device_id=device_id)
    return {"success": True, "device_id": device_id, "message": "Logcat buffer cleared"}


def convert_image_format(input_path: str, output_path: str, format_name: str = "png") -> None:
    """Convert image to the given format using PIL."""
    normalized_format = format_name.lower()
    os.makedirs(os.path.dirname(output_path), exist_ok=True)
    try:
        with Image.open(input_path) as img:
            pil_format = "JPEG" if normalized_format in ("jpg", "jpeg") else normalized_format.upper()
            if pil_format == "JPEG" and img.mode not in ("RGB", "L"):
                img = img.convert("RGB")
            img.save(output_path, format=pil_format)
    except OSError as e:
        raise ADBError(f"Failed to convert image: {e}", {"input_path": input_path, "format": format_name}) from e


@tool(
    name="take_screenshot",
    description="Takes a screenshot and saves it to the local system",
    input_model=ScreenshotInput,
    action="take screenshot",
    category="debug",
)
async def take_screenshot(ctx: ToolContext, params: ScreenshotInput) -> Dict[str, Any]:
    device_id = await resolve_target_device(ctx, params.device_id)
    format_name = params.format.lower()

    output_path = Path(resolve_path(params.output_path))
    if output_path.suffix.lower() != f".{format_name}":
        output_path = output_path.with_suffix(f".{format_name}")

    output_dir = str(output_path.parent)
    if not is_directory_writable(output_dir):
        raise ADBError(
            f"Directory is not writable: {output_dir}. Try using an absolute path or a path in your home directory.",
            {"output_path": str(output_path)},
        )

    remote_path = f"/sdcard/screenshot-{int(time.time() * 1000)}.png"
    if format_name == "png":
        local_png = str(output_path)
    else:
        local_png = os.path.join(tempfile.gettempdir(), f"adb-screenshot-{int(time.time() * 1000)}.png")

    try:
        await ctx.adb.execute(["shell", "screencap", "-p", remote_path], device_id=device_id)
        await ctx.adb.execute(["pull", remote_path, local_png], device_id=device_id)
    finally:
        try:
            await ctx.adb.execute(["shell", "rm", "-f", remote_path], device_id=device_id, throw_on_error=False)
        except ADBError as exc:
            logger.debug("could not remove {} from {}: {}", remote_path, device_id, exc)

    if format_name != "png":
        try:
            convert_image_format(local_png, str(output_path), format_name)
        finally:
            if os.path.exists(local_png):
                os.unlink(local_png)

    return {
        "success": True,
        "device_id": device_id,
        "output_path": str(output_path),
        "format": format_name,
        "message": f"Screenshot saved to: {output_path} in {format_name} format",
    }
