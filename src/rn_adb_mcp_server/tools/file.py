"""File transfer between the host and a device."""

import os
from typing import Any, Dict

from pydantic import Field

from ..adb.validators import validate_file_path
from ..errors import ADBError
from ..paths import is_directory_writable, resolve_path
from .base import DeviceInput, ToolContext, resolve_target_device, tool

TRANSFER_TIMEOUT_MS = 120000


class PushFileInput(DeviceInput):
    local_path: str = Field(description="Path to the local file or directory")
    remote_path: str = Field(description="Path on the device where to push the file(s)")


class PullFileInput(DeviceInput):
    remote_path: str = Field(description="Path to the file or directory on the device")
    local_path: str = Field(description="Path where to save the file(s) locally")


@tool(
    name="push_file",
    description="Pushes files from the local system to a connected Android device",
    input_model=PushFileInput,
    action="push file to device",
    category="file",
)
async def push_file(ctx: ToolContext, params: PushFileInput) -> Dict[str, Any]:
    remote_path = validate_file_path(params.remote_path)
    local_path = resolve_path(validate_file_path(params.local_path))
    if not os.path.exists(local_path):
        raise ADBError(f"Local file does not exist: {local_path}", {"local_path": local_path})

    device_id = await resolve_target_device(ctx, params.device_id)
    result = await ctx.adb.execute(["push", local_path, remote_path], device_id=device_id, timeout=TRANSFER_TIMEOUT_MS)
    return {
        "success": True,
        "device_id": device_id,
        "local_path": local_path,
        "remote_path": remote_path,
        "message": f"File pushed successfully to: {remote_path}",
        "output": result.stdout,
    }


@tool(
    name="pull_file",
    description="Pulls files from a connected Android device to the local system",
    input_model=PullFileInput,
    action="pull file from device",
    category="file",
)
async def pull_file(ctx: ToolContext, params: PullFileInput) -> Dict[str, Any]:
    remote_path = validate_file_path(params.remote_path)
    local_path = resolve_path(validate_file_path(params.local_path))

    local_dir = os.path.dirname(local_path)
    if not is_directory_writable(local_dir):
        raise ADBError(
            f"Directory is not writable: {local_dir}. Try using an absolute path or a path in your home directory.",
            {"local_path": local_path},
        )

    device_id = await resolve_target_device(ctx, params.device_id)
    result = await ctx.adb.execute(["pull", remote_path, local_path], device_id=device_id, timeout=TRANSFER_TIMEOUT_MS)
    return {
        "success": True,
        "device_id": device_id,
        "local_path": local_path,
        "remote_path": remote_path,
        "message": f"File pulled successfully to: {local_path}",
        "output": result.stdout,
    }
