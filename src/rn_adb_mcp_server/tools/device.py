"""Device discovery and wireless connection tools."""

import asyncio
import re
from typing import Any, Dict, Optional

from loguru import logger
from pydantic import BaseModel, Field

from ..adb.types import DeviceInfo
from ..adb.validators import validate_host, validate_port
from ..errors import ADBError
from .base import DeviceInput, ToolContext, resolve_target_device, tool

SCREEN_SIZE_RE = re.compile(r"Physical size: (\d+x\d+)")
SCREEN_DENSITY_RE = re.compile(r"Physical density: (\d+)")
BATTERY_LEVEL_RE = re.compile(r"level: (\d+)")


class ListDevicesInput(BaseModel):
    include_offline: bool = Field(default=False, description="Include offline and unauthorized devices")
    show_details: bool = Field(default=False, description="Query model, Android version and other properties")


class ConnectDeviceInput(BaseModel):
    host: str = Field(description="IP address or hostname of the device (e.g., 192.168.1.100)")
    port: int = Field(default=5555, ge=1, le=65535, description="ADB port (default: 5555)")
    timeout: int = Field(default=10000, ge=1000, le=60000, description="Connection timeout in milliseconds")


class DisconnectDeviceInput(BaseModel):
    host: Optional[str] = Field(default=None, description="Host to disconnect; all TCP/IP devices when omitted")
    port: int = Field(default=5555, ge=1, le=65535, description="ADB port (default: 5555)")


class WaitForDeviceInput(DeviceInput):
    timeout: int = Field(default=30000, ge=1000, le=300000, description="How long to wait in milliseconds")


def _device_counts(devices) -> Dict[str, Any]:
    online = sum(1 for d in devices if d.state == "device")
    offline = sum(1 for d in devices if d.state in ("offline", "unauthorized"))
    return {
        "devices": [d.to_dict() for d in devices],
        "total": len(devices),
        "online": online,
        "offline": offline,
        "summary": f"Found {len(devices)} device(s): {online} online, {offline} offline",
    }


@tool(
    name="list_devices",
    description="Lists connected Android devices and emulators with their connection state",
    input_model=ListDevicesInput,
    action="list ADB devices",
    category="device",
)
async def list_devices(ctx: ToolContext, params: ListDevicesInput) -> Dict[str, Any]:
    client = ctx.adb
    devices = await client.list_devices(params.include_offline)

    if params.show_details:
        async def detailed(device: DeviceInfo) -> DeviceInfo:
            if not device.is_online:
                return device
            try:
                return await client.get_device_info(device.id)
            except ADBError as exc:
                logger.debug("falling back to basic info for {}: {}", device.id, exc)
                return device

        devices = list(await asyncio.gather(*(detailed(d) for d in devices)))

    return _device_counts(devices)


async def _probe(ctx: ToolContext, device_id: str, args, pattern: Optional[re.Pattern] = None) -> Optional[str]:
    """Run an optional informational command; None when it fails or does not match."""
    try:
        result = await ctx.adb.execute(args, device_id=device_id, throw_on_error=False)
    except ADBError as exc:
        logger.debug("probe {} failed: {}", args, exc)
        return None
    if not result.success:
        return None
    if pattern is None:
        return result.stdout.strip()
    match = pattern.search(result.stdout)
    return match.group(1) if match else None


@tool(
    name="get_device_info",
    description="Shows model, Android version, screen, battery and hardware details of a device",
    input_model=DeviceInput,
    action="get device information",
    category="device",
)
async def get_device_info(ctx: ToolContext, params: DeviceInput) -> Dict[str, Any]:
    device_id = await resolve_target_device(ctx, params.device_id)
    info = await ctx.adb.get_device_info(device_id)

    extra: Dict[str, Any] = {}
    if info.api_level is not None:
        extra["sdk_version"] = str(info.api_level)
    resolution = await _probe(ctx, device_id, ["shell", "wm", "size"], SCREEN_SIZE_RE)
    if resolution:
        extra["screen_resolution"] = resolution
    density = await _probe(ctx, device_id, ["shell", "wm", "density"], SCREEN_DENSITY_RE)
    if density:
        extra["screen_density"] = density
    battery = await _probe(ctx, device_id, ["shell", "dumpsys", "battery"], BATTERY_LEVEL_RE)
    if battery:
        extra["battery_level"] = f"{battery}%"

    return {
        **info.to_dict(),
        **extra,
        "summary": f"Device: {info.model or info.id} ({info.android_version or 'Unknown'}) - {info.state}",
    }


@tool(
    name="connect_device",
    description="Connects to an Android device over TCP/IP for wireless debugging",
    input_model=ConnectDeviceInput,
    action="connect to device over TCP/IP",
    category="device",
)
async def connect_device(ctx: ToolContext, params: ConnectDeviceInput) -> Dict[str, Any]:
    host = validate_host(params.host)
    port = validate_port(params.port)
    connection_string = f"{host}:{port}"

    result = await ctx.adb.execute(["connect", connection_string], timeout=params.timeout, throw_on_error=False)
    output = result.stdout.lower()

    # "already connected" contains "connected to", so it is checked first
    if "already connected" in output:
        return {
            "success": True,
            "device_id": connection_string,
            "message": f"Already connected to {connection_string}",
            "connection_string": connection_string,
            "was_already_connected": True,
        }
    if "connected to" in output:
        return {
            "success": True,
            "device_id": connection_string,
            "message": f"Successfully connected to {connection_string}",
            "connection_string": connection_string,
            "instructions": [
                "Device is now connected wirelessly",
                "You can disconnect USB cable if still connected",
                f"To disconnect: use the disconnect_device tool targeting {connection_string}",
            ],
        }
    if "failed to connect" in output or "cannot connect" in output:
        raise ADBError(
            f"Failed to connect to {connection_string}. Ensure device has wireless debugging enabled",
            {
                "host": host,
                "port": port,
                "error_output": result.stdout or result.stderr,
                "troubleshooting": [
                    "1. Ensure device is on the same network",
                    "2. Enable TCP/IP mode on device: adb tcpip 5555 (requires USB first)",
                    "3. Check firewall settings",
                    "4. Verify the IP address is correct",
                    "5. Ensure port 5555 is not blocked",
                ],
            },
        )

    raise ADBError(
        "Unexpected response from ADB connect command",
        {"host": host, "port": port, "response": result.stdout or result.stderr},
    )


@tool(
    name="disconnect_device",
    description="Disconnects a TCP/IP device, or every wireless device when no host is given",
    input_model=DisconnectDeviceInput,
    action="disconnect device",
    category="device",
)
async def disconnect_device(ctx: ToolContext, params: DisconnectDeviceInput) -> Dict[str, Any]:
    args = ["disconnect"]
    target = "all devices"
    if params.host:
        target = f"{validate_host(params.host)}:{validate_port(params.port)}"
        args.append(target)

    result = await ctx.adb.execute(args, throw_on_error=False)
    output = (result.stdout or result.stderr).lower()
    if not result.success or "error" in output or "no such device" in output:
        raise ADBError(
            f"Failed to disconnect {target}",
            {"response": result.stdout or result.stderr},
        )
    return {
        "success": True,
        "message": f"Disconnected {target}",
        "output": result.stdout,
    }


@tool(
    name="wait_for_device",
    description="Waits until a device is reachable by adb",
    input_model=WaitForDeviceInput,
    action="wait for device",
    category="device",
)
async def wait_for_device(ctx: ToolContext, params: WaitForDeviceInput) -> Dict[str, Any]:
    ready = await ctx.adb.wait_for_device(params.device_id, params.timeout)
    target = params.device_id or "any device"
    return {
        "success": ready,
        "message": f"{target} is ready" if ready else f"Timed out after {params.timeout}ms waiting for {target}",
    }
