"""Port forwarding between host and device (Metro bundler, debuggers)."""

from typing import Any, Dict, List, Optional

from pydantic import Field

from ..adb.validators import validate_port
from .base import DeviceInput, ToolContext, resolve_target_device, tool

METRO_PORT = 8081


class ForwardPortInput(DeviceInput):
    local_port: int = Field(description="Port on the host machine")
    remote_port: int = Field(description="Port on the device")


class ReversePortInput(DeviceInput):
    remote_port: int = Field(default=METRO_PORT, description="Port on the device (default: Metro 8081)")
    local_port: int = Field(default=METRO_PORT, description="Port on the host machine (default: Metro 8081)")


class RemovePortForwardInput(DeviceInput):
    local_port: Optional[int] = Field(default=None, description="Port to remove; every rule when omitted")
    reverse: bool = Field(default=False, description="Remove reverse rules instead of forward rules")


def parse_forward_list(output: str) -> List[Dict[str, str]]:
    """Parse ``adb forward --list`` / ``adb reverse --list`` lines."""
    rules = []
    for line in output.splitlines():
        parts = line.split()
        if len(parts) >= 3:
            rules.append({"device_id": parts[0], "local": parts[1], "remote": parts[2]})
    return rules


@tool(
    name="forward_port",
    description="Forwards a host port to a device port (adb forward)",
    input_model=ForwardPortInput,
    action="forward port",
    category="network",
)
async def forward_port(ctx: ToolContext, params: ForwardPortInput) -> Dict[str, Any]:
    local_port = validate_port(params.local_port)
    remote_port = validate_port(params.remote_port)
    device_id = await resolve_target_device(ctx, params.device_id)

    await ctx.adb.execute(["forward", f"tcp:{local_port}", f"tcp:{remote_port}"], device_id=device_id)
    return {
        "success": True,
        "device_id": device_id,
        "local_port": local_port,
        "remote_port": remote_port,
        "message": f"Forwarding localhost:{local_port} to device port {remote_port}",
    }


@tool(
    name="reverse_port",
    description="Exposes a host port to the device (adb reverse), e.g. the Metro bundler on 8081",
    input_model=ReversePortInput,
    action="reverse port",
    category="network",
)
async def reverse_port(ctx: ToolContext, params: ReversePortInput) -> Dict[str, Any]:
    remote_port = validate_port(params.remote_port)
    local_port = validate_port(params.local_port)
    device_id = await resolve_target_device(ctx, params.device_id)

    await ctx.adb.execute(["reverse", f"tcp:{remote_port}", f"tcp:{local_port}"], device_id=device_id)
    return {
        "success": True,
        "device_id": device_id,
        "remote_port": remote_port,
        "local_port": local_port,
        "message": f"Device port {remote_port} now reaches localhost:{local_port}",
    }


@tool(
    name="list_port_forwards",
    description="Lists active forward and reverse port rules",
    input_model=DeviceInput,
    action="list port forwards",
    category="network",
)
async def list_port_forwards(ctx: ToolContext, params: DeviceInput) -> Dict[str, Any]:
    device_id = await resolve_target_device(ctx, params.device_id)

    forwards = await ctx.adb.execute(["forward", "--list"], device_id=device_id)
    reverses = await ctx.adb.execute(["reverse", "--list"], device_id=device_id, throw_on_error=False)

    forward_rules = parse_forward_list(forwards.stdout)
    reverse_rules = parse_forward_list(reverses.stdout) if reverses.success else []
    return {
        "success": True,
        "device_id": device_id,
        "forwards": forward_rules,
        "reverses": reverse_rules,
        "summary": f"{len(forward_rules)} forward rule(s), {len(reverse_rules)} reverse rule(s)",
    }


@tool(
    name="remove_port_forward",
    description="Removes one forward/reverse rule, or all of them when no port is given",
    input_model=RemovePortForwardInput,
    action="remove port forward",
    category="network",
)
async def remove_port_forward(ctx: ToolContext, params: RemovePortForwardInput) -> Dict[str, Any]:
    device_id = await resolve_target_device(ctx, params.device_id)
    command = "reverse" if params.reverse else "forward"

    if params.local_port is None:
        args = [command, "--remove-all"]
        target = f"all {command} rules"
    else:
        port = validate_port(params.local_port)
        args = [command, "--remove", f"tcp:{port}"]
        target = f"{command} rule for tcp:{port}"

    await ctx.adb.execute(args, device_id=device_id)
    return {"success": True, "device_id": device_id, "message": f"Removed {target}"}
