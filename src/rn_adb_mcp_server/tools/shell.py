"""Device shell and input tools."""

import asyncio
from shlex import quote
from typing import Any, Dict, Literal, Optional

from pydantic import Field

from ..adb.validators import validate_shell_command, validate_timeout
from ..errors import ValidationError
from .base import DeviceInput, ToolContext, resolve_target_device, tool

KEYCODES = {
    "home": "KEYCODE_HOME",
    "back": "KEYCODE_BACK",
    "menu": "KEYCODE_MENU",
    "dev_menu": "KEYCODE_MENU",
    "enter": "KEYCODE_ENTER",
    "delete": "KEYCODE_DEL",
    "tab": "KEYCODE_TAB",
    "escape": "KEYCODE_ESCAPE",
    "power": "KEYCODE_POWER",
    "volume_up": "KEYCODE_VOLUME_UP",
    "volume_down": "KEYCODE_VOLUME_DOWN",
    "app_switch": "KEYCODE_APP_SWITCH",
    "dpad_up": "KEYCODE_DPAD_UP",
    "dpad_down": "KEYCODE_DPAD_DOWN",
    "dpad_left": "KEYCODE_DPAD_LEFT",
    "dpad_right": "KEYCODE_DPAD_RIGHT",
}

KeyName = Literal[
    "home", "back", "menu", "dev_menu", "enter", "delete", "tab", "escape", "power",
    "volume_up", "volume_down", "app_switch", "dpad_up", "dpad_down", "dpad_left", "dpad_right",
]

MAX_TEXT_LENGTH = 1000


class ShellCommandInput(DeviceInput):
    command: str = Field(description="The shell command to execute on the device")
    timeout: Optional[int] = Field(default=None, description="Timeout in milliseconds (default: 30000)")


class SendTextInput(DeviceInput):
    text: str = Field(description="Text to type into the focused field")


class PressKeyInput(DeviceInput):
    key: KeyName = Field(description="Key to press")


@tool(
    name="run_shell_command",
    description="Executes a shell command on a connected Android device",
    input_model=ShellCommandInput,
    action="run shell command",
    category="shell",
)
async def run_shell_command(ctx: ToolContext, params: ShellCommandInput) -> Dict[str, Any]:
    command = validate_shell_command(params.command, ctx.settings.shell_allowed_commands)
    timeout = params.timeout
    if timeout is not None:
        timeout = validate_timeout(timeout, ctx.settings.max_timeout_ms)
    device_id = await resolve_target_device(ctx, params.device_id)

    result = await ctx.adb.execute(["shell", command], device_id=device_id, timeout=timeout, throw_on_error=False)
    return {
        "success": result.success,
        "device_id": device_id,
        "command": command,
        "stdout": result.stdout,
        "stderr": result.stderr,
        "exit_code": result.exit_code,
        "duration_ms": result.duration_ms,
    }


@tool(
    name="send_text",
    description="Types text into the focused input field on the device",
    input_model=SendTextInput,
    action="send text",
    category="shell",
)
async def send_text(ctx: ToolContext, params: SendTextInput) -> Dict[str, Any]:
    if not params.text:
        raise ValidationError("Text cannot be empty", {"text": params.text})
    if len(params.text) > MAX_TEXT_LENGTH:
        raise ValidationError(
            f"Text cannot exceed {MAX_TEXT_LENGTH} characters",
            {"length": len(params.text)},
        )
    device_id = await resolve_target_device(ctx, params.device_id)

    # input text treats %s as a space; adb shell joins argv into one device sh line
    await ctx.adb.execute(
        ["shell", "input", "text", quote(params.text.replace(" ", "%s"))], device_id=device_id,
    )
    return {
        "success": True,
        "device_id": device_id,
        "message": f"Sent {len(params.text)} character(s)",
    }


@tool(
    name="press_key",
    description="Sends a key event such as home, back or the React Native dev menu",
    input_model=PressKeyInput,
    action="press key",
    category="shell",
)
async def press_key(ctx: ToolContext, params: PressKeyInput) -> Dict[str, Any]:
    device_id = await resolve_target_device(ctx, params.device_id)
    keycode = KEYCODES[params.key]
    await ctx.adb.execute(["shell", "input", "keyevent", keycode], device_id=device_id)
    return {"success": True, "device_id": device_id, "key": params.key, "message": f"Pressed {keycode}"}


@tool(
    name="reload_react_native",
    description="Reloads the JavaScript bundle of a React Native debug build (double R)",
    input_model=DeviceInput,
    action="reload React Native app",
    category="shell",
)
async def reload_react_native(ctx: ToolContext, params: DeviceInput) -> Dict[str, Any]:
    device_id = await resolve_target_device(ctx, params.device_id)
    await ctx.adb.execute(["shell", "input", "keyevent", "KEYCODE_R"], device_id=device_id)
    await asyncio.sleep(0.1)
    await ctx.adb.execute(["shell", "input", "keyevent", "KEYCODE_R"], device_id=device_id)
    return {"success": True, "device_id": device_id, "message": "Reload requested"}
