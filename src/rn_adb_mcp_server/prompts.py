"""Prompt templates offered to MCP clients."""

from typing import Callable, Dict, List, Optional

from mcp.types import GetPromptResult, Prompt, PromptArgument, PromptMessage, TextContent

from .adb.validators import validate_host, validate_package_name
from .errors import ValidationError
from .services.advisory import PERFORMANCE_SCENARIOS

PROMPTS: List[Prompt] = [
    Prompt(
        name="debug_app_crash",
        description="Walk through diagnosing a crashing React Native Android app",
        arguments=[
            PromptArgument(name="package_name", description="Package name of the crashing app", required=True),
            PromptArgument(name="error_message", description="Error text seen in the app, if any", required=False),
        ],
    ),
    Prompt(
        name="setup_wireless_debugging",
        description="Connect to an Android device over Wi-Fi and point it at the Metro bundler",
        arguments=[
            PromptArgument(name="host", description="IP address of the device", required=True),
        ],
    ),
    Prompt(
        name="optimize_performance",
        description="Profile and optimize a React Native performance scenario",
        arguments=[
            PromptArgument(
                name="scenario",
                description=f"One of: {', '.join(PERFORMANCE_SCENARIOS)}",
                required=True,
            ),
        ],
    ),
]


def _require(arguments: Dict[str, str], name: str) -> str:
    value = arguments.get(name)
    if not value:
        raise ValidationError(f"Missing required prompt argument: {name}")
    return value


def _debug_app_crash(arguments: Dict[str, str]) -> str:
    package_name = validate_package_name(_require(arguments, "package_name"))
    text = (
        f"The React Native app {package_name} is crashing on an Android device.\n\n"
        "1. Use list_devices to pick the target device.\n"
        f"2. Use restart_app with package_name={package_name} to reproduce the crash.\n"
        "3. Use read_logcat with priority E and look for FATAL EXCEPTION, ReactNativeJS "
        "and AndroidRuntime entries.\n"
        f"4. Use get_package_info for {package_name} to confirm the installed version.\n"
        "5. Call get_debugging_guidance with issue_type=crash and platform=android.\n"
        "6. Summarize the root cause and propose a fix."
    )
    error_message = arguments.get("error_message")
    if error_message:
        text += f"\n\nThe user reported this error:\n{error_message}"
    return text


def _setup_wireless_debugging(arguments: Dict[str, str]) -> str:
    host = validate_host(_require(arguments, "host"))
    return (
        f"Set up wireless debugging with the Android device at {host}.\n\n"
        "1. With the device on USB, run `adb tcpip 5555` through run_shell_command if it "
        "is not already listening.\n"
        f"2. Use connect_device with host={host} and port=5555.\n"
        "3. Use list_devices to confirm the device shows as online.\n"
        "4. Use reverse_port with remote_port=8081 so the app can reach the Metro bundler.\n"
        "5. Use reload_react_native to load the bundle over the new connection."
    )


def _optimize_performance(arguments: Dict[str, str]) -> str:
    scenario = _require(arguments, "scenario")
    if scenario not in PERFORMANCE_SCENARIOS:
        raise ValidationError(
            f"Unknown performance scenario: {scenario}",
            {"allowed": list(PERFORMANCE_SCENARIOS)},
        )
    return (
        f"Help me optimize {scenario.replace('_', ' ')} in my React Native app.\n\n"
        f"1. Call get_performance_optimizations with scenario={scenario}.\n"
        "2. Run analyze_performance on the project to find matching issues.\n"
        "3. If a device is connected, measure with get_frame_stats and get_memory_info "
        "before and after changes.\n"
        "4. Propose concrete code changes ordered by impact."
    )


RENDERERS: Dict[str, Callable[[Dict[str, str]], str]] = {
    "debug_app_crash": _debug_app_crash,
    "setup_wireless_debugging": _setup_wireless_debugging,
    "optimize_performance": _optimize_performance,
}


def list_prompts() -> List[Prompt]:
    return list(PROMPTS)


def get_prompt(name: str, arguments: Optional[Dict[str, str]] = None) -> GetPromptResult:
    renderer = RENDERERS.get(name)
    if renderer is None:
        raise ValidationError(f"Unknown prompt: {name}")
    prompt = next(p for p in PROMPTS if p.name == name)
    return GetPromptResult(
        description=prompt.description,
        messages=[
            PromptMessage(role="user", content=TextContent(type="text", text=renderer(arguments or {}))),
        ],
    )
