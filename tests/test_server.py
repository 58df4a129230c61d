"""Tests for the MCP server wiring and error rendering."""

import json

import pytest

from rn_adb_mcp_server.errors import ADBError, ValidationError
from rn_adb_mcp_server.main import RNAdbMCPServer, format_error, format_result
from rn_adb_mcp_server.performance import performance_monitor
from rn_adb_mcp_server.tools import TOOLS, ToolContext

EXPECTED_TOOLS = {
    "list_devices", "get_device_info", "connect_device", "disconnect_device", "wait_for_device",
    "install_app", "uninstall_app", "list_packages", "get_package_info", "launch_app",
    "force_stop_app", "clear_app_data", "restart_app",
    "read_logcat", "watch_logcat", "clear_logcat", "take_screenshot",
    "push_file", "pull_file",
    "forward_port", "reverse_port", "list_port_forwards", "remove_port_forward",
    "get_memory_info", "get_cpu_usage", "get_frame_stats",
    "run_shell_command", "send_text", "press_key", "reload_react_native",
    "analyze_codebase", "analyze_performance", "analyze_codebase_comprehensive",
    "get_performance_optimizations", "get_architecture_advice", "get_debugging_guidance",
    "upgrade_packages", "resolve_dependencies", "audit_packages", "migrate_packages",
}


@pytest.fixture
def server(settings, ctx):
    return RNAdbMCPServer(settings, ctx=ctx)


@pytest.fixture
def server_without_adb(settings):
    ctx = ToolContext(settings, adb_error=ADBError("ADB executable not found"))
    return RNAdbMCPServer(settings, ctx=ctx)


def text_of(contents):
    [content] = contents
    assert content.type == "text"
    return content.text


class TestListTools:
    @pytest.mark.asyncio
    async def test_all_tools_are_registered(self, server):
        tools = await server.list_tools()

        assert {t.name for t in tools} == EXPECTED_TOOLS
        assert len(tools) == len(TOOLS)

    @pytest.mark.asyncio
    async def test_schemas_come_from_input_models(self, server):
        tools = {t.name: t for t in await server.list_tools()}

        schema = tools["connect_device"].inputSchema
        assert schema["required"] == ["host"]
        assert schema["properties"]["port"]["default"] == 5555
        assert "project_path" in tools["audit_packages"].inputSchema["properties"]


class TestCallTool:
    @pytest.mark.asyncio
    async def test_result_is_rendered_as_json(self, server):
        text = text_of(await server.call_tool("list_devices", {}))

        payload = json.loads(text)
        assert payload["total"] == 1
        assert payload["devices"][0]["id"] == "emulator-5554"

    @pytest.mark.asyncio
    async def test_string_results_are_passed_through(self, server):
        text = text_of(await server.call_tool("get_performance_optimizations", {"scenario": "navigation"}))

        assert "## Navigation Performance" in text

    @pytest.mark.asyncio
    async def test_call_is_timed(self, server):
        await server.call_tool("list_devices", {})

        assert performance_monitor.get_summary("tool.list_devices").count == 1

    @pytest.mark.asyncio
    async def test_unknown_tool(self, server):
        text = text_of(await server.call_tool("make_coffee", {}))

        assert text.startswith("Error: Unknown tool: make_coffee")
        assert '"list_devices"' in text

    @pytest.mark.asyncio
    async def test_invalid_arguments(self, server):
        text = text_of(await server.call_tool("get_performance_optimizations", {"scenario": "teleport"}))

        assert text.startswith("Error: Invalid parameters for get_performance_optimizations")

    @pytest.mark.asyncio
    async def test_tool_errors_carry_the_action(self, server, fake_adb):
        fake_adb.list_devices.return_value = []

        text = text_of(await server.call_tool("get_device_info", {}))

        assert text.startswith("Error while trying to get device information: No Android devices connected")

    @pytest.mark.asyncio
    async def test_unexpected_exceptions_are_wrapped(self, server, fake_adb):
        fake_adb.list_devices.side_effect = RuntimeError("socket closed")

        text = text_of(await server.call_tool("list_devices", {}))

        assert text.startswith("Error while trying to list ADB devices: Failed to list ADB devices: socket closed")
        assert '"original_error": "RuntimeError"' in text

    @pytest.mark.asyncio
    async def test_missing_adb_only_affects_device_tools(self, server_without_adb, tmp_path):
        device_text = text_of(await server_without_adb.call_tool("list_devices", {}))
        analysis_text = text_of(await server_without_adb.call_tool(
            "analyze_codebase", {"project_path": str(tmp_path)},
        ))

        assert device_text == "Error while trying to list ADB devices: ADB executable not found"
        assert "**Total Files Analyzed:** 0" in analysis_text

    @pytest.mark.asyncio
    async def test_missing_project_directory(self, server, tmp_path):
        text = text_of(await server.call_tool("analyze_codebase", {"project_path": str(tmp_path / "missing")}))

        assert text.startswith("Error while trying to analyze codebase: Project path does not exist")

    @pytest.mark.asyncio
    async def test_package_tool_without_package_json(self, server, tmp_path):
        text = text_of(await server.call_tool("audit_packages", {"project_path": str(tmp_path)}))

        assert text == "❌ No package.json found in the specified project path."


class TestPromptsAndResources:
    @pytest.mark.asyncio
    async def test_prompts(self, server):
        assert len(await server.list_prompts()) == 3
        result = await server.get_prompt("optimize_performance", {"scenario": "animations"})
        assert "animations" in result.messages[0].content.text

    @pytest.mark.asyncio
    async def test_resources(self, server):
        uris = [str(r.uri) for r in await server.list_resources()]
        assert "adb://devices" in uris

        [contents] = await server.read_resource("rn://guides/performance/animations")
        assert "## Animation Performance" in contents.content


def test_format_error_with_details():
    error = ValidationError("Invalid port: 0", {"port": 0}).add_context("forward port")

    assert format_error(error) == 'Error while trying to forward port: Invalid port: 0\n\nDetails:\n{\n  "port": 0\n}'


def test_format_result():
    assert format_result("plain") == "plain"
    assert format_result({"a": 1}) == '{\n  "a": 1\n}'
