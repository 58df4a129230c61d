"""Tests for MCP prompts and resources."""

import json

import pytest

from rn_adb_mcp_server import prompts, resources
from rn_adb_mcp_server.adb.types import DeviceInfo
from rn_adb_mcp_server.errors import ValidationError
from rn_adb_mcp_server.performance import performance_monitor, track


class TestPrompts:
    def test_list(self):
        names = [p.name for p in prompts.list_prompts()]

        assert names == ["debug_app_crash", "setup_wireless_debugging", "optimize_performance"]

    def test_debug_app_crash(self):
        result = prompts.get_prompt("debug_app_crash", {
            "package_name": "com.example.app", "error_message": "TypeError: undefined is not an object",
        })

        [message] = result.messages
        assert message.role == "user"
        assert "com.example.app is crashing" in message.content.text
        assert "TypeError: undefined is not an object" in message.content.text

    def test_setup_wireless_debugging(self):
        text = prompts.get_prompt("setup_wireless_debugging", {"host": "192.168.1.50"}).messages[0].content.text

        assert "connect_device with host=192.168.1.50" in text
        assert "reverse_port" in text

    def test_optimize_performance(self):
        text = prompts.get_prompt("optimize_performance", {"scenario": "list_rendering"}).messages[0].content.text

        assert "optimize list rendering" in text

    @pytest.mark.parametrize(
        "name, arguments, message",
        [
            ("debug_app_crash", {}, "Missing required prompt argument: package_name"),
            ("debug_app_crash", {"package_name": "not valid"}, "Invalid package name"),
            ("setup_wireless_debugging", {"host": "bad host"}, "Invalid host"),
            ("optimize_performance", {"scenario": "teleport"}, "Unknown performance scenario"),
            ("make_coffee", {}, "Unknown prompt: make_coffee"),
        ],
    )
    def test_invalid(self, name, arguments, message):
        with pytest.raises(ValidationError, match=message):
            prompts.get_prompt(name, arguments)


class TestResources:
    def test_list(self):
        uris = [str(r.uri) for r in resources.list_resources()]

        assert uris[:2] == ["adb://devices", "rn://performance-report"]
        assert "rn://guides/performance/startup_time" in uris

    @pytest.mark.asyncio
    async def test_devices(self, ctx, fake_adb):
        fake_adb.list_devices.return_value = [
            DeviceInfo(id="emulator-5554", state="device"),
            DeviceInfo(id="10.0.0.2:5555", state="offline"),
        ]

        [contents] = await resources.read_resource(ctx, "adb://devices")

        fake_adb.list_devices.assert_awaited_once_with(include_offline=True)
        assert contents.mime_type == "application/json"
        assert [d["id"] for d in json.loads(contents.content)] == ["emulator-5554", "10.0.0.2:5555"]

    @pytest.mark.asyncio
    async def test_performance_report(self, ctx):
        with track("tool.list_devices"):
            pass

        [contents] = await resources.read_resource(ctx, "rn://performance-report")

        assert "tool.list_devices" in contents.content
        assert performance_monitor.get_summary("tool.list_devices").count == 1

    @pytest.mark.asyncio
    async def test_guide(self, ctx):
        [contents] = await resources.read_resource(ctx, "rn://guides/performance/bundle_size")

        assert "## Bundle Size Optimization" in contents.content

    @pytest.mark.asyncio
    @pytest.mark.parametrize("uri", ["rn://guides/performance/teleport", "file:///etc/passwd"])
    async def test_unknown(self, ctx, uri):
        with pytest.raises(ValidationError, match="Unknown resource"):
            await resources.read_resource(ctx, uri)
