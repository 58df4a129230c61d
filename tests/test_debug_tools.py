"""Tests for logcat and screenshot tools."""

from unittest.mock import AsyncMock

import pytest
from PIL import Image

from conftest import make_result
from rn_adb_mcp_server.errors import ADBError, DeviceNotFoundError, ValidationError
from rn_adb_mcp_server.tools.debug import (
    ReadLogcatInput,
    ScreenshotInput,
    WatchLogcatInput,
    build_filter_spec,
    parse_logcat,
    read_logcat,
    take_screenshot,
    watch_logcat,
)

LOGCAT = """--------- beginning of main
01-15 10:23:45.123  1234  1250 I ReactNativeJS: Running "App" with {"rootTag":1}
01-15 10:23:46.001  1234  1251 W ReactNativeJS: Possible Unhandled Promise Rejection
01-15 10:23:47.500  1234  1234 E AndroidRuntime: FATAL EXCEPTION: main
"""


class TestFilterSpec:
    def test_tags_silence_everything_else(self):
        assert build_filter_spec("W", ["ReactNativeJS", "AndroidRuntime"]) == [
            "ReactNativeJS:W", "AndroidRuntime:W", "*:S",
        ]

    def test_tags_default_to_verbose(self):
        assert build_filter_spec(None, ["ReactNative"]) == ["ReactNative:V", "*:S"]

    def test_priority_only(self):
        assert build_filter_spec("E", []) == ["*:E"]
        assert build_filter_spec(None, []) == []

    def test_invalid_tag(self):
        with pytest.raises(ValidationError, match="Invalid logcat tag"):
            build_filter_spec(None, ["bad tag;rm"])


def test_parse_logcat_threadtime():
    entries = parse_logcat(LOGCAT)

    assert [(e.level, e.tag) for e in entries] == [
        ("I", "ReactNativeJS"), ("W", "ReactNativeJS"), ("E", "AndroidRuntime"),
    ]
    assert entries[2].pid == 1234
    assert entries[2].message == "FATAL EXCEPTION: main"


class TestReadLogcat:
    @pytest.mark.asyncio
    async def test_args_and_errors(self, ctx, fake_adb):
        fake_adb.execute.return_value = make_result(LOGCAT)

        response = await read_logcat(ctx, ReadLogcatInput(tags=["ReactNativeJS"], priority="I", max_count=100))

        fake_adb.execute.assert_awaited_once_with(
            ["logcat", "-d", "-v", "threadtime", "-t", "100", "ReactNativeJS:I", "*:S"], device_id="emulator-5554",
        )
        assert response["line_count"] == 4
        assert [e["tag"] for e in response["errors"]] == ["AndroidRuntime"]

    @pytest.mark.asyncio
    async def test_grep_and_clear(self, ctx, fake_adb):
        fake_adb.execute.return_value = make_result(LOGCAT)

        response = await read_logcat(ctx, ReadLogcatInput(grep="promise", clear_after=True))

        assert response["lines"] == ["01-15 10:23:46.001  1234  1251 W ReactNativeJS: Possible Unhandled Promise Rejection"]
        assert fake_adb.execute.await_args_list[-1].args[0] == ["logcat", "-c"]

    @pytest.mark.asyncio
    async def test_other_formats_skip_parsing(self, ctx, fake_adb):
        fake_adb.execute.return_value = make_result("I/ReactNativeJS( 1234): hello")

        response = await read_logcat(ctx, ReadLogcatInput(format="brief"))

        assert "errors" not in response


class FakeHandle:
    def __init__(self):
        self.stopped = False
        self.running = False
        self.process = None

    def stop(self):
        self.stopped = True

    async def wait(self):
        return 0


class TestWatchLogcat:
    @pytest.mark.asyncio
    async def test_stops_after_max_lines(self, ctx, fake_adb):
        handle = FakeHandle()

        async def fake_stream(args, on_line, device_id=None):
            for n in range(5):
                on_line(f"line {n}")
            return handle

        fake_adb.execute_stream = AsyncMock(side_effect=fake_stream)

        response = await watch_logcat(ctx, WatchLogcatInput(max_lines=3, duration_seconds=5, priority="E"))

        args = fake_adb.execute_stream.await_args.args[0]
        assert args == ["logcat", "-v", "threadtime", "-T", "1", "*:E"]
        assert response["lines"] == ["line 0", "line 1", "line 2"]
        assert response["truncated"] is True
        assert handle.stopped is True

    @pytest.mark.asyncio
    async def test_spawn_failure(self, ctx, fake_adb):
        async def fake_stream(args, on_line, device_id=None):
            on_line("PROCESS_ERROR: cannot spawn")
            return FakeHandle()

        fake_adb.execute_stream = AsyncMock(side_effect=fake_stream)

        with pytest.raises(ADBError, match="Failed to stream logcat"):
            await watch_logcat(ctx, WatchLogcatInput(duration_seconds=1, max_lines=1))


class TestTakeScreenshot:
    @pytest.mark.asyncio
    async def test_png_is_pulled_directly(self, ctx, fake_adb, tmp_path):
        response = await take_screenshot(ctx, ScreenshotInput(output_path=str(tmp_path / "shots" / "home")))

        commands = [call.args[0] for call in fake_adb.execute.await_args_list]
        assert commands[0][:3] == ["shell", "screencap", "-p"]
        remote = commands[0][3]
        assert commands[1] == ["pull", remote, str(tmp_path / "shots" / "home.png")]
        assert commands[2] == ["shell", "rm", "-f", remote]
        assert response["output_path"] == str(tmp_path / "shots" / "home.png")

    @pytest.mark.asyncio
    async def test_converted_to_jpeg(self, ctx, fake_adb, tmp_path):
        async def fake_execute(args, device_id=None, throw_on_error=True, timeout=None):
            if args[0] == "pull":
                Image.new("RGBA", (4, 4), (255, 0, 0, 128)).save(args[2], format="PNG")
            return make_result()

        fake_adb.execute = AsyncMock(side_effect=fake_execute)

        response = await take_screenshot(ctx, ScreenshotInput(output_path=str(tmp_path / "shot.jpg"), format="jpg"))

        with Image.open(response["output_path"]) as img:
            assert img.format == "JPEG"
            assert img.mode == "RGB"
        temp_png = fake_adb.execute.await_args_list[1].args[0][2]
        assert not temp_png.endswith("shot.jpg")

    @pytest.mark.asyncio
    async def test_remote_file_removed_when_pull_fails(self, ctx, fake_adb, tmp_path):
        async def fake_execute(args, device_id=None, throw_on_error=True, timeout=None):
            if args[0] == "pull":
                raise ADBError("ADB command failed: remote object does not exist")
            return make_result()

        fake_adb.execute = AsyncMock(side_effect=fake_execute)

        with pytest.raises(ADBError):
            await take_screenshot(ctx, ScreenshotInput(output_path=str(tmp_path / "s.png")))
        assert fake_adb.execute.await_args_list[-1].args[0][:3] == ["shell", "rm", "-f"]

    @pytest.mark.asyncio
    async def test_cleanup_failure_keeps_pull_error(self, ctx, fake_adb, tmp_path):
        async def fake_execute(args, device_id=None, throw_on_error=True, timeout=None):
            if args[0] == "pull":
                raise ADBError("ADB command failed: remote object does not exist")
            if args[:2] == ["shell", "rm"]:
                raise DeviceNotFoundError(device_id)
            return make_result()

        fake_adb.execute = AsyncMock(side_effect=fake_execute)

        with pytest.raises(ADBError, match="remote object does not exist") as exc_info:
            await take_screenshot(ctx, ScreenshotInput(output_path=str(tmp_path / "s.png")))
        assert not isinstance(exc_info.value, DeviceNotFoundError)
