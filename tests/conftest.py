"""Shared fixtures: a settings object and an adb client whose calls are mocked."""

from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from rn_adb_mcp_server.adb.client import ADBClient
from rn_adb_mcp_server.adb.path_resolver import clear_adb_path_cache
from rn_adb_mcp_server.adb.types import ADBExecutionResult, DeviceInfo
from rn_adb_mcp_server.config import Settings
from rn_adb_mcp_server.performance import performance_monitor
from rn_adb_mcp_server.tools.base import ToolContext


def make_result(stdout: str = "", stderr: str = "", exit_code: int = 0) -> ADBExecutionResult:
    return ADBExecutionResult(
        success=exit_code == 0,
        stdout=stdout,
        stderr=stderr,
        exit_code=exit_code,
        duration_ms=5,
    )


@pytest.fixture(autouse=True)
def _reset_global_state():
    clear_adb_path_cache()
    performance_monitor.clear()
    yield
    clear_adb_path_cache()
    performance_monitor.clear()


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture
def fake_adb(settings) -> MagicMock:
    """An ADBClient stand-in with one online emulator."""
    client = MagicMock(spec=ADBClient)
    client.settings = settings
    client.execute = AsyncMock(return_value=make_result())
    client.list_devices = AsyncMock(return_value=[DeviceInfo(id="emulator-5554", state="device")])
    client.get_device_info = AsyncMock(
        return_value=DeviceInfo(id="emulator-5554", state="device", model="Pixel 7", android_version="14")
    )
    client.wait_for_device = AsyncMock(return_value=True)
    return client


@pytest.fixture
def ctx(settings, fake_adb) -> ToolContext:
    return ToolContext(settings, adb=fake_adb)


def set_outputs(client: MagicMock, *results: ADBExecutionResult, default: Optional[ADBExecutionResult] = None):
    """Queue results for successive ``execute`` calls."""
    queue = list(results)

    async def _execute(*args, **kwargs):
        if queue:
            return queue.pop(0)
        return default or make_result()

    client.execute = AsyncMock(side_effect=_execute)
    return client.execute
