"""Async wrapper around the adb executable."""

import asyncio
import time
from typing import Callable, List, Optional, Sequence, Tuple

from loguru import logger

from ..config import Settings, get_settings
from ..errors import (
    ADBError,
    ADBTimeoutError,
    DeviceNotFoundError,
    DeviceOfflineError,
    ErrorKind,
    classify_stderr,
)
from ..performance import measure_performance
from .path_resolver import resolve_adb_path
from .types import ADBExecutionResult, DeviceInfo
from .validators import validate_device_id, validate_timeout

DEVICE_PROPERTIES = {
    "ro.product.model": "model",
    "ro.product.manufacturer": "manufacturer",
    "ro.build.version.release": "android_version",
    "ro.build.version.sdk": "api_level",
    "ro.product.cpu.abi": "architecture",
    "ro.product.brand": "brand",
    "ro.product.name": "product",
    "ro.product.device": "device",
}

DEVICE_LIST_ATTRIBUTES = ("product", "model", "device")

STREAM_CHUNK_SIZE = 4096


class OutputLimitExceeded(Exception):
    """Raised inside ``ADBClient.execute`` when output passes ``max_output_bytes``."""


def parse_devices_output(output: str, include_offline: bool = False) -> List[DeviceInfo]:
    """Parse ``adb devices -l`` output, skipping the header line."""
    devices = []
    for line in output.splitlines()[1:]:
        parts = line.strip().split()
        if len(parts) < 2:
            continue

        device = DeviceInfo(id=parts[0], state=parts[1])
        for token in parts[2:]:
            key, sep, value = token.partition(":")
            if sep and key in DEVICE_LIST_ATTRIBUTES:
                setattr(device, key, value)

        if include_offline or device.is_online:
            devices.append(device)
    return devices


class StreamHandle:
    """Running ``adb`` process whose output is delivered line by line.

    Calling the handle (or ``stop()``) sends SIGTERM if the process is alive.
    """

    def __init__(self, process: Optional[asyncio.subprocess.Process], tasks: Sequence[asyncio.Task]):
        self.process = process
        self._tasks = list(tasks)

    @property
    def running(self) -> bool:
        return self.process is not None and self.process.returncode is None

    def stop(self) -> None:
        if self.running:
            self.process.terminate()

    __call__ = stop

    async def wait(self) -> Optional[int]:
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        if self.process is None:
            return None
        return await self.process.wait()


class ADBClient:
    """Runs adb commands for a single resolved executable path."""

    def __init__(self, adb_path: str, settings: Optional[Settings] = None):
        self.adb_path = adb_path
        self.settings = settings or get_settings()

    @classmethod
    def create(cls, settings: Optional[Settings] = None) -> "ADBClient":
        """Resolve the adb executable and build a client around it."""
        return cls(resolve_adb_path(), settings)

    def _build_command(self, args: Sequence[str], device_id: Optional[str]) -> List[str]:
        command = [self.adb_path]
        if device_id:
            command += ["-s", validate_device_id(device_id)]
        command += [str(arg) for arg in args]
        return command

    @measure_performance("adb")
    async def execute(
        self,
        args: Sequence[str],
        device_id: Optional[str] = None,
        timeout: Optional[int] = None,
        throw_on_error: bool = True,
    ) -> ADBExecutionResult:
        """Run ``adb [-s device_id] <args>`` and capture its output.

        ``timeout`` is in milliseconds; 0 disables it. Failures whose stderr
        names a missing or offline device always raise; other failures raise
        ADBError unless ``throw_on_error`` is False.
        """
        timeout = self.settings.default_timeout_ms if timeout is None else timeout
        timeout = validate_timeout(timeout, self.settings.max_timeout_ms)
        command = self._build_command(args, device_id)
        command_text = " ".join(command)
        logger.debug("adb exec: {}", command_text)

        start = time.monotonic()
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            return self._handle_failure(
                command_text, device_id, "", str(exc), 1, start, throw_on_error,
            )

        try:
            if timeout:
                stdout, stderr = await asyncio.wait_for(self._collect(process), timeout / 1000)
            else:
                stdout, stderr = await self._collect(process)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            logger.warning("adb command timed out after {}ms: {}", timeout, command_text)
            raise ADBTimeoutError(
                f"ADB command timed out after {timeout}ms",
                {"command": command_text, "timeout": timeout},
            )
        except OutputLimitExceeded:
            process.kill()
            await process.wait()
            logger.warning("adb output exceeded {} bytes: {}", self.settings.max_output_bytes, command_text)
            message = "ADB command output exceeded the maximum buffer size"
            if throw_on_error:
                raise ADBError(
                    message,
                    {"command": command_text, "max_output_bytes": self.settings.max_output_bytes},
                )
            return ADBExecutionResult(
                success=False,
                stdout="",
                stderr=message,
                exit_code=1,
                duration_ms=int((time.monotonic() - start) * 1000),
            )

        stdout_text = stdout.decode("utf-8", errors="replace").strip()
        stderr_text = stderr.decode("utf-8", errors="replace").strip()

        if process.returncode == 0:
            duration_ms = int((time.monotonic() - start) * 1000)
            logger.debug("adb done in {}ms: {}", duration_ms, command_text)
            return ADBExecutionResult(
                success=True,
                stdout=stdout_text,
                stderr=stderr_text,
                exit_code=0,
                duration_ms=duration_ms,
            )

        return self._handle_failure(
            command_text, device_id, stdout_text, stderr_text,
            process.returncode, start, throw_on_error,
        )

    async def _collect(self, process: asyncio.subprocess.Process) -> Tuple[bytes, bytes]:
        """Read both pipes to EOF, stopping once the combined output passes the cap."""
        limit = self.settings.max_output_bytes
        received = 0
        stdout: List[bytes] = []
        stderr: List[bytes] = []

        async def read(stream: asyncio.StreamReader, sink: List[bytes]) -> None:
            nonlocal received
            while True:
                chunk = await stream.read(STREAM_CHUNK_SIZE)
                if not chunk:
                    return
                received += len(chunk)
                if received > limit:
                    raise OutputLimitExceeded()
                sink.append(chunk)

        await asyncio.gather(read(process.stdout, stdout), read(process.stderr, stderr))
        await process.wait()
        return b"".join(stdout), b"".join(stderr)

    def _handle_failure(
        self,
        command_text: str,
        device_id: Optional[str],
        stdout: str,
        stderr: str,
        exit_code: Optional[int],
        start: float,
        throw_on_error: bool,
    ) -> ADBExecutionResult:
        kind = classify_stderr(stderr)
        if kind is ErrorKind.DEVICE_NOT_FOUND:
            logger.warning("adb reported device not found: {}", command_text)
            raise DeviceNotFoundError(device_id, {"command": command_text, "stderr": stderr})
        if kind is ErrorKind.DEVICE_OFFLINE:
            logger.warning("adb reported device offline: {}", command_text)
            raise DeviceOfflineError(device_id, {"command": command_text, "stderr": stderr})

        exit_code = exit_code or 1
        if throw_on_error:
            raise ADBError(
                f"ADB command failed: {stderr or stdout}",
                {"command": command_text, "exit_code": exit_code, "stdout": stdout, "stderr": stderr},
            )

        return ADBExecutionResult(
            success=False,
            stdout=stdout,
            stderr=stderr,
            exit_code=exit_code,
            duration_ms=int((time.monotonic() - start) * 1000),
        )

    async def execute_stream(
        self,
        args: Sequence[str],
        on_data: Callable[[str], None],
        device_id: Optional[str] = None,
    ) -> StreamHandle:
        """Spawn adb without a timeout and feed each output line to ``on_data``.

        stderr lines are prefixed with ``ERROR: `` and spawn or read failures
        with ``PROCESS_ERROR: ``.
        """
        command = self._build_command(args, device_id)
        logger.debug("adb stream: {}", " ".join(command))
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            on_data(f"PROCESS_ERROR: {exc}")
            return StreamHandle(None, [])

        tasks = [
            asyncio.ensure_future(self._pump(process.stdout, on_data, "")),
            asyncio.ensure_future(self._pump(process.stderr, on_data, "ERROR: ")),
        ]
        return StreamHandle(process, tasks)

    @staticmethod
    async def _pump(stream: asyncio.StreamReader, on_data: Callable[[str], None], prefix: str) -> None:
        buffer = ""
        try:
            while True:
                chunk = await stream.read(STREAM_CHUNK_SIZE)
                if not chunk:
                    break
                buffer += chunk.decode("utf-8", errors="replace")
                lines = buffer.split("\n")
                # last element is an incomplete line until the next chunk
                buffer = lines.pop()
                for line in lines:
                    line = line.strip()
                    if line:
                        on_data(f"{prefix}{line}")
        except OSError as exc:
            on_data(f"PROCESS_ERROR: {exc}")
            return
        if buffer.strip():
            on_data(f"{prefix}{buffer.strip()}")

    async def list_devices(self, include_offline: bool = False) -> List[DeviceInfo]:
        result = await self.execute(["devices", "-l"])
        return parse_devices_output(result.stdout, include_offline)

    async def _get_property(self, device_id: str, prop: str) -> Optional[str]:
        try:
            result = await self.execute(["shell", "getprop", prop], device_id=device_id, throw_on_error=False)
        except ADBError as exc:
            logger.debug("getprop {} failed on {}: {}", prop, device_id, exc)
            return None
        if not result.success or not result.stdout:
            return None
        return result.stdout

    async def get_device_info(self, device_id: Optional[str] = None) -> DeviceInfo:
        """Return a device's identity plus whatever properties could be read."""
        if device_id:
            device_id = validate_device_id(device_id)
            info = DeviceInfo(id=device_id, state="device")
        else:
            devices = await self.list_devices()
            if not devices:
                raise DeviceNotFoundError()
            info = DeviceInfo(id=devices[0].id, state=devices[0].state)

        props = list(DEVICE_PROPERTIES)
        values = await asyncio.gather(*(self._get_property(info.id, prop) for prop in props))
        for prop, value in zip(props, values):
            if value is None:
                continue
            attr = DEVICE_PROPERTIES[prop]
            if attr == "api_level":
                if value.isdigit():
                    info.api_level = int(value)
            else:
                setattr(info, attr, value)
        return info

    async def is_device_online(self, device_id: Optional[str] = None) -> bool:
        try:
            if not device_id:
                return len(await self.list_devices()) > 0
            devices = await self.list_devices(include_offline=True)
        except Exception as exc:
            # any failure means the device is not reachable
            logger.debug("device online check failed: {!r}", exc)
            return False
        return any(d.id == device_id and d.is_online for d in devices)

    async def wait_for_device(self, device_id: Optional[str] = None, timeout: int = 30000) -> bool:
        """Block until adb sees the device; False when ``timeout`` ms elapse first."""
        try:
            await self.execute(["wait-for-device"], device_id=device_id, timeout=timeout)
        except ADBTimeoutError:
            return False
        return True
