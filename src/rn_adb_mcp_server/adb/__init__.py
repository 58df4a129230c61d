"""ADB execution layer: path resolution, validation and the client."""

from .client import ADBClient, StreamHandle, parse_devices_output
from .path_resolver import clear_adb_path_cache, get_adb_version, resolve_adb_path
from .types import ADBExecutionResult, DetailedPackageInfo, DeviceInfo, LogcatEntry, PackageInfo

__all__ = [
    "ADBClient",
    "ADBExecutionResult",
    "DetailedPackageInfo",
    "DeviceInfo",
    "LogcatEntry",
    "PackageInfo",
    "StreamHandle",
    "clear_adb_path_cache",
    "get_adb_version",
    "parse_devices_output",
    "resolve_adb_path",
]
