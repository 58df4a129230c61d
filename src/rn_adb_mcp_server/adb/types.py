"""Value objects produced by the ADB layer."""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Literal, Optional

DeviceState = Literal["device", "offline", "unauthorized", "bootloader", "recovery"]


def _compact(data: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in data.items() if value is not None}


@dataclass
class DeviceInfo:
    id: str
    state: str
    model: Optional[str] = None
    manufacturer: Optional[str] = None
    android_version: Optional[str] = None
    api_level: Optional[int] = None
    architecture: Optional[str] = None
    brand: Optional[str] = None
    product: Optional[str] = None
    device: Optional[str] = None

    @property
    def is_online(self) -> bool:
        return self.state == "device"

    def to_dict(self) -> Dict[str, Any]:
        return _compact(asdict(self))


@dataclass(frozen=True)
class ADBExecutionResult:
    """Outcome of a single adb subprocess invocation."""

    success: bool
    stdout: str
    stderr: str
    exit_code: int
    duration_ms: int

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class PackageInfo:
    package_name: str
    type: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _compact(asdict(self))


@dataclass
class DetailedPackageInfo:
    package_name: str
    device_id: Optional[str] = None
    version_name: Optional[str] = None
    version_code: Optional[str] = None
    install_location: Optional[str] = None
    first_install_time: Optional[str] = None
    last_update_time: Optional[str] = None
    data_dir: Optional[str] = None
    apk_path: Optional[str] = None
    uid: Optional[int] = None
    target_sdk: Optional[int] = None
    min_sdk: Optional[int] = None
    permissions: List[str] = field(default_factory=list)
    is_system_app: bool = False
    is_enabled: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return _compact(asdict(self))


@dataclass
class LogcatEntry:
    timestamp: str
    pid: int
    tid: int
    level: str
    tag: str
    message: str

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
