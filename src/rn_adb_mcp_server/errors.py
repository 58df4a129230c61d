"""Error taxonomy shared by the ADB layer and the tool handlers."""

import enum
from typing import Any, Awaitable, Dict, List, Optional, Tuple, TypeVar

T = TypeVar("T")


class MCPServerError(Exception):
    """Base class for every error surfaced to an MCP client."""

    code = "MCP_SERVER_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = dict(details or {})
        self.context: Optional[str] = None

    def add_context(self, context: str) -> "MCPServerError":
        """Record the action that was running when the error was raised."""
        if self.context is None:
            self.context = context
        return self

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "error": self.code,
            "message": self.message,
        }
        if self.context:
            data["context"] = self.context
        if self.details:
            data["details"] = self.details
        return data

    def __str__(self) -> str:
        return self.message


class ValidationError(MCPServerError):
    """Input was malformed or contained dangerous characters."""

    code = "VALIDATION_ERROR"


class ADBError(MCPServerError):
    """An adb command failed or the adb executable could not be used."""

    code = "ADB_ERROR"


class DeviceNotFoundError(ADBError):
    code = "DEVICE_NOT_FOUND"

    def __init__(self, device_id: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        if device_id:
            message = f"Device not found: {device_id}"
        else:
            message = "No Android devices connected"
        super().__init__(message, {"device_id": device_id, **(details or {})})
        self.device_id = device_id


class DeviceOfflineError(ADBError):
    code = "DEVICE_OFFLINE"

    def __init__(self, device_id: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        message = f"Device is offline: {device_id}" if device_id else "Device is offline"
        super().__init__(message, {"device_id": device_id, **(details or {})})
        self.device_id = device_id


class PackageNotFoundError(ADBError):
    code = "PACKAGE_NOT_FOUND"

    def __init__(self, package_name: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            f"Package not found: {package_name}",
            {"package_name": package_name, **(details or {})},
        )
        self.package_name = package_name


class ADBTimeoutError(ADBError):
    code = "TIMEOUT"


class PackageManagerError(MCPServerError):
    """npm, yarn or pnpm could not be started or did not finish in time."""

    code = "PACKAGE_MANAGER_ERROR"


class ErrorKind(enum.Enum):
    DEVICE_NOT_FOUND = "device_not_found"
    DEVICE_OFFLINE = "device_offline"


# Evaluated in order against lower-cased stderr; first match wins.
STDERR_CLASSIFIERS: List[Tuple[str, ErrorKind]] = [
    ("device not found", ErrorKind.DEVICE_NOT_FOUND),
    ("device offline", ErrorKind.DEVICE_OFFLINE),
]


def classify_stderr(stderr: str) -> Optional[ErrorKind]:
    """Map adb stderr text onto a known error kind, or None."""
    lowered = (stderr or "").lower()
    for needle, kind in STDERR_CLASSIFIERS:
        if needle in lowered:
            return kind
    return None


async def with_error_handling(awaitable: Awaitable[T], action: str) -> T:
    """Await ``awaitable`` and attach ``action`` to whatever it raises.

    Known errors keep their type. Anything else is wrapped in an ADBError so
    the MCP layer only ever renders taxonomy errors.
    """
    try:
        return await awaitable
    except MCPServerError as exc:
        raise exc.add_context(action)
    except Exception as exc:
        raise ADBError(
            f"Failed to {action}: {exc}",
            {"original_error": type(exc).__name__},
        ).add_context(action) from exc
