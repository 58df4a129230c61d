"""Input validators for values that end up in an adb argument vector.

Every validator either returns the (possibly normalised) value or raises
ValidationError with the offending value in the details payload.
"""

import re
from typing import Any, Iterable, Optional

from ..errors import ValidationError

PACKAGE_NAME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9_]*(\.[a-zA-Z][a-zA-Z0-9_]*)+$")

JAVA_KEYWORDS = frozenset([
    "abstract", "assert", "boolean", "break", "byte", "case", "catch", "char",
    "class", "const", "continue", "default", "do", "double", "else", "enum",
    "extends", "final", "finally", "float", "for", "goto", "if", "implements",
    "import", "instanceof", "int", "interface", "long", "native", "new",
    "package", "private", "protected", "public", "return", "short", "static",
    "strictfp", "super", "switch", "synchronized", "this", "throw", "throws",
    "transient", "try", "void", "volatile", "while",
])

DEVICE_ID_FORBIDDEN_RE = re.compile(r"[;&|`$(){}\[\]<>'\"\\]")
FILE_PATH_FORBIDDEN_RE = re.compile(r"[;&|`$(){}\[\]<>'\"]")
WINDOWS_DRIVE_RE = re.compile(r"^[a-zA-Z]:")

HOST_RE = re.compile(
    r"^(?:(?:\d{1,3}\.){3}\d{1,3}"
    r"|(?:[a-zA-Z0-9](?:[a-zA-Z0-9-]*[a-zA-Z0-9])?\.)*[a-zA-Z0-9](?:[a-zA-Z0-9-]*[a-zA-Z0-9])?)$"
)

DANGEROUS_SHELL_PATTERNS = [
    re.compile(r";\s*rm\s+-rf", re.IGNORECASE),
    re.compile(r";\s*dd\s+", re.IGNORECASE),
    re.compile(r">\s*/dev/", re.IGNORECASE),
    re.compile(r";\s*mkfs", re.IGNORECASE),
    re.compile(r";\s*:\(\)\s*\{\s*:\|:\s*&\s*\};:", re.IGNORECASE),
    re.compile(r"\$\(.*\)", re.IGNORECASE),
    re.compile(r"`.*`", re.IGNORECASE),
]

DEFAULT_MAX_TIMEOUT_MS = 300000


def validate_package_name(package_name: Any) -> str:
    """Validate an Android reverse-domain package name."""
    if not isinstance(package_name, str) or not package_name:
        raise ValidationError("Package name must be a non-empty string", {"package_name": package_name})

    if not PACKAGE_NAME_RE.match(package_name):
        raise ValidationError(
            f"Invalid package name format: {package_name}. "
            "Expected reverse-domain notation such as com.example.app",
            {"package_name": package_name},
        )

    for segment in package_name.split("."):
        if segment.lower() in JAVA_KEYWORDS:
            raise ValidationError(
                f'Package name segment "{segment}" is a reserved Java keyword',
                {"package_name": package_name, "segment": segment},
            )

    return package_name


def validate_device_id(device_id: Any) -> str:
    """Trim and check a device serial."""
    if not isinstance(device_id, str):
        raise ValidationError("Device ID must be a string", {"device_id": device_id})

    trimmed = device_id.strip()
    if not trimmed:
        raise ValidationError("Device ID cannot be empty", {"device_id": device_id})

    if DEVICE_ID_FORBIDDEN_RE.search(trimmed):
        raise ValidationError(
            "Device ID contains invalid characters",
            {"device_id": device_id},
        )

    return trimmed


def validate_file_path(file_path: Any, allow_absolute: bool = True) -> str:
    """Reject shell metacharacters, parent traversal and, optionally, absolute paths."""
    if not isinstance(file_path, str) or not file_path:
        raise ValidationError("File path must be a non-empty string", {"file_path": file_path})

    if FILE_PATH_FORBIDDEN_RE.search(file_path):
        raise ValidationError("File path contains invalid characters", {"file_path": file_path})

    if ".." in file_path:
        raise ValidationError("Path traversal is not allowed", {"file_path": file_path})

    if not allow_absolute and (file_path.startswith("/") or WINDOWS_DRIVE_RE.match(file_path)):
        raise ValidationError("Absolute paths are not allowed", {"file_path": file_path})

    return file_path


def validate_port(port: Any) -> int:
    # bool is an int subclass; reject it explicitly
    if isinstance(port, bool) or not isinstance(port, int):
        raise ValidationError("Port must be an integer", {"port": port})
    if port < 1 or port > 65535:
        raise ValidationError("Port must be between 1 and 65535", {"port": port})
    return port


def validate_host(host: Any) -> str:
    """Check an IPv4 address or hostname used for wireless connections."""
    if not isinstance(host, str) or not host.strip():
        raise ValidationError("Host must be a non-empty string", {"host": host})
    host = host.strip()
    if not HOST_RE.match(host):
        raise ValidationError(
            f"Invalid host format: {host}. Provide an IPv4 address or hostname",
            {"host": host},
        )
    return host


def validate_shell_command(command: Any, allowed_commands: Optional[Iterable[str]] = None) -> str:
    """Check a device shell command against an optional allow-list and known dangerous patterns."""
    if not isinstance(command, str) or not command.strip():
        raise ValidationError("Shell command must be a non-empty string", {"command": command})

    base_command = command.strip().split()[0]
    allowed = list(allowed_commands or [])
    if allowed and base_command not in allowed:
        raise ValidationError(
            f"Command '{base_command}' is not in the allowed list",
            {"command": command, "base_command": base_command, "allowed_commands": allowed},
        )

    for pattern in DANGEROUS_SHELL_PATTERNS:
        if pattern.search(command):
            raise ValidationError(
                "Command contains potentially dangerous patterns",
                {"command": command, "pattern": pattern.pattern},
            )

    return command


def validate_timeout(timeout: Any, max_timeout: int = DEFAULT_MAX_TIMEOUT_MS) -> int:
    if isinstance(timeout, bool) or not isinstance(timeout, int):
        raise ValidationError("Timeout must be an integer", {"timeout": timeout})
    if timeout < 0:
        raise ValidationError("Timeout cannot be negative", {"timeout": timeout})
    if timeout > max_timeout:
        raise ValidationError(
            f"Timeout cannot exceed {max_timeout}ms",
            {"timeout": timeout, "max_timeout": max_timeout},
        )
    return timeout


def sanitize_for_shell(value: str) -> str:
    """Escape a value for embedding inside a quoted device shell string."""
    return (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("'", "\\'")
        .replace("$", "\\$")
        .replace("`", "\\`")
        .replace("!", "\\!")
        .replace("\n", "\\n")
        .replace("\r", "\\r")
    )
