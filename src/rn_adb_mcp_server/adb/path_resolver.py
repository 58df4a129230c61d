"""Locate the adb executable."""

import os
import shutil
import subprocess
import sys
from functools import lru_cache
from typing import List, Optional

from loguru import logger

from ..errors import ADBError

VERIFY_TIMEOUT_SECONDS = 5


def _executable_name() -> str:
    return "adb.exe" if sys.platform == "win32" else "adb"


def is_executable(path: str) -> bool:
    """Check that ``path`` exists and answers ``adb version``."""
    if not path or not os.path.exists(path):
        return False
    try:
        subprocess.run(
            [path, "version"],
            check=True,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            timeout=VERIFY_TIMEOUT_SECONDS,
        )
        return True
    except (subprocess.CalledProcessError, subprocess.TimeoutExpired, OSError):
        return False


def sdk_candidates() -> List[str]:
    candidates = []
    for var in ("ANDROID_HOME", "ANDROID_SDK_ROOT"):
        root = os.environ.get(var)
        if root:
            candidates.append(os.path.join(root, "platform-tools", _executable_name()))
    return candidates


def common_install_locations() -> List[str]:
    home = os.environ.get("HOME", "")
    if sys.platform == "darwin":
        return [
            "/usr/local/bin/adb",
            os.path.join(home, "Library/Android/sdk/platform-tools/adb"),
            "/opt/homebrew/bin/adb",
        ]
    if sys.platform == "win32":
        program_files = os.environ.get("ProgramFiles", "C:\\Program Files")
        program_files_x86 = os.environ.get("ProgramFiles(x86)", "C:\\Program Files (x86)")
        local_app_data = os.environ.get("LOCALAPPDATA", "")
        return [
            os.path.join(program_files, "Android", "Android Studio", "platform-tools", "adb.exe"),
            os.path.join(program_files_x86, "Android", "Android Studio", "platform-tools", "adb.exe"),
            os.path.join(local_app_data, "Android", "Sdk", "platform-tools", "adb.exe"),
            "C:\\adb\\adb.exe",
        ]
    return [
        "/usr/bin/adb",
        "/usr/local/bin/adb",
        os.path.join(home, "Android/Sdk/platform-tools/adb"),
        "/opt/android-sdk/platform-tools/adb",
    ]


def find_adb_path() -> str:
    """Search PATH, then SDK environment variables, then common locations.

    The first candidate that answers ``adb version`` wins.
    """
    searched: List[str] = []

    on_path: Optional[str] = shutil.which(_executable_name())
    if on_path:
        searched.append(on_path)
        if is_executable(on_path):
            logger.debug("adb found on PATH: {}", on_path)
            return on_path

    for candidate in sdk_candidates() + common_install_locations():
        searched.append(candidate)
        if is_executable(candidate):
            logger.debug("adb found at {}", candidate)
            return candidate

    raise ADBError(
        "ADB executable not found. Please either:\n"
        "1. Add adb to your PATH\n"
        "2. Set ANDROID_HOME or ANDROID_SDK_ROOT environment variable\n"
        "3. Install Android SDK Platform Tools",
        {"searched_paths": searched},
    )


@lru_cache(maxsize=1)
def resolve_adb_path() -> str:
    """Resolve adb once per process; failures are not cached."""
    return find_adb_path()


def clear_adb_path_cache() -> None:
    resolve_adb_path.cache_clear()


def get_adb_version(adb_path: Optional[str] = None) -> str:
    path = adb_path or resolve_adb_path()
    try:
        completed = subprocess.run(
            [path, "version"],
            check=True,
            capture_output=True,
            text=True,
            timeout=VERIFY_TIMEOUT_SECONDS,
        )
    except (subprocess.CalledProcessError, subprocess.TimeoutExpired, OSError) as exc:
        raise ADBError(f"Failed to get ADB version: {exc}", {"adb_path": path}) from exc
    return completed.stdout.strip().splitlines()[0] if completed.stdout.strip() else ""
