"""Local filesystem helpers for tools that read or write host files."""

import os
import time
from pathlib import Path


def resolve_path(file_path: str) -> str:
    """Resolve path to ensure it's absolute; relative paths land in the home directory."""
    path = Path(file_path)

    if path.is_absolute():
        return str(path)

    if str(path).startswith("~/") or str(path) == "~":
        return str(Path.home() / str(path)[2:])

    return str(Path.home() / path)


def is_directory_writable(dir_path: str) -> bool:
    """Check if a directory exists (creating it if needed) and accepts new files."""
    try:
        os.makedirs(dir_path, exist_ok=True)
        test_file = os.path.join(dir_path, f".write-test-{int(time.time() * 1000)}")
        with open(test_file, "w") as f:
            f.write("test")
        os.unlink(test_file)
        return True
    except OSError:
        return False
