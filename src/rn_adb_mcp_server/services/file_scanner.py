"""Locate React Native source and test files in a project tree."""

import os
import re
from typing import List

from loguru import logger

SOURCE_EXTENSIONS = (".js", ".jsx", ".ts", ".tsx")
SKIP_DIRECTORIES = {"node_modules", "build", "dist"}
REACT_IMPORT_RE = re.compile(
    r"""(?:from\s+['"]react(?:-native)?['"]|require\(\s*['"]react(?:-native)?['"]\s*\))"""
)
CONFIG_FILE_RE = re.compile(r"\.config\.[jt]sx?$")


def _is_test_file(path: str) -> bool:
    name = os.path.basename(path)
    return ".test." in name or ".spec." in name or f"{os.sep}__tests__{os.sep}" in path


def _walk(directory: str):
    """Yield source files below ``directory``, pruning skipped and hidden directories."""
    if not os.path.isdir(directory):
        return
    for root, dirs, files in os.walk(directory, onerror=lambda e: logger.debug("scan error: {}", e)):
        dirs[:] = sorted(d for d in dirs if d not in SKIP_DIRECTORIES and not d.startswith("."))
        for name in sorted(files):
            if name.startswith(".") or not name.endswith(SOURCE_EXTENSIONS):
                continue
            yield os.path.join(root, name)


def _read(path: str) -> str:
    try:
        with open(path, encoding="utf-8", errors="replace") as f:
            return f.read()
    except OSError as exc:
        logger.debug("cannot read {}: {}", path, exc)
        return ""


def find_react_native_files(directory: str) -> List[str]:
    """Non-test JS/TS files that import react or react-native."""
    found = []
    for path in _walk(directory):
        name = os.path.basename(path)
        if _is_test_file(path) or name.endswith(".d.ts") or CONFIG_FILE_RE.search(name):
            continue
        if REACT_IMPORT_RE.search(_read(path)):
            found.append(path)
    return found


def find_test_files(directory: str) -> List[str]:
    return [path for path in _walk(directory) if _is_test_file(path)]
