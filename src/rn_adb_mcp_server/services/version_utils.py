"""Semantic version comparison for package upgrade decisions."""

import re
from typing import List

RANGE_PREFIX_RE = re.compile(r"^[\^~>=<v\s]+")


def _parts(version: str) -> List[int]:
    version = RANGE_PREFIX_RE.sub("", version or "")
    # drop pre-release and build metadata
    version = re.split(r"[-+]", version, maxsplit=1)[0]
    parts = []
    for piece in version.split("."):
        match = re.match(r"\d+", piece)
        parts.append(int(match.group()) if match else 0)
    return parts


def _at(parts: List[int], index: int) -> int:
    return parts[index] if index < len(parts) else 0


def compare_versions(current: str, latest: str) -> int:
    """Return -1, 0 or 1 as ``current`` is older than, equal to or newer than ``latest``."""
    a, b = _parts(current), _parts(latest)
    for i in range(max(len(a), len(b))):
        if _at(a, i) < _at(b, i):
            return -1
        if _at(a, i) > _at(b, i):
            return 1
    return 0


def is_minor_or_patch_update(current: str, latest: str) -> bool:
    return _at(_parts(current), 0) == _at(_parts(latest), 0)


def is_patch_update(current: str, latest: str) -> bool:
    a, b = _parts(current), _parts(latest)
    return _at(a, 0) == _at(b, 0) and _at(a, 1) == _at(b, 1)


def major_version(version: str) -> int:
    return _at(_parts(version), 0)


def minor_version(version: str) -> int:
    return _at(_parts(version), 1)
