"""
Core Utilities.

Shared utility functions used across the backend.
All modules should import utilities from this module.
"""

import re
import time
from datetime import datetime, timezone

_UNSAFE_FILENAME_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def utc_now() -> datetime:
    """
    Return current UTC time as timezone-naive datetime.

    All datetime values in the application should be timezone-naive
    and assumed to be UTC. This ensures consistent behavior across
    the codebase and simplifies database storage.

    Returns:
        Current UTC time with tzinfo stripped
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def epoch_millis() -> int:
    """Milliseconds since the Unix epoch."""
    return time.time_ns() // 1_000_000


def safe_filename(filename: str, default: str = "upload") -> str:
    """
    Reduce a client-supplied filename to a single safe path segment.

    Directory components are dropped and anything outside
    [A-Za-z0-9._-] collapses to an underscore.
    """
    name = filename.replace("\\", "/").rsplit("/", 1)[-1]
    name = _UNSAFE_FILENAME_CHARS.sub("_", name).strip("._")
    return name or default
