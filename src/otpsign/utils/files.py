"""
Filesystem helpers for temporary signing artifacts.

Every temporary name combines a process-wide counter, a nanosecond
timestamp, the calling thread's identifier and a random value, so
concurrent signing calls never need to coordinate on names.
"""

import itertools
import os
import secrets
import threading
import time
from pathlib import Path
from typing import Iterable, Optional, Union

PathLike = Union[str, os.PathLike]

_counter = itertools.count()
_counter_lock = threading.Lock()


def _next_counter() -> int:
    with _counter_lock:
        return next(_counter)


def generate_unique_filename(prefix: str, suffix: str) -> str:
    """
    Generate a file name that is unique across threads and calls.

    Args:
        prefix: Name prefix, e.g. `temp_document_`
        suffix: Name suffix including the dot, e.g. `.pdf`

    Returns:
        File name (no directory part)
    """
    return (
        f"{prefix}{time.time_ns()}_{threading.get_ident()}_"
        f"{_next_counter()}_{secrets.randbits(64)}{suffix}"
    )


def unique_path(directory: PathLike, prefix: str, suffix: str) -> Path:
    """Build a unique path inside `directory`."""
    return Path(directory) / generate_unique_filename(prefix, suffix)


def ensure_directory(path: PathLike) -> bool:
    """
    Create a directory (and parents) if it does not exist.

    Returns:
        True if the directory exists afterwards
    """
    try:
        Path(path).mkdir(parents=True, exist_ok=True)
        return True
    except OSError:
        return False


def cleanup_files(paths: Iterable[Optional[PathLike]]) -> None:
    """
    Delete files, skipping empty entries and files that are already gone.

    Removal errors are ignored.
    """
    for path in paths:
        if not path:
            continue
        try:
            Path(path).unlink(missing_ok=True)
        except OSError:
            pass
