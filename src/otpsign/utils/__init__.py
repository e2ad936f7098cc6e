"""Utility functions for otpsign."""

from .files import cleanup_files, ensure_directory, generate_unique_filename
from .time import format_timestamp, now_with_offset

__all__ = [
    'cleanup_files',
    'ensure_directory',
    'generate_unique_filename',
    'format_timestamp',
    'now_with_offset',
]
