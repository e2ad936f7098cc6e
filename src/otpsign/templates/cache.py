"""
Bounded cache of template file contents.

Entries are evicted in insertion order once the capacity is reached.
There is no expiry: an entry stays stale until it is evicted or the
cache is cleared, so callers that edit templates on disk must bypass
the cache or clear it.
"""

import threading
from collections import OrderedDict
from pathlib import Path
from typing import List, Union

from ..config import DEFAULT_TEMPLATE_CACHE_SIZE
from ..errors import TemplateError


class TemplateCache:
    """
    Thread-safe path -> content cache with a strict size bound.
    """

    def __init__(self, capacity: int = DEFAULT_TEMPLATE_CACHE_SIZE):
        """
        Initialize template cache.

        Args:
            capacity: Maximum number of cached templates (at least 1)
        """
        self._validate_capacity(capacity)
        self._capacity = capacity
        self._entries: 'OrderedDict[str, str]' = OrderedDict()
        self._lock = threading.Lock()

    @staticmethod
    def _validate_capacity(capacity: int):
        if capacity < 1:
            raise ValueError(f"Cache capacity must be at least 1, got {capacity}")

    @staticmethod
    def _read(path: str) -> str:
        try:
            return Path(path).read_text(encoding='utf-8')
        except (OSError, UnicodeDecodeError) as e:
            raise TemplateError(f"Cannot read template {path}: {e}")

    def get(self, path: Union[str, Path], use_cache: bool = True) -> str:
        """
        Get template content.

        Args:
            path: Template file path
            use_cache: False reads the file directly and leaves the cache untouched

        Returns:
            File content

        Raises:
            TemplateError: If the file cannot be read
        """
        key = str(path)
        if not use_cache:
            return self._read(key)

        with self._lock:
            cached = self._entries.get(key)
            if cached is not None:
                return cached

            content = self._read(key)
            if len(self._entries) >= self._capacity:
                self._entries.popitem(last=False)
            self._entries[key] = content
            return content

    def clear(self):
        """Drop every cached entry."""
        with self._lock:
            self._entries.clear()

    def set_capacity(self, capacity: int):
        """
        Change the bound, evicting oldest entries when shrinking.

        Raises:
            ValueError: If capacity is below 1
        """
        self._validate_capacity(capacity)
        with self._lock:
            self._capacity = capacity
            while len(self._entries) > self._capacity:
                self._entries.popitem(last=False)

    @property
    def capacity(self) -> int:
        with self._lock:
            return self._capacity

    def keys(self) -> List[str]:
        """Cached paths, oldest first."""
        with self._lock:
            return list(self._entries.keys())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, path: object) -> bool:
        with self._lock:
            return str(path) in self._entries
