"""Composite document hashing for otpsign."""

from .binder import HashBinder, constant_time_equals

__all__ = [
    'HashBinder',
    'constant_time_equals',
]
