"""Append-only service logging for otpsign."""

from .log_sink import LogRecord, LogSink, Severity

__all__ = [
    'LogRecord',
    'LogSink',
    'Severity',
]
