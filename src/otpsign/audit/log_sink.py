"""
Append-only service log written by a single background thread.

Producers format a record and push it onto a shared queue; one writer
thread swaps the whole queue out under the lock and writes the batch
to the file outside it. Logging is best-effort for producers: write
failures never reach them.
"""

import os
import threading
from collections import deque
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Deque, Optional, TextIO, Union

import structlog

from ..errors import LogSinkError
from ..utils.time import now_with_offset

logger = structlog.get_logger()


class Severity(Enum):
    SUCCESS = "SUCCESS"
    ERROR = "ERROR"
    WARNING = "WARNING"
    INFO = "INFO"


@dataclass(frozen=True)
class LogRecord:
    """
    One log line, immutable once created.
    """
    timestamp: str
    severity: Severity
    thread_id: int
    message: str

    @classmethod
    def create(cls, severity: Severity, message: str) -> 'LogRecord':
        """Create a record stamped with the current time and thread."""
        return cls(
            timestamp=now_with_offset(),
            severity=severity,
            thread_id=threading.get_ident(),
            message=message,
        )

    def format(self) -> str:
        return (
            f"[{self.timestamp}] [{self.severity.value}] "
            f"[Thread:{self.thread_id}] {self.message}"
        )


def _check_writable(path: Path):
    try:
        with path.open('a', encoding='utf-8'):
            pass
    except OSError as e:
        raise LogSinkError(f"Couldn't open the log file: {path}: {e}")


class LogSink:
    """
    Multi-producer, single-writer append-only logger.
    """

    def __init__(
        self,
        file_path: Union[str, Path],
        enabled: bool = True,
        max_bytes: int = 0,
        backup_count: int = 1,
    ):
        """
        Initialize the sink and start its writer thread.

        Args:
            file_path: Log file, opened in append mode
            enabled: Initial logging state
            max_bytes: Rotate when the file would grow past this size (0 disables rotation)
            backup_count: Number of rotated files to keep

        Raises:
            LogSinkError: If the file cannot be opened
        """
        self._file_path = Path(file_path)
        _check_writable(self._file_path)

        self.max_bytes = max_bytes
        self.backup_count = backup_count

        self._enabled = threading.Event()
        if enabled:
            self._enabled.set()

        self._condition = threading.Condition()
        self._queue: Deque[LogRecord] = deque()
        self._stopping = False
        self._closed = False
        self._writer_failed = False
        self._enqueued = 0
        self._written = 0
        self._thread: Optional[threading.Thread] = None

        self._start_writer()

    # ==================== Producer API ====================

    def log(self, severity: Severity, message: str):
        """
        Queue a record; a no-op while logging is disabled or after close().
        """
        if not self._enabled.is_set():
            return

        record = LogRecord.create(severity, message)
        with self._condition:
            if self._closed or self._writer_failed:
                return
            self._queue.append(record)
            self._enqueued += 1
            self._condition.notify()

    def info(self, message: str):
        self.log(Severity.INFO, message)

    def warning(self, message: str):
        self.log(Severity.WARNING, message)

    def error(self, message: str):
        self.log(Severity.ERROR, message)

    def success(self, message: str):
        self.log(Severity.SUCCESS, message)

    # ==================== Control ====================

    def enable(self):
        self._enabled.set()

    def disable(self):
        self._enabled.clear()

    def is_enabled(self) -> bool:
        return self._enabled.is_set()

    @property
    def file_path(self) -> Path:
        return self._file_path

    def set_file_path(self, new_path: Union[str, Path]):
        """
        Rebind the sink to another file.

        The current writer drains its queue into the old file before the
        new writer starts. Not safe to call concurrently with itself.

        Raises:
            LogSinkError: If the new file cannot be opened
        """
        path = Path(new_path)
        _check_writable(path)

        self._stop_writer()
        self._file_path = path
        self._start_writer()

    def flush(self, timeout: Optional[float] = None) -> bool:
        """
        Block until every record queued so far has been written.

        Returns:
            False if the timeout expired first
        """
        with self._condition:
            target = self._enqueued
            return self._condition.wait_for(
                lambda: self._written >= target or self._writer_failed,
                timeout,
            )

    def close(self):
        """Drain the queue, stop the writer thread and reject further records."""
        if self._closed:
            return
        self._stop_writer()
        with self._condition:
            self._closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    # ==================== Writer thread ====================

    def _start_writer(self):
        with self._condition:
            self._stopping = False
            self._writer_failed = False
        self._thread = threading.Thread(
            target=self._writer_loop,
            args=(self._file_path,),
            name="otpsign-log-writer",
            daemon=True,
        )
        self._thread.start()

    def _stop_writer(self):
        with self._condition:
            self._stopping = True
            self._condition.notify_all()
        if self._thread is not None:
            self._thread.join()
            self._thread = None

    def _take_pending(self) -> Deque[LogRecord]:
        pending = self._queue
        self._queue = deque()
        return pending

    def _writer_loop(self, path: Path):
        try:
            fh = path.open('a', encoding='utf-8')
        except OSError as e:
            logger.error("log_sink_open_failed", path=str(path), error=str(e))
            with self._condition:
                self._writer_failed = True
                self._queue.clear()
                self._condition.notify_all()
            return

        size = path.stat().st_size if path.exists() else 0
        try:
            while True:
                with self._condition:
                    self._condition.wait_for(lambda: self._queue or self._stopping)
                    batch = self._take_pending()
                    stopping = self._stopping

                fh, size = self._write_batch(fh, path, size, batch)

                if stopping:
                    # records pushed after the wake-up but before exit
                    with self._condition:
                        batch = self._take_pending()
                    fh, size = self._write_batch(fh, path, size, batch)
                    break
        finally:
            fh.close()

    def _write_batch(self, fh: TextIO, path: Path, size: int, batch: Deque[LogRecord]):
        if not batch:
            return fh, size

        for record in batch:
            line = record.format() + "\n"
            try:
                encoded_size = len(line.encode('utf-8'))
                if self.max_bytes > 0 and size > 0 and size + encoded_size > self.max_bytes:
                    fh = self._rotate(fh, path)
                    size = 0
                fh.write(line)
                size += encoded_size
            except (OSError, ValueError) as e:
                logger.warning("log_sink_write_failed", path=str(path), error=str(e))

        try:
            fh.flush()
        except (OSError, ValueError) as e:
            logger.warning("log_sink_flush_failed", path=str(path), error=str(e))

        with self._condition:
            self._written += len(batch)
            self._condition.notify_all()
        return fh, size

    def _rotate(self, fh: TextIO, path: Path) -> TextIO:
        fh.close()
        if self.backup_count <= 0:
            return path.open('w', encoding='utf-8')

        try:
            for index in range(self.backup_count - 1, 0, -1):
                source = Path(f"{path}.{index}")
                if source.exists():
                    os.replace(source, f"{path}.{index + 1}")
            os.replace(path, f"{path}.1")
        except OSError as e:
            logger.warning("log_sink_rotate_failed", path=str(path), error=str(e))
        return path.open('a', encoding='utf-8')
