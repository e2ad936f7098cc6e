"""
Tests for the single-writer service log.
"""

import os
import re
import tempfile
import threading

import pytest

from otpsign.audit import LogRecord, LogSink, Severity
from otpsign.errors import LogSinkError

LINE_PATTERN = re.compile(
    r"^\[\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\+03:00\] "
    r"\[(SUCCESS|ERROR|WARNING|INFO)\] \[Thread:\d+\] .*$"
)


def _lines(path):
    if not os.path.exists(path):
        return []
    with open(path, encoding='utf-8') as fh:
        return fh.read().splitlines()


class TestLogRecord:

    def test_format(self):
        record = LogRecord(
            timestamp="2024-05-01T15:04:05+03:00",
            severity=Severity.WARNING,
            thread_id=7,
            message="disk almost full",
        )
        assert record.format() == (
            "[2024-05-01T15:04:05+03:00] [WARNING] [Thread:7] disk almost full"
        )

    def test_create_stamps_current_thread(self):
        record = LogRecord.create(Severity.INFO, "hello")
        assert record.thread_id == threading.get_ident()
        assert LINE_PATTERN.match(record.format())


class TestLogSink:
    """Test queueing, toggling and file rebinding."""

    def test_records_written_in_order(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "service.log")
            with LogSink(path) as sink:
                sink.info("first")
                sink.error("second")
                sink.success("third")
                assert sink.flush(timeout=5)

            lines = _lines(path)
            assert [line.split("] ", 3)[-1] for line in lines] == ["first", "second", "third"]
            assert "[ERROR]" in lines[1]
            assert all(LINE_PATTERN.match(line) for line in lines)

    def test_disabled_sink_does_not_grow(self):
        """Test that logging while disabled leaves the file unchanged."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "service.log")
            with LogSink(path) as sink:
                sink.info("before")
                sink.flush(timeout=5)
                size = os.path.getsize(path)

                sink.disable()
                assert not sink.is_enabled()
                for _ in range(50):
                    sink.info("ignored")
                sink.flush(timeout=5)
                assert os.path.getsize(path) == size

                sink.enable()
                sink.info("after")
                sink.flush(timeout=5)

            assert [line.endswith("after") for line in _lines(path)] == [False, True]

    def test_initially_disabled(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "service.log")
            with LogSink(path, enabled=False) as sink:
                sink.info("ignored")
            assert _lines(path) == []

    def test_set_file_path_drains_old_file(self):
        """Test that records before a rebind land in the old file only."""
        with tempfile.TemporaryDirectory() as tmpdir:
            old_path = os.path.join(tmpdir, "old.log")
            new_path = os.path.join(tmpdir, "new.log")
            with LogSink(old_path) as sink:
                sink.info("to old")
                sink.set_file_path(new_path)
                sink.info("to new")
                sink.flush(timeout=5)
                assert str(sink.file_path) == new_path

            assert len(_lines(old_path)) == 1
            assert _lines(old_path)[0].endswith("to old")
            assert len(_lines(new_path)) == 1
            assert _lines(new_path)[0].endswith("to new")

    def test_unwritable_path_rejected(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            bad_path = os.path.join(tmpdir, "missing", "service.log")
            with pytest.raises(LogSinkError):
                LogSink(bad_path)

            path = os.path.join(tmpdir, "service.log")
            with LogSink(path) as sink:
                with pytest.raises(LogSinkError):
                    sink.set_file_path(bad_path)
                sink.info("still bound")
                sink.flush(timeout=5)
            assert _lines(path)[0].endswith("still bound")

    def test_records_dropped_after_writer_failure(self, monkeypatch):
        """Test that a writer that cannot open its file does not leave records queued."""
        monkeypatch.setattr("otpsign.audit.log_sink._check_writable", lambda path: None)
        with tempfile.TemporaryDirectory() as tmpdir:
            bad_path = os.path.join(tmpdir, "missing", "service.log")
            with LogSink(bad_path) as sink:
                assert sink.flush(timeout=5)
                for _ in range(100):
                    sink.info("dropped")
                assert sink.flush(timeout=5)
                assert len(sink._queue) == 0
            assert not os.path.exists(bad_path)

    def test_concurrent_producers(self):
        """Test that every record from every producer is written exactly once."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "service.log")
            with LogSink(path) as sink:
                def produce(n):
                    for i in range(100):
                        sink.info(f"producer {n} record {i}")

                threads = [threading.Thread(target=produce, args=(n,)) for n in range(4)]
                for t in threads:
                    t.start()
                for t in threads:
                    t.join()

            lines = _lines(path)
            assert len(lines) == 400
            assert all(LINE_PATTERN.match(line) for line in lines)
            for n in range(4):
                own = [line for line in lines if f"producer {n} " in line]
                assert [int(line.rsplit(" ", 1)[-1]) for line in own] == list(range(100))

    def test_close_is_idempotent_and_final(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "service.log")
            sink = LogSink(path)
            sink.info("kept")
            sink.close()
            sink.close()
            sink.info("dropped")
            assert len(_lines(path)) == 1

    def test_rotation(self):
        """Test that the file is rotated once it would exceed max_bytes."""
        with tempfile.TemporaryDirectory() as tmpdir:
            path = os.path.join(tmpdir, "service.log")
            with LogSink(path, max_bytes=300, backup_count=2) as sink:
                for i in range(20):
                    sink.info(f"record {i:02d}")

            assert os.path.exists(path + ".1")
            assert os.path.getsize(path) <= 300
            assert _lines(path)[-1].endswith("record 19")
