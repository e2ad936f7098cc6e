"""
Tests for identity parsing, results and file helpers.
"""

import os
import tempfile
import threading
from datetime import datetime, timezone
from pathlib import Path

import pytest

from otpsign.errors import ErrorCode, IdentityError, ResultError
from otpsign.models import Identity
from otpsign.result import Result
from otpsign.utils.files import cleanup_files, generate_unique_filename, unique_path
from otpsign.utils.time import format_timestamp, now_with_offset, parse_timestamp


class TestIdentity:

    def test_from_json(self):
        identity = Identity.from_json(
            '{"first_name": "Ivan", "middle_name": "Ivanovich", "last_name": "Ivanov",'
            ' "phone_number": "+79161234567", "unknown": "ignored", "email": null}'
        )
        assert identity.full_name == "Ivan Ivanovich Ivanov"
        assert identity.email == ""
        assert identity.has_required_fields()
        assert not identity.has_all_fields()

    def test_non_string_values_coerced(self):
        identity = Identity.from_dict({'passport_number': 123456})
        assert identity.passport_number == "123456"

    def test_malformed_json(self):
        with pytest.raises(IdentityError):
            Identity.from_json("{not json")

    def test_json_array_rejected(self):
        with pytest.raises(IdentityError):
            Identity.from_json("[1, 2]")

    def test_to_dict_round_trip(self):
        identity = Identity(first_name="Ivan", phone_number="+79161234567")
        data = identity.to_dict()
        assert list(data)[0] == "first_name"
        assert list(data)[-1] == "phone_number"
        assert len(data) == 14
        assert Identity.from_json(identity.to_json()) == identity


class TestResult:

    def test_success(self):
        result = Result.success("value")
        assert result.is_success
        assert result.value == "value"
        assert result.error_code == ErrorCode.SUCCESS

    def test_error(self):
        result = Result.error(ErrorCode.INVALID_USER_DATA, "Invalid user data")
        assert result.is_error
        assert result.error_message == "Invalid user data"
        with pytest.raises(ResultError):
            result.value

    def test_error_needs_error_code(self):
        with pytest.raises(ValueError):
            Result.error(ErrorCode.SUCCESS)


class TestFiles:

    def test_unique_names_across_threads(self):
        """Test that concurrently generated names never collide."""
        names = []
        lock = threading.Lock()

        def generate():
            local = [generate_unique_filename("temp_document_", ".pdf") for _ in range(200)]
            with lock:
                names.extend(local)

        threads = [threading.Thread(target=generate) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(set(names)) == 800
        assert all(n.startswith("temp_document_") and n.endswith(".pdf") for n in names)

    def test_cleanup_removes_artifacts(self):
        """Test that cleanup removes existing files and skips missing or empty entries."""
        with tempfile.TemporaryDirectory() as tmpdir:
            artifact = unique_path(tmpdir, "temp_document_", ".html")
            artifact.write_text("<p>first_name</p>", encoding='utf-8')
            assert artifact.parent == Path(tmpdir)

            cleanup_files([artifact, None, "", os.path.join(tmpdir, "never-created.pdf")])
            assert not artifact.exists()
            assert os.listdir(tmpdir) == []

class TestTime:

    def test_fixed_offset_formatting(self):
        instant = datetime(2024, 5, 1, 12, 4, 5, tzinfo=timezone.utc)
        assert now_with_offset(clock=instant) == "2024-05-01T15:04:05+03:00"
        assert now_with_offset(hours=-5, minutes=30, clock=instant) == "2024-05-01T06:34:05-05:30"

    def test_naive_datetime_rejected(self):
        with pytest.raises(ValueError):
            format_timestamp(datetime(2024, 5, 1))

    def test_parse_round_trip(self):
        stamp = now_with_offset()
        assert format_timestamp(parse_timestamp(stamp)) == stamp
