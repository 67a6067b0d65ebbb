"""Tests for FailureDescription and ErrorCode."""

import pytest

from railway import ErrorCode, FailureDescription


class TestErrorCode:
    def test_error_codes(self):
        assert {code.value for code in ErrorCode} == {
            "IO_ERROR",
            "CERT_DECODE_ERROR",
            "INVALID_FORMAT_TYPE",
            "INVALID_MODIFIER",
            "FINGERPRINT_ERROR",
            "TRUNCATED_BLOCK",
            "CONFIGURATION_ERROR",
        }

    def test_value_matches_name(self):
        for code in ErrorCode:
            assert code.value == code.name


class TestFailureDescription:
    def test_creation_with_code_and_message(self):
        desc = FailureDescription(ErrorCode.TRUNCATED_BLOCK, "missing END marker")
        assert desc.code == ErrorCode.TRUNCATED_BLOCK
        assert desc.message == "missing END marker"
        assert desc.exception is None
        assert desc.timestamp is not None

    def test_creation_with_exception(self):
        ex = OSError("bad")
        desc = FailureDescription(ErrorCode.IO_ERROR, "read 'a'", ex)
        assert desc.exception is ex

    def test_immutability(self):
        desc = FailureDescription(ErrorCode.IO_ERROR, "test")
        with pytest.raises(AttributeError):
            desc.message = "changed"  # type: ignore

    def test_timestamp_is_utc(self):
        desc = FailureDescription(ErrorCode.IO_ERROR, "test")
        assert desc.timestamp.tzinfo is not None


class TestDescribe:
    def test_message_only(self):
        desc = FailureDescription(ErrorCode.INVALID_MODIFIER, 'invalid format modifier: "x"')
        assert desc.describe() == 'invalid format modifier: "x"'

    def test_message_with_cause(self):
        desc = FailureDescription(ErrorCode.IO_ERROR, "write 'a.yml'", OSError("disk full"))
        assert desc.describe() == "write 'a.yml': disk full"

    def test_str_prefixes_code(self):
        desc = FailureDescription(ErrorCode.IO_ERROR, "write 'a.yml'", OSError("disk full"))
        assert str(desc) == "IO_ERROR: write 'a.yml': disk full"


class TestFullStackTrace:
    def test_without_exception(self):
        desc = FailureDescription(ErrorCode.CERT_DECODE_ERROR, "just a message")
        assert desc.full_stack_trace() == "just a message"

    def test_with_exception(self):
        try:
            raise ValueError("boom")
        except ValueError as e:
            desc = FailureDescription(ErrorCode.CERT_DECODE_ERROR, "decode failed", e)

        trace = desc.full_stack_trace()

        assert trace.startswith("decode failed\n")
        assert "ValueError" in trace
        assert "boom" in trace
