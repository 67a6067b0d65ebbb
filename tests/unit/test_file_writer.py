"""
Unit tests for the in-place file writer adapter.
"""

from __future__ import annotations

import os
import stat
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from railway import ErrorCode, ResultAssertions

from nebula_cert_comment.adapters.file_writer import InPlaceFileWriter
from nebula_cert_comment.domain.ports import FileWriter


class TestInPlaceFileWriter:
    """Verify contents, permissions and failures."""

    def test_satisfies_port(self) -> None:
        assert isinstance(InPlaceFileWriter(), FileWriter)

    def test_overwrites_contents(self, tmp_path: Path) -> None:
        """
        GIVEN an existing file with longer contents
        WHEN written with new bytes
        THEN the file holds exactly the new bytes and the path is returned.
        """
        path = tmp_path / "host.yml"
        path.write_bytes(b"old contents that are longer\n")

        result = InPlaceFileWriter().write(path, b"new\n")

        ResultAssertions.assert_success_value(result, path)
        assert path.read_bytes() == b"new\n"

    def test_keeps_permissions(self, tmp_path: Path) -> None:
        path = tmp_path / "secret.yml"
        path.write_bytes(b"x\n")
        os.chmod(path, 0o600)

        InPlaceFileWriter().write(path, b"y\n")

        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_missing_directory_fails(self, tmp_path: Path) -> None:
        result = InPlaceFileWriter().write(tmp_path / "nope" / "f.yml", b"x")
        ResultAssertions.assert_failure(result, ErrorCode.IO_ERROR)
        ResultAssertions.assert_failure_message_contains(result, "f.yml")

    def test_logs_after_successful_write(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        log = MagicMock()
        monkeypatch.setattr("nebula_cert_comment.adapters.file_writer.log", log)
        path = tmp_path / "f.yml"

        InPlaceFileWriter().write(path, b"new")

        log.debug.assert_called_once_with("writer.file_written", path=str(path), size=3)

    def test_logging_failure_is_not_a_write_failure(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """
        GIVEN a log sink that raises BrokenPipeError
        WHEN a file is written successfully
        THEN the logging error propagates as-is and is never reported as IO_ERROR.
        """
        log = MagicMock()
        log.debug.side_effect = BrokenPipeError("stderr closed")
        monkeypatch.setattr("nebula_cert_comment.adapters.file_writer.log", log)
        path = tmp_path / "f.yml"

        with pytest.raises(BrokenPipeError):
            InPlaceFileWriter().write(path, b"new")

        assert path.read_bytes() == b"new"
