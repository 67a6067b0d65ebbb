"""
Unit tests for the main module — composition root.

Tests verify structlog configuration, settings loading and the exit status
mapping; end-to-end runs over real files live in tests/acceptance.
"""

from __future__ import annotations

import io
from pathlib import Path

import pytest
import structlog
from railway import ErrorCode, ResultAssertions

from nebula_cert_comment import __version__
from nebula_cert_comment.cli import Flags
from nebula_cert_comment.main import configure_structlog, load_settings, main


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in ("COMMENT_PREFIX", "FORMAT", "LARGE_FILE_LIMIT", "LOG_LEVEL"):
        monkeypatch.delenv(f"NEBULA_CERT_COMMENT_{name}", raising=False)
    monkeypatch.chdir(tmp_path)


class TestConfigureStructlog:
    """Verify structlog configuration function."""

    def test_logs_go_to_stderr(self, capsys: pytest.CaptureFixture[str]) -> None:
        """
        GIVEN log_level="INFO"
        WHEN configure_structlog is called and an event is logged
        THEN it is written to stderr, never stdout.
        """
        configure_structlog("INFO")
        structlog.get_logger().info("test.event", answer=42)
        captured = capsys.readouterr()
        assert "test.event" in captured.err
        assert captured.out == ""

    def test_default_level_filters_debug(self, capsys: pytest.CaptureFixture[str]) -> None:
        configure_structlog()
        structlog.get_logger().debug("test.hidden")
        structlog.get_logger().warning("test.shown")
        err = capsys.readouterr().err
        assert "test.hidden" not in err
        assert "test.shown" in err

    def test_follows_replaced_stderr(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """
        GIVEN structlog configured while one stderr stream was installed
        WHEN sys.stderr is replaced and that first stream is closed
        THEN events are written to the current stream and logging never fails.
        """
        first = io.StringIO()
        monkeypatch.setattr("sys.stderr", first)
        configure_structlog("DEBUG")
        first.close()

        second = io.StringIO()
        monkeypatch.setattr("sys.stderr", second)
        structlog.get_logger().debug("test.after_swap")

        assert "test.after_swap" in second.getvalue()

    def test_invalid_level_falls_back(self) -> None:
        """
        GIVEN an invalid log_level string
        WHEN configure_structlog is called
        THEN it falls back to WARNING (no crash).
        """
        configure_structlog("NONEXISTENT")
        assert structlog.get_logger() is not None


class TestLoadSettings:
    def test_flags_override_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("NEBULA_CERT_COMMENT_FORMAT", "name")
        settings = ResultAssertions.assert_success(load_settings(Flags(format="curve")))
        assert settings.format == "curve"

    def test_debug_flag_sets_debug_level(self) -> None:
        settings = ResultAssertions.assert_success(load_settings(Flags(debug=True)))
        assert settings.log_level == "DEBUG"

    def test_invalid_settings_are_configuration_error(self) -> None:
        result = load_settings(Flags(large_file_limit=-5))
        ResultAssertions.assert_failure(result, ErrorCode.CONFIGURATION_ERROR)


class TestMain:
    """Verify exit statuses of main()."""

    def test_version(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["-version"]) == 0
        assert capsys.readouterr().out.strip() == __version__

    def test_invalid_format_exits_1_before_touching_files(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """
        GIVEN an unknown formatter and -w
        WHEN main runs
        THEN it exits 1 with a diagnostic and no file is rewritten.
        """
        path = tmp_path / "host.yml"
        path.write_bytes(b"plain\n")
        out = io.BytesIO()

        status = main(["-w", "-format=name,serial", str(path)], out=out)

        assert status == 1
        assert "invalid format type" in capsys.readouterr().err
        assert out.getvalue() == b""
        assert path.read_bytes() == b"plain\n"

    def test_configuration_error_exits_1(self, capsys: pytest.CaptureFixture[str]) -> None:
        assert main(["-large-file-limit=-1"]) == 1
        assert "FATAL: Configuration error" in capsys.readouterr().err

    def test_usage_error_exits_2(self) -> None:
        with pytest.raises(SystemExit) as exc_info:
            main(["-nope"])
        assert exc_info.value.code == 2

    def test_missing_path_exits_1(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        assert main([str(tmp_path / "missing")], out=io.BytesIO()) == 1
        err = capsys.readouterr().err
        assert "app.fatal_error" in err
        assert ErrorCode.IO_ERROR.value in err

    def test_nothing_to_do_exits_0(self, tmp_path: Path) -> None:
        (tmp_path / "plain.txt").write_bytes(b"hello\n")
        assert main(["-e", str(tmp_path)], out=io.BytesIO()) == 0
