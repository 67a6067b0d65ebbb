"""
Application entry point — parses flags, wires dependencies and runs the pipeline.

Composition root: creates concrete adapters and injects them into the
pipeline. This is the ONLY place where concrete classes are instantiated;
everything else depends on Protocol interfaces.

Responsibilities:
  1. Parse command-line flags
  2. Load and validate configuration (flags override environment)
  3. Configure structlog (stderr, so stdout carries only diffs and paths)
  4. Parse the -format string before any file is touched
  5. Create the concrete adapters and run the pipeline
  6. Map the outcome to an exit status
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Sequence
from pathlib import Path
from typing import BinaryIO

import structlog
from railway import ErrorCode, FailureDescription
from railway.result import Result

from nebula_cert_comment import __version__
from nebula_cert_comment.adapters.file_walker import FilesystemWalker
from nebula_cert_comment.adapters.file_writer import InPlaceFileWriter
from nebula_cert_comment.adapters.nebula_cert import NebulaCertificateDecoder
from nebula_cert_comment.adapters.unified_diff import UnifiedDiffRenderer
from nebula_cert_comment.cli import Flags, parse_flags
from nebula_cert_comment.config import AppSettings
from nebula_cert_comment.domain.models import RunSummary
from nebula_cert_comment.format_entries import parse_format_entries
from nebula_cert_comment.pipeline import OutputModes, run_pipeline
from nebula_cert_comment.scanner import CertBlockScanner

EXIT_OK = 0
EXIT_FAILURE = 1


def _stderr_logger(*args: object) -> structlog.PrintLogger:
    return structlog.PrintLogger(file=sys.stderr)


def configure_structlog(log_level: str = "WARNING") -> None:
    """
    Configure structlog for human-readable console logging on stderr.

    Loggers are not cached and the factory looks up sys.stderr on every
    call, so a replaced or closed stream is never held on to.
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.WARNING)
        ),
        context_class=dict,
        logger_factory=_stderr_logger,
        cache_logger_on_first_use=False,
    )


def load_settings(flags: Flags) -> Result[AppSettings]:
    """Build AppSettings with the given flags applied on top of the environment."""
    return Result.from_computation(
        lambda: AppSettings(**flags.settings_overrides()),
        ErrorCode.CONFIGURATION_ERROR,
        "Configuration error",
    )


def _create_scanner(settings: AppSettings) -> Result[CertBlockScanner]:
    return parse_format_entries(settings.format).map(
        lambda entries: CertBlockScanner(
            decoder=NebulaCertificateDecoder(),
            entries=entries,
            comment_prefix=settings.comment_prefix,
        )
    )


def execute(flags: Flags, settings: AppSettings, out: BinaryIO) -> Result[RunSummary]:
    """Run the pipeline over every path on the command line."""
    modes = OutputModes(diff=flags.diff, write=flags.write, list=flags.list)
    return _create_scanner(settings).flat_map(
        lambda scanner: run_pipeline(
            [Path(p) for p in flags.paths],
            walker=FilesystemWalker(large_file_limit=settings.large_file_limit),
            scanner=scanner,
            diff_renderer=UnifiedDiffRenderer(),
            writer=InPlaceFileWriter(),
            modes=modes,
            out=out,
        )
    )


def _report_failure(error: FailureDescription) -> int:
    log = structlog.get_logger()
    log.error("app.fatal_error", code=error.code.value, error=error.describe())
    log.debug("app.fatal_error_trace", trace=error.full_stack_trace())
    return EXIT_FAILURE


def main(argv: Sequence[str] | None = None, out: BinaryIO | None = None) -> int:
    """
    Run the tool and return the process exit status.

    0 on success; 1 when -e is set and a file changed (or would change),
    or on any fatal error. Usage errors exit with 2 from argparse.
    """
    flags = parse_flags(argv)

    if flags.version:
        print(__version__)  # noqa: T201
        return EXIT_OK

    settings_result = load_settings(flags)
    if settings_result.is_failure():
        print(f"FATAL: {settings_result.error().describe()}", file=sys.stderr)  # noqa: T201
        return EXIT_FAILURE
    settings = settings_result.value()

    configure_structlog(settings.log_level)
    log = structlog.get_logger()
    log.debug(
        "app.starting",
        version=__version__,
        paths=flags.paths,
        diff=flags.diff,
        write=flags.write,
        list=flags.list,
        format=settings.format,
        large_file_limit=settings.large_file_limit,
    )

    result = execute(flags, settings, out if out is not None else sys.stdout.buffer).peek(
        lambda summary: log.debug(
            "app.finished",
            files_scanned=summary.files_scanned,
            changed=len(summary.changed_paths),
        )
    )
    return result.either(
        lambda summary: EXIT_FAILURE if flags.exit and summary.any_changed else EXIT_OK,
        _report_failure,
    )


def run() -> None:
    """Console-script entry point."""
    sys.exit(main())


if __name__ == "__main__":
    run()
