"""
Pipeline — walks the input paths and routes every scanned file to its outputs.

All I/O is injected via ports (Protocol interfaces), so the pipeline itself
only decides WHAT happens to a file:

  walker.walk(root)
    → scanner.scan_file(path)
      → (changed?) list / diff / write

Each stage returns Result[T]. The first failure (unreadable file, bad
certificate, truncated block, failed write) short-circuits the whole run;
files already written stay written.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

import structlog
from railway import ErrorCode
from railway.result import Result

from nebula_cert_comment.domain.models import FileReport, RunSummary, ScanOutcome
from nebula_cert_comment.domain.ports import DiffRenderer, FileWalker, FileWriter
from nebula_cert_comment.scanner import CertBlockScanner

log = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class OutputModes:
    """Which outputs a changed file is routed to. Any combination is valid."""

    diff: bool = True
    write: bool = False
    list: bool = False


def _emit(out: BinaryIO, data: bytes) -> Result[int]:
    def _write() -> int:
        out.write(data)
        out.flush()
        return len(data)

    return Result.from_computation(_write, ErrorCode.IO_ERROR, "write to output")


def _route(
    path: Path,
    outcome: ScanOutcome,
    diff_renderer: DiffRenderer,
    writer: FileWriter,
    modes: OutputModes,
    out: BinaryIO,
) -> Result[FileReport]:
    """List, diff and/or persist one changed file, in that order."""
    log.info("pipeline.file_changed", path=str(path), blocks=outcome.blocks)
    result: Result[object] = Result.success(path)
    if modes.list:
        result = result.flat_map(lambda _: _emit(out, f"{path}\n".encode()))
    if modes.diff:
        result = result.flat_map(
            lambda _: _emit(out, diff_renderer.render(path, outcome.source, outcome.output))
        )
    if modes.write:
        result = result.flat_map(lambda _: writer.write(path, outcome.output))
    return result.map(lambda _: FileReport(path=path, changed=True))


def process_file(
    path: Path,
    *,
    scanner: CertBlockScanner,
    diff_renderer: DiffRenderer,
    writer: FileWriter,
    modes: OutputModes,
    out: BinaryIO,
) -> Result[FileReport]:
    """
    Scan a single file and act on the outcome.

    Binary files are reported as skipped; files without certificate blocks
    or whose annotations are already current are reported as unchanged and
    never touched.
    """

    def _act(outcome: ScanOutcome) -> Result[FileReport]:
        if outcome.binary:
            return Result.success(FileReport(path=path, changed=False, skipped="binary"))
        if not outcome.changed:
            return Result.success(FileReport(path=path, changed=False))
        return _route(path, outcome, diff_renderer, writer, modes, out)

    return scanner.scan_file(path).flat_map(_act)


def run_pipeline(
    paths: Iterable[Path],
    *,
    walker: FileWalker,
    scanner: CertBlockScanner,
    diff_renderer: DiffRenderer,
    writer: FileWriter,
    modes: OutputModes,
    out: BinaryIO,
) -> Result[RunSummary]:
    """
    Process every file below every path, in walk order.

    Returns a RunSummary with one report per visited file, or the failure
    that stopped the run.
    """

    def _reports() -> Iterator[Result[FileReport]]:
        for root in paths:
            for walked in walker.walk(root):
                yield walked.flat_map(
                    lambda path: process_file(
                        path,
                        scanner=scanner,
                        diff_renderer=diff_renderer,
                        writer=writer,
                        modes=modes,
                        out=out,
                    )
                )

    return Result.all_of(_reports()).map(lambda reports: RunSummary(reports=reports))
