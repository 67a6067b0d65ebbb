"""
Scanner/rewriter — the line-oriented state machine at the heart of the tool.

Input is consumed one physical line at a time. Outside a certificate block
lines are copied verbatim, except stale annotation lines (stripped content
starts with the comment prefix), which are dropped. A BEGIN marker opens a
block; its END marker closes it, at which point the buffered block is
decoded, an annotation line is rendered, and

    <padding><comment prefix><annotation>\\n
    <block lines, byte-for-byte as read>

is appended to the output. Every input line is accounted for exactly once:
copied, buffered into a block, or dropped.

The scanner never writes anything; callers decide what to do with the
ScanOutcome (diff it, list it, persist it).
"""

from __future__ import annotations

import io
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO

import structlog
from railway import ErrorCode, FailureDescription
from railway.result import Failure, Result

from nebula_cert_comment.domain.models import FormatEntry, ScanOutcome
from nebula_cert_comment.domain.ports import CertificateDecoder
from nebula_cert_comment.formatter import format_annotation

log = structlog.get_logger()

DEFAULT_COMMENT_PREFIX = "# nebula:"

BEGIN_V1 = b"-----BEGIN NEBULA CERTIFICATE-----"
END_V1 = b"-----END NEBULA CERTIFICATE-----"
BEGIN_V2 = b"-----BEGIN NEBULA CERTIFICATE V2-----"
END_V2 = b"-----END NEBULA CERTIFICATE V2-----"

# BEGIN marker → the END marker that closes it
_BLOCK_MARKERS: dict[bytes, bytes] = {
    BEGIN_V1: END_V1,
    BEGIN_V2: END_V2,
}

_PADDING_CHARS = b" \t"


def _begin_marker(trimmed: bytes) -> bytes | None:
    for begin in _BLOCK_MARKERS:
        if trimmed.startswith(begin):
            return begin
    return None


@dataclass(slots=True)
class ScanState:
    """
    Per-file scan state. Never shared between files.

    `raw` holds the block lines exactly as read (re-emitted untouched);
    `stripped` holds the same lines with the block's padding removed and is
    what gets decoded.
    """

    in_cert_block: bool = False
    padding: bytes = b""
    end_marker: bytes = b""
    start_line: int = 0
    raw: bytearray = field(default_factory=bytearray)
    stripped: bytearray = field(default_factory=bytearray)

    def open_block(self, line: bytes, begin_marker: bytes, line_no: int) -> None:
        self.in_cert_block = True
        self.padding = line[: line.index(b"-")]
        self.end_marker = _BLOCK_MARKERS[begin_marker]
        self.start_line = line_no
        self.append(line)

    def append(self, line: bytes) -> None:
        self.raw += line
        self.stripped += line.removeprefix(self.padding)

    def reset(self) -> None:
        """Return to the OUTSIDE state with empty buffers."""
        self.in_cert_block = False
        self.padding = b""
        self.end_marker = b""
        self.start_line = 0
        self.raw.clear()
        self.stripped.clear()


class CertBlockScanner:
    """
    Rewrite the annotation line above every Nebula certificate block.

    A scanner holds only configuration (decoder, fields, comment prefix), so
    one instance can scan any number of files; each scan gets a fresh
    ScanState.
    """

    def __init__(
        self,
        decoder: CertificateDecoder,
        entries: Sequence[FormatEntry],
        comment_prefix: str = DEFAULT_COMMENT_PREFIX,
    ) -> None:
        self._decoder = decoder
        self._entries = tuple(entries)
        self._comment_prefix = comment_prefix.encode()

    def scan_file(self, path: Path) -> Result[ScanOutcome]:
        """Read `path` fully and scan it. Open and read errors fail with IO_ERROR."""
        return Result.from_computation(
            path.read_bytes, ErrorCode.IO_ERROR, f"read {str(path)!r}"
        ).flat_map(lambda data: self.scan_bytes(data, name=str(path)))

    def scan_bytes(self, data: bytes, name: str = "<bytes>") -> Result[ScanOutcome]:
        return self.scan(io.BytesIO(data), name=name)

    def scan(
        self, lines: BinaryIO | Iterable[bytes], name: str = "<stream>"
    ) -> Result[ScanOutcome]:
        """
        Run the state machine over newline-terminated lines.

        Returns the outcome, or the first failure: CERT_DECODE_ERROR or
        FINGERPRINT_ERROR while rendering a block, TRUNCATED_BLOCK when the
        input ends inside a block. Errors raised by `lines` itself propagate.
        """
        state = ScanState()
        source = bytearray()
        output = bytearray()
        blocks = 0

        for line_no, line in enumerate(lines, start=1):
            if line_no == 1 and b"\x00" in line:
                log.debug("scan.skip_binary", path=name)
                return Result.success(ScanOutcome(found=False, binary=True))

            source += line
            trimmed = line.lstrip(_PADDING_CHARS)

            if not state.in_cert_block and (begin := _begin_marker(trimmed)):
                state.open_block(line, begin, line_no)
            elif state.in_cert_block and trimmed.startswith(state.end_marker):
                state.append(line)
                rendered = self._render_block(state, name)
                if rendered.is_failure():
                    return Failure(rendered.error())
                output += rendered.value()
                state.reset()
                blocks += 1
            elif not state.in_cert_block and trimmed.startswith(self._comment_prefix):
                # stale annotation; a fresh one is emitted with the next block
                continue
            elif state.in_cert_block:
                state.append(line)
            else:
                output += line

        if state.in_cert_block:
            return Result.failure(
                ErrorCode.TRUNCATED_BLOCK,
                f"{name}:{state.start_line}: certificate block has no END marker",
            )

        return Result.success(
            ScanOutcome(
                found=blocks > 0,
                source=bytes(source),
                output=bytes(output),
                blocks=blocks,
            )
        )

    def _render_block(self, state: ScanState, name: str) -> Result[bytes]:
        """Decode the buffered block and build `annotation line + raw block`."""
        start_line = state.start_line
        return (
            self._decoder.decode(bytes(state.stripped))
            .flat_map(lambda cert: format_annotation(cert, self._entries))
            .map(
                lambda annotation: b"".join(
                    (state.padding, self._comment_prefix, annotation.encode(), b"\n", state.raw)
                )
            )
            .map_failure(
                lambda err: FailureDescription(
                    err.code, f"{name}:{start_line}: {err.message}", err.exception
                )
            )
            .peek(lambda _: log.debug("scan.block_annotated", path=name, line=start_line))
        )
