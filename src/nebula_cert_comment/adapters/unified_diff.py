"""
Unified diff adapter — shows what a rewrite would change.

Implements the DiffRenderer port with difflib over raw bytes, so files in
any encoding diff exactly as they are stored. The original side is labelled
`<path>.orig`.
"""

from __future__ import annotations

import difflib
import os
from pathlib import Path

_NO_NEWLINE = b"\\ No newline at end of file\n"


def _split_lines(data: bytes) -> list[bytes]:
    """Split on b"\\n" only, keeping terminators; the last line may lack one."""
    lines = data.split(b"\n")
    tail = lines.pop()
    result = [line + b"\n" for line in lines]
    if tail:
        result.append(tail)
    return result


class UnifiedDiffRenderer:
    """Render a unified diff between original and rewritten bytes."""

    def __init__(self, context_lines: int = 3) -> None:
        self._context_lines = context_lines

    def render(self, path: Path, original: bytes, rewritten: bytes) -> bytes:
        """Return the diff, or b"" when the inputs are identical."""
        diff_lines = difflib.diff_bytes(
            difflib.unified_diff,
            _split_lines(original),
            _split_lines(rewritten),
            fromfile=os.fsencode(f"{path}.orig"),
            tofile=os.fsencode(str(path)),
            n=self._context_lines,
            lineterm=b"\n",
        )

        out = bytearray()
        for line in diff_lines:
            out += line
            if not line.endswith(b"\n"):
                out += b"\n" + _NO_NEWLINE
        return bytes(out)
