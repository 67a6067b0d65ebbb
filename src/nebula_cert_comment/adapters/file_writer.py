"""
File writer adapter — persists rewritten files in place.

Implements the FileWriter port. The file is truncated and rewritten, so its
permissions and ownership are kept.
"""

from __future__ import annotations

from pathlib import Path

import structlog
from railway import ErrorCode
from railway.result import Result

log = structlog.get_logger()


class InPlaceFileWriter:
    """Overwrite a file with new contents."""

    def write(self, path: Path, data: bytes) -> Result[Path]:
        return Result.from_computation(
            lambda: self._do_write(path, data),
            ErrorCode.IO_ERROR,
            f"write {str(path)!r}",
        ).peek(lambda written: log.debug("writer.file_written", path=str(written), size=len(data)))

    def _do_write(self, path: Path, data: bytes) -> Path:
        with path.open("wb") as handle:
            handle.write(data)
        return path
