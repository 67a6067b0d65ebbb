"""
Filesystem walker adapter — enumerates the files a run should scan.

Implements the FileWalker port. Directories are walked recursively in
lexical order so runs are reproducible. Symbolic links are never followed
or scanned, and files above the size limit are skipped; both are reported
only as debug log events.
"""

from __future__ import annotations

import stat
from collections.abc import Iterator
from pathlib import Path

import structlog
from railway import ErrorCode
from railway.result import Result

log = structlog.get_logger()

DEFAULT_LARGE_FILE_LIMIT = 10 * 1000 * 1000


class FilesystemWalker:
    """
    Walk paths depth-first, yielding one Result per regular file.

    A large_file_limit of 0 disables the size check.
    """

    def __init__(self, large_file_limit: int = DEFAULT_LARGE_FILE_LIMIT) -> None:
        self._large_file_limit = large_file_limit

    def walk(self, root: Path) -> Iterator[Result[Path]]:
        yield from self._visit(root)

    def _visit(self, path: Path) -> Iterator[Result[Path]]:
        try:
            info = path.lstat()
        except OSError as e:
            yield Result.failure(ErrorCode.IO_ERROR, f"walk {str(path)!r}", e)
            return

        if stat.S_ISLNK(info.st_mode):
            log.debug("walk.skip_symlink", path=str(path))
            return

        if stat.S_ISDIR(info.st_mode):
            try:
                children = sorted(path.iterdir())
            except OSError as e:
                yield Result.failure(ErrorCode.IO_ERROR, f"walk {str(path)!r}", e)
                return
            for child in children:
                yield from self._visit(child)
            return

        if not stat.S_ISREG(info.st_mode):
            log.debug("walk.skip_special_file", path=str(path))
            return

        if self._large_file_limit > 0 and info.st_size > self._large_file_limit:
            log.debug(
                "walk.skip_large_file",
                path=str(path),
                size=info.st_size,
                limit=self._large_file_limit,
            )
            return

        yield Result.success(path)
