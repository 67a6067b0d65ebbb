"""
Domain models — immutable values shared by the parser, formatter and scanner.

FormatType/FormatEntry describe one field of an annotation line as configured
by the -format string. ScanOutcome and RunSummary carry the results of
scanning one file and of a whole run.

All models are frozen dataclasses (immutable) following functional principles.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, unique
from pathlib import Path


@unique
class FormatType(Enum):
    """
    Certificate field selectable in an annotation.

    Member values are the canonical spelling used both in -format strings and
    as the `key=` of the rendered annotation. INVALID is what parse() returns
    for an unknown token; it never appears in a parsed FormatEntry.
    """

    INVALID = ""
    NAME = "name"
    VERSION = "version"
    CURVE = "curve"
    GROUPS = "groups"
    NOT_AFTER = "notAfter"
    FINGERPRINT = "fingerprint"
    NETWORKS = "networks"
    UNSAFE_NETWORKS = "unsafeNetworks"
    JSON = "json"

    @classmethod
    def parse(cls, token: str) -> FormatType:
        """Case-insensitive lookup; total, returns INVALID on no match."""
        if not token:
            return cls.INVALID
        return _FORMAT_TYPES_BY_TOKEN.get(token.lower(), cls.INVALID)

    def __str__(self) -> str:
        return self.value


_FORMAT_TYPES_BY_TOKEN: dict[str, FormatType] = {
    t.value.lower(): t for t in FormatType if t is not FormatType.INVALID
}


@dataclass(frozen=True, slots=True)
class FormatEntry:
    """
    One field of the annotation, in the order it was configured.

    `exclude` suppresses the field when the rendered value equals it exactly;
    an empty exclude never suppresses. `omit_empty` suppresses the field when
    the rendered value is the empty string.
    """

    type: FormatType
    exclude: str = ""
    omit_empty: bool = False


@dataclass(frozen=True, slots=True)
class ScanOutcome:
    """
    Result of scanning one file.

    `source` is exactly the bytes consumed (kept for the diff); `output` is
    the rewritten file. Callers persist `output` only when `found` is true.
    """

    found: bool
    source: bytes = field(default=b"", repr=False)
    output: bytes = field(default=b"", repr=False)
    blocks: int = 0
    binary: bool = False

    @property
    def changed(self) -> bool:
        return self.found and self.source != self.output


@dataclass(frozen=True, slots=True)
class FileReport:
    """What happened to a single file during a run."""

    path: Path
    changed: bool
    skipped: str | None = None


@dataclass(frozen=True, slots=True)
class RunSummary:
    """Aggregate over every file visited by a run."""

    reports: list[FileReport] = field(default_factory=list)

    @property
    def files_scanned(self) -> int:
        return sum(1 for r in self.reports if r.skipped is None)

    @property
    def changed_paths(self) -> list[Path]:
        return [r.path for r in self.reports if r.changed]

    @property
    def any_changed(self) -> bool:
        return any(r.changed for r in self.reports)
