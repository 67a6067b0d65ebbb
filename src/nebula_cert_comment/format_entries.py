"""
Format entry parser — turns a -format string into an ordered list of fields.

Grammar:

    format   := entry ("," entry)*
    entry    := type (":" modifier)*
    modifier := "?"                 omit the field when its value is empty
              | "!=" <value>        omit the field when its value equals <value>

Type tokens are case-insensitive. Order and duplicates are preserved; the
formatter renders entries exactly in this order.
"""

from __future__ import annotations

from railway import ErrorCode
from railway.result import Result

from nebula_cert_comment.domain.models import FormatEntry, FormatType

DEFAULT_FORMAT = "name,version:!=1,groups:?,networks:?,unsafeNetworks:?,notAfter,fingerprint"

_OMIT_EMPTY = "?"
_EXCLUDE = "!="


def parse_format_entry(entry: str) -> Result[FormatEntry]:
    """
    Parse a single `type[:modifier]*` entry.

    Fails with INVALID_FORMAT_TYPE naming the whole entry, or with
    INVALID_MODIFIER naming the offending modifier token.
    """
    token, *modifiers = entry.split(":")
    format_type = FormatType.parse(token)
    if format_type is FormatType.INVALID:
        return Result.failure(ErrorCode.INVALID_FORMAT_TYPE, f"invalid format type: {entry!r}")

    exclude = ""
    omit_empty = False
    for modifier in modifiers:
        if modifier == _OMIT_EMPTY:
            omit_empty = True
        elif modifier.startswith(_EXCLUDE):
            exclude = modifier.removeprefix(_EXCLUDE)
        else:
            return Result.failure(
                ErrorCode.INVALID_MODIFIER, f"invalid format modifier: {modifier!r}"
            )

    return Result.success(FormatEntry(type=format_type, exclude=exclude, omit_empty=omit_empty))


def parse_format_entries(entries: str) -> Result[list[FormatEntry]]:
    """Parse a comma-separated -format string, stopping at the first bad entry."""
    return Result.all_of(parse_format_entry(e) for e in entries.split(","))
