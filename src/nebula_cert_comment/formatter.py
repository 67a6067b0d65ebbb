"""
Format entry formatter — renders certificate fields into annotation text.

Each FormatType is served by a pure renderer `(certificate) -> Result[str]`.
format_annotation() visits the configured entries in order, applies the
omit-empty/exclude filters and emits ` key=value` (or the bare JSON document)
for every field that survives. The comment prefix and the trailing newline
are the scanner's job.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from datetime import UTC, datetime

from railway import ErrorCode
from railway.result import Result

from nebula_cert_comment.domain.models import FormatEntry, FormatType
from nebula_cert_comment.domain.ports import Certificate, IPNetwork

_BARE_VALUE = re.compile(r"[-:_a-zA-Z0-9]*")

_NOT_AFTER_FORMAT = "%Y-%m-%d"

type Renderer = Callable[[Certificate], Result[str]]


def _utc_date(ts: datetime) -> str:
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=UTC)
    return ts.astimezone(UTC).strftime(_NOT_AFTER_FORMAT)


def _join_networks(networks: Iterable[IPNetwork]) -> str:
    return ",".join(n.with_prefixlen for n in networks)


_RENDERERS: dict[FormatType, Renderer] = {
    FormatType.NAME: lambda c: Result.success(c.name),
    FormatType.VERSION: lambda c: Result.success(str(c.version)),
    FormatType.CURVE: lambda c: Result.success(c.curve),
    FormatType.GROUPS: lambda c: Result.success(",".join(c.groups)),
    FormatType.NOT_AFTER: lambda c: Result.success(_utc_date(c.not_after)),
    FormatType.FINGERPRINT: lambda c: c.fingerprint(),
    FormatType.NETWORKS: lambda c: Result.success(_join_networks(c.networks)),
    FormatType.UNSAFE_NETWORKS: lambda c: Result.success(_join_networks(c.unsafe_networks)),
    FormatType.JSON: lambda c: c.to_json(),
}


def render_value(certificate: Certificate, entry: FormatEntry) -> Result[str]:
    """Compute the unfiltered string value of one field."""
    renderer = _RENDERERS.get(entry.type)
    if renderer is None:
        return Result.failure(ErrorCode.INVALID_FORMAT_TYPE, f"invalid type: {entry.type!s}")
    return renderer(certificate)


def needs_quotes(value: str) -> bool:
    return _BARE_VALUE.fullmatch(value) is None


# escapes of Go's strconv.Quote, which renders %q
_QUOTE_ESCAPES = {
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\v": "\\v",
    "\\": "\\\\",
    '"': '\\"',
}


def _escape(ch: str) -> str:
    code = ord(ch)
    if code < 0x20 or code == 0x7F:
        return f"\\x{code:02x}"
    if code < 0x10000:
        return f"\\u{code:04x}"
    return f"\\U{code:08x}"


def quote(value: str) -> str:
    """
    Double-quote `value` the way Go's %q verb does.

    Printable characters are kept as-is (non-ASCII included); everything else
    becomes a \\a-style, \\xHH, \\uHHHH or \\UHHHHHHHH escape.
    """
    escaped = (
        _QUOTE_ESCAPES.get(ch) or (ch if ch.isprintable() else _escape(ch)) for ch in value
    )
    return '"' + "".join(escaped) + '"'


def is_suppressed(entry: FormatEntry, value: str) -> bool:
    if entry.omit_empty and value == "":
        return True
    return entry.exclude != "" and entry.exclude == value


def format_entry(certificate: Certificate, entry: FormatEntry) -> Result[str]:
    """
    Render one entry to its annotation fragment.

    Suppressed entries render to the empty string; any other entry renders to
    a fragment starting with a single space.
    """

    def _fragment(value: str) -> str:
        if is_suppressed(entry, value):
            return ""
        if entry.type is FormatType.JSON:
            return f" {value}"
        if needs_quotes(value):
            return f" {entry.type}={quote(value)}"
        return f" {entry.type}={value}"

    return render_value(certificate, entry).map(_fragment)


def format_annotation(certificate: Certificate, entries: Iterable[FormatEntry]) -> Result[str]:
    """
    Render every entry in order and concatenate the fragments.

    The first failing field (e.g. a fingerprint that cannot be computed)
    aborts the whole annotation.
    """
    return Result.all_of(format_entry(certificate, e) for e in entries).map("".join)
