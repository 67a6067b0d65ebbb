"""
Command-line flags.

Flags keep the single-dash spelling of the Go flag package (`-debug`,
`-format=...`); the double-dash form is accepted as well. Valued flags
default to None so that only the flags actually given override AppSettings.
"""

from __future__ import annotations

import argparse
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

_USAGE = "nebula-cert-comment [OPTION]... [FILE]..."

_EPILOG = """\
If none of "-d, -l, -w" are specified, defaults to "-d".

If a directory is specified for FILE, it is searched recursively. Symlinks are
currently skipped.

Format string is a comma separated list of formatters with optional modifiers
(separated by colons)

    Formatters:

        name            --  name of the certificate
        version         --  version of the certificate
        curve           --  curve of the certificate
        groups          --  comma separated list of groups defined on the certificate
        notAfter        --  expiration timestamp in UTC of the certificate, formatted as YYYY-MM-DD
        fingerprint     --  fingerprint of the certificate
        networks        --  networks listed in certificate
        unsafeNetworks  --  unsafeNetworks listed in certificate
        json            --  the whole certificate as JSON

    Modifiers:

        !=<exclusion>  --  omits entry if it matches the exclusion string
                           EXAMPLES:  "version:!=1", "curve:!=P256"
        ?              --  omits entry if blank
                           EXAMPLES:  "groups:?"

Defaults for -comment, -format and -large-file-limit can also be set with the
NEBULA_CERT_COMMENT_COMMENT_PREFIX, NEBULA_CERT_COMMENT_FORMAT and
NEBULA_CERT_COMMENT_LARGE_FILE_LIMIT environment variables.
"""


@dataclass(slots=True)
class Flags:
    """Parsed command line. `diff` is already implied when no output mode was given."""

    diff: bool = False
    write: bool = False
    list: bool = False
    exit: bool = False
    debug: bool = False
    version: bool = False
    large_file_limit: int | None = None
    comment_prefix: str | None = None
    format: str | None = None
    paths: list[str] = field(default_factory=lambda: ["."])

    def settings_overrides(self) -> dict[str, Any]:
        """Valued flags that were given, keyed by AppSettings field name."""
        overrides: dict[str, Any] = {
            "large_file_limit": self.large_file_limit,
            "comment_prefix": self.comment_prefix,
            "format": self.format,
        }
        if self.debug:
            overrides["log_level"] = "DEBUG"
        return {k: v for k, v in overrides.items() if v is not None}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nebula-cert-comment",
        usage=_USAGE,
        description="Annotate Nebula certificates embedded in text files.",
        epilog=_EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
        allow_abbrev=False,
    )
    parser.add_argument("-d", dest="diff", action="store_true", help="display diffs")
    parser.add_argument("-w", dest="write", action="store_true", help="write result to files")
    parser.add_argument(
        "-l", dest="list", action="store_true", help="list files whose comments need updating"
    )
    parser.add_argument(
        "-e", dest="exit", action="store_true", help="exit(1) if changes needed/made"
    )
    parser.add_argument("-debug", "--debug", action="store_true", help="log files we are skipping")
    parser.add_argument(
        "-version", "--version", action="store_true", help="print version and exit"
    )
    parser.add_argument(
        "-large-file-limit",
        "--large-file-limit",
        dest="large_file_limit",
        type=int,
        metavar="BYTES",
        help="don't process files larger than this in bytes, set to 0 to disable "
        "(default 10000000)",
    )
    parser.add_argument(
        "-comment",
        "--comment",
        dest="comment_prefix",
        metavar="PREFIX",
        help='prefix for comment lines (default "# nebula:")',
    )
    parser.add_argument(
        "-format",
        "--format",
        dest="format",
        metavar="FORMAT",
        help="the formatters to use for the comment",
    )
    parser.add_argument("paths", nargs="*", metavar="FILE")
    return parser


def parse_flags(argv: Sequence[str] | None = None) -> Flags:
    """
    Parse argv into Flags.

    Usage errors exit with status 2 (argparse convention).
    """
    ns = build_parser().parse_args(argv)
    flags = Flags(
        diff=ns.diff,
        write=ns.write,
        list=ns.list,
        exit=ns.exit,
        debug=ns.debug,
        version=ns.version,
        large_file_limit=ns.large_file_limit,
        comment_prefix=ns.comment_prefix,
        format=ns.format,
        paths=ns.paths or ["."],
    )
    if not (flags.diff or flags.write or flags.list):
        flags.diff = True
    return flags
