"""
Failure description — structured error information for the failure track.

An ErrorCode names the category of failure (what the CLI reports and how a
caller may branch on it); a FailureDescription carries the code plus a
human-readable message and, optionally, the exception that caused it.
"""

from __future__ import annotations

import traceback
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum, unique


@unique
class ErrorCode(Enum):
    """
    Error taxonomy for the certificate annotation run.

    Every code except the skip-style early outs is fatal: the run stops at the
    first failure and the process exits with status 1.
    """

    IO_ERROR = "IO_ERROR"
    """Open, read, write or directory walk failure."""

    CERT_DECODE_ERROR = "CERT_DECODE_ERROR"
    """Bytes between the markers are not a valid certificate."""

    INVALID_FORMAT_TYPE = "INVALID_FORMAT_TYPE"
    """Unknown field type in a -format string."""

    INVALID_MODIFIER = "INVALID_MODIFIER"
    """Unknown modifier in a -format string."""

    FINGERPRINT_ERROR = "FINGERPRINT_ERROR"
    """Certificate digest could not be computed."""

    TRUNCATED_BLOCK = "TRUNCATED_BLOCK"
    """Input ended before the END marker of an open certificate block."""

    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"
    """Settings failed validation."""


@dataclass(frozen=True, slots=True)
class FailureDescription:
    """
    Immutable failure descriptor: error code, message, optional cause, timestamp.

    >>> desc = FailureDescription(ErrorCode.INVALID_MODIFIER, 'invalid format modifier: "x"')
    >>> desc.code
    <ErrorCode.INVALID_MODIFIER: 'INVALID_MODIFIER'>
    """

    code: ErrorCode
    message: str
    exception: BaseException | None = field(default=None, repr=False)
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def describe(self) -> str:
        """Message plus the cause, as shown to the user on a fatal error."""
        if self.exception is None:
            return self.message
        return f"{self.message}: {self.exception}"

    def full_stack_trace(self) -> str:
        """Message followed by the formatted exception chain, for debug output."""
        if self.exception is None:
            return self.message
        tb = "".join(
            traceback.format_exception(
                type(self.exception), self.exception, self.exception.__traceback__
            )
        )
        return f"{self.message}\n{tb}"

    def __str__(self) -> str:
        return f"{self.code.value}: {self.describe()}"
