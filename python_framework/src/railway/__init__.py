"""
Railway-Oriented Programming (ROP) primitives.

Fallible steps return a Result instead of raising, and steps compose with
flat_map so the first failure short-circuits the rest of the chain.

    from railway import Result, ErrorCode

    def parse_limit(raw: str) -> Result[int]:
        if not raw.isdigit():
            return Result.failure(ErrorCode.CONFIGURATION_ERROR, f"not a byte count: {raw!r}")
        return Result.success(int(raw))
"""

from railway.result import Result, Success, Failure
from railway.failure import ErrorCode, FailureDescription
from railway.assertions import ResultAssertions

__all__ = [
    "Result",
    "Success",
    "Failure",
    "ErrorCode",
    "FailureDescription",
    "ResultAssertions",
]

__version__ = "1.0.0"
