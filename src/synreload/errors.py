"""Error taxonomy for the reload subsystem.

Every failure a reload cycle can hit is a ``SynReloadError`` carrying a
machine-readable ``ErrorCode``. Library exceptions (``aiosqlite.Error``,
``httpx.HTTPError``) are translated at the source-client boundary and never
reach the scheduler untyped.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorCode(StrEnum):
    SOURCE_UNAVAILABLE = "SOURCE_UNAVAILABLE"
    QUERY_FAILED = "QUERY_FAILED"
    MALFORMED_RULE = "MALFORMED_RULE"
    RELOAD_TIMEOUT = "RELOAD_TIMEOUT"


class SynReloadError(Exception):
    """Base class for all recoverable reload failures."""

    def __init__(self, code: ErrorCode, message: str, *, recoverable: bool = True) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.recoverable = recoverable


class SourceConnectionError(SynReloadError):
    """The external store could not be reached, even after one reconnect."""

    def __init__(self, message: str) -> None:
        super().__init__(ErrorCode.SOURCE_UNAVAILABLE, message)


class QueryError(SynReloadError):
    """A query ran but failed, or returned rows of an unexpected shape."""

    def __init__(self, message: str) -> None:
        super().__init__(ErrorCode.QUERY_FAILED, message)


class BuildError(SynReloadError):
    pass


class MalformedRuleError(BuildError):
    def __init__(self, line_number: int, line: str, reason: str) -> None:
        super().__init__(
            ErrorCode.MALFORMED_RULE,
            f"Malformed synonym rule at line {line_number}: {line!r} ({reason})",
            recoverable=False,
        )
        self.line_number = line_number
        self.line = line
        self.reason = reason


class ReloadTimeoutError(SynReloadError):
    def __init__(self, timeout_seconds: float) -> None:
        super().__init__(
            ErrorCode.RELOAD_TIMEOUT,
            f"Reload cycle exceeded {timeout_seconds}s and was abandoned",
        )
        self.timeout_seconds = timeout_seconds
