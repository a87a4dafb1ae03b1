"""
Exceptions for the transaction executor.

Each phase of the begin → run → resolve lifecycle has its own exception so
callers can tell which step failed. The underlying driver error is always
kept: it is chained as ``__cause__`` and exposed as ``.cause``.
"""

from typing import Any, Dict, Optional, Type, TypeVar

E = TypeVar("E", bound=BaseException)


class TxExecError(Exception):
    """Base exception for the transaction executor."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ):
        self.message = message
        self.error_code = error_code or "TX_ERROR"
        self.details = details or {}
        self.cause = cause
        super().__init__(self.message)

    def __str__(self) -> str:
        text = f"{self.message}: {self.cause}" if self.cause is not None else self.message
        if self.details:
            return f"{text} (Code: {self.error_code}, Details: {self.details})"
        return f"{text} (Code: {self.error_code})"


class BeginError(TxExecError):
    """The transaction could not be started."""

    def __init__(self, cause: BaseException, tx_id: Optional[str] = None):
        super().__init__(
            message="failed to begin transaction",
            error_code="TX_BEGIN_FAILED",
            details={"tx_id": tx_id} if tx_id else None,
            cause=cause,
        )


class CleanupError(TxExecError):
    """The dialect cleanup statement run after begin failed."""

    def __init__(self, cause: BaseException, statement: str, tx_id: Optional[str] = None):
        details: Dict[str, Any] = {"statement": statement}
        if tx_id:
            details["tx_id"] = tx_id
        super().__init__(
            message="failed to deallocate prepared statements",
            error_code="TX_CLEANUP_FAILED",
            details=details,
            cause=cause,
        )


class CommitError(TxExecError):
    """The unit of work succeeded but the commit failed."""

    def __init__(self, cause: BaseException, tx_id: Optional[str] = None):
        super().__init__(
            message="failed to commit transaction",
            error_code="TX_COMMIT_FAILED",
            details={"tx_id": tx_id} if tx_id else None,
            cause=cause,
        )


class RollbackError(TxExecError):
    """
    Rolling back after a failed unit of work failed as well.

    The rollback failure is the headline; the unit of work's own error stays
    the cause so ``find_cause`` still reaches it.
    """

    def __init__(self, rollback_error: BaseException, original: BaseException, tx_id: Optional[str] = None):
        self.rollback_error = rollback_error
        super().__init__(
            message=f"transaction rollback failed: {rollback_error} (original error: {original})",
            error_code="TX_ROLLBACK_FAILED",
            details={"tx_id": tx_id} if tx_id else None,
            cause=original,
        )

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (Code: {self.error_code}, Details: {self.details})"
        return f"{self.message} (Code: {self.error_code})"


class UnsupportedOptionError(TxExecError):
    """A transaction option the database dialect cannot honour."""

    def __init__(self, message: str, option: str, dialect: Optional[str] = None):
        super().__init__(
            message=message,
            error_code="TX_UNSUPPORTED_OPTION",
            details={"option": option, "dialect": dialect},
        )


class ContextError(Exception):
    """Base class for errors reported by a done ``Context``."""


class ContextCancelledError(ContextError):
    """The context was cancelled."""

    def __init__(self, message: str = "context canceled"):
        super().__init__(message)


class DeadlineExceededError(ContextError, TimeoutError):
    """The context deadline passed."""

    def __init__(self, message: str = "context deadline exceeded"):
        super().__init__(message)


def find_cause(exc: Optional[BaseException], exc_type: Type[E]) -> Optional[E]:
    """
    Return the first exception of ``exc_type`` in the chain starting at ``exc``.

    Follows ``__cause__`` first, then ``__context__`` unless the chain was
    explicitly suppressed. Returns ``None`` when nothing matches.
    """
    seen = set()
    while exc is not None and id(exc) not in seen:
        if isinstance(exc, exc_type):
            return exc
        seen.add(id(exc))
        if exc.__cause__ is not None:
            exc = exc.__cause__
        elif not exc.__suppress_context__:
            exc = exc.__context__
        else:
            exc = None
    return None
