"""
Transactional executor.

Opens a transaction, runs a unit of work against it and resolves the
transaction from the outcome:

- the unit of work returns → commit
- the unit of work raises an ``Exception`` → rollback, re-raise
- the unit of work is interrupted by a ``BaseException`` that is not an
  ``Exception`` (``KeyboardInterrupt``, ``SystemExit``, task cancellation...)
  → best-effort rollback, re-raise unchanged

Exactly one of commit / rollback is attempted for every transaction that was
successfully begun, before control returns to the caller.
"""

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from functools import wraps
from typing import Any, Callable, Generic, Iterator, Optional, TypeVar

from txexec.db.adapters import as_database
from txexec.utils.helpers import generate_tx_id

from .context import Context
from .exceptions import BeginError, CleanupError, CommitError, RollbackError
from .interfaces import Transaction
from .options import ConfigOption, TxConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")

TxFunc = Callable[[Transaction], T]

# PostgreSQL: drop server-side prepared statements left on a pooled connection.
DEALLOCATE_ALL = "DEALLOCATE ALL"


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Result of :func:`try_execute`: either a value or the error that replaced it."""

    value: Optional[T] = None
    error: Optional[Exception] = None

    def __post_init__(self):
        if self.error is not None and self.value is not None:
            raise ValueError("an Outcome carrying an error cannot carry a value")

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        """Return the value or raise the stored error."""
        if self.error is not None:
            raise self.error
        return self.value


def _rollback_quietly(tx: Transaction, tx_id: str) -> None:
    try:
        tx.rollback()
    except Exception as e:
        logger.warning(f"[{tx_id}] Best-effort rollback failed: {e}")


@contextmanager
def transaction(
    db: Any,
    *options: ConfigOption,
    ctx: Optional[Context] = None,
    config: Optional[TxConfig] = None,
) -> Iterator[Transaction]:
    """
    Provide a transactional scope around the enclosed block.

    Args:
        db: ``Database`` implementation or SQLAlchemy ``Engine``
        *options: functional options applied on top of ``config``
        ctx: cancellation / deadline context, background when omitted
        config: base configuration, defaults when omitted

    Yields:
        Transaction: handle valid until the block exits

    Raises:
        BeginError: the transaction could not be started
        CleanupError: ``DEALLOCATE ALL`` failed (transaction rolled back)
        RollbackError: the block failed and so did the rollback
        CommitError: the block succeeded but the commit failed
    """
    ctx = ctx if ctx is not None else Context.background()
    config = TxConfig.build(*options, base=config)
    database = as_database(db)
    tx_id = generate_tx_id()

    try:
        tx = database.begin_transaction(ctx, config.tx_options)
    except Exception as e:
        logger.warning(f"[{tx_id}] Failed to begin transaction: {e}")
        raise BeginError(e, tx_id=tx_id) from e
    logger.debug(
        f"[{tx_id}] Transaction begun (isolation={config.isolation_level.name}, read_only={config.read_only})"
    )

    if config.deallocate_all:
        try:
            tx.execute(ctx, DEALLOCATE_ALL)
        except Exception as e:
            logger.warning(f"[{tx_id}] {DEALLOCATE_ALL} failed, rolling back: {e}")
            _rollback_quietly(tx, tx_id)
            raise CleanupError(e, DEALLOCATE_ALL, tx_id=tx_id) from e
        except BaseException:
            _rollback_quietly(tx, tx_id)
            raise

    try:
        yield tx
    except Exception as e:
        try:
            tx.rollback()
        except Exception as rollback_error:
            logger.error(f"[{tx_id}] Rollback failed after error {e!r}: {rollback_error}")
            raise RollbackError(rollback_error, e, tx_id=tx_id) from e
        logger.debug(f"[{tx_id}] Rolled back after error: {e!r}")
        raise
    except BaseException as e:
        _rollback_quietly(tx, tx_id)
        logger.debug(f"[{tx_id}] Rolled back after abrupt {type(e).__name__}")
        raise

    try:
        tx.commit()
    except Exception as e:
        logger.error(f"[{tx_id}] Commit failed: {e}")
        raise CommitError(e, tx_id=tx_id) from e
    logger.debug(f"[{tx_id}] Committed")


def execute_context(
    ctx: Optional[Context],
    db: Any,
    tx_func: TxFunc[T],
    *options: ConfigOption,
    config: Optional[TxConfig] = None,
) -> T:
    """
    Run ``tx_func`` inside a transaction and return its result.

    The result is only returned once the commit went through; a failed commit
    raises ``CommitError`` and the result is dropped.
    """
    with transaction(db, *options, ctx=ctx, config=config) as tx:
        return tx_func(tx)


def execute(db: Any, tx_func: TxFunc[T], *options: ConfigOption, config: Optional[TxConfig] = None) -> T:
    """:func:`execute_context` with a background context."""
    return execute_context(Context.background(), db, tx_func, *options, config=config)


def try_execute(
    ctx: Optional[Context],
    db: Any,
    tx_func: TxFunc[T],
    *options: ConfigOption,
    config: Optional[TxConfig] = None,
) -> Outcome[T]:
    """
    Like :func:`execute_context` but report errors in an :class:`Outcome`.

    Only ``Exception`` subclasses are captured; abrupt failures still
    propagate after the rollback.
    """
    try:
        return Outcome(value=execute_context(ctx, db, tx_func, *options, config=config))
    except Exception as e:
        return Outcome(error=e)


def transactional(
    db: Any,
    *options: ConfigOption,
    ctx: Optional[Context] = None,
    config: Optional[TxConfig] = None,
):
    """
    Decorator running the wrapped function as a unit of work.

    The transaction handle is passed as the first positional argument, the
    caller's own arguments follow. Every call runs under ``ctx`` when one is
    given.

    Examples:
        >>> @transactional(engine, with_isolation_level("SERIALIZABLE"))
        ... def transfer(tx, source, target, amount):
        ...     ...
        >>> transfer(1, 2, 100)
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            return execute_context(
                ctx, db, lambda tx: func(tx, *args, **kwargs), *options, config=config
            )

        return wrapper

    return decorator
