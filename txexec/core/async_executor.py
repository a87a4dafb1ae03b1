"""
asyncio flavour of the transactional executor.

Same lifecycle and guarantees as :mod:`txexec.core.executor`. Task
cancellation (``asyncio.CancelledError``) is an abrupt failure: the
transaction is rolled back and the cancellation propagates unchanged.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, Optional, TypeVar

from txexec.utils.helpers import generate_tx_id

from .context import Context
from .exceptions import BeginError, CleanupError, CommitError, RollbackError
from .executor import DEALLOCATE_ALL
from .interfaces import AsyncDatabase, AsyncTransaction
from .options import ConfigOption, TxConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")

AsyncTxFunc = Callable[[AsyncTransaction], Awaitable[T]]


def _as_async_database(db: Any) -> AsyncDatabase:
    if callable(getattr(db, "begin_transaction", None)):
        return db
    # Deferred so the sync API never pulls in sqlalchemy.ext.asyncio.
    from txexec.db.async_adapters import as_async_database

    return as_async_database(db)


async def _rollback_quietly(tx: AsyncTransaction, tx_id: str) -> None:
    try:
        await tx.rollback()
    except Exception as e:
        logger.warning(f"[{tx_id}] Best-effort rollback failed: {e}")


@asynccontextmanager
async def async_transaction(
    db: Any,
    *options: ConfigOption,
    ctx: Optional[Context] = None,
    config: Optional[TxConfig] = None,
) -> AsyncIterator[AsyncTransaction]:
    """Async counterpart of :func:`txexec.core.executor.transaction`."""
    ctx = ctx if ctx is not None else Context.background()
    config = TxConfig.build(*options, base=config)
    database = _as_async_database(db)
    tx_id = generate_tx_id()

    try:
        tx = await database.begin_transaction(ctx, config.tx_options)
    except Exception as e:
        logger.warning(f"[{tx_id}] Failed to begin transaction: {e}")
        raise BeginError(e, tx_id=tx_id) from e
    logger.debug(
        f"[{tx_id}] Transaction begun (isolation={config.isolation_level.name}, read_only={config.read_only})"
    )

    if config.deallocate_all:
        try:
            await tx.execute(ctx, DEALLOCATE_ALL)
        except Exception as e:
            logger.warning(f"[{tx_id}] {DEALLOCATE_ALL} failed, rolling back: {e}")
            await _rollback_quietly(tx, tx_id)
            raise CleanupError(e, DEALLOCATE_ALL, tx_id=tx_id) from e
        except BaseException:
            await _rollback_quietly(tx, tx_id)
            raise

    try:
        yield tx
    except Exception as e:
        try:
            await tx.rollback()
        except Exception as rollback_error:
            logger.error(f"[{tx_id}] Rollback failed after error {e!r}: {rollback_error}")
            raise RollbackError(rollback_error, e, tx_id=tx_id) from e
        logger.debug(f"[{tx_id}] Rolled back after error: {e!r}")
        raise
    except BaseException as e:
        await _rollback_quietly(tx, tx_id)
        logger.debug(f"[{tx_id}] Rolled back after abrupt {type(e).__name__}")
        raise

    try:
        await tx.commit()
    except Exception as e:
        logger.error(f"[{tx_id}] Commit failed: {e}")
        raise CommitError(e, tx_id=tx_id) from e
    logger.debug(f"[{tx_id}] Committed")


async def execute_async(
    db: Any,
    tx_func: AsyncTxFunc[T],
    *options: ConfigOption,
    ctx: Optional[Context] = None,
    config: Optional[TxConfig] = None,
) -> T:
    """Await ``tx_func`` inside a transaction and return its result once committed."""
    async with async_transaction(db, *options, ctx=ctx, config=config) as tx:
        return await tx_func(tx)
