"""SQLAlchemy asyncio implementation of the transaction capabilities."""

import logging
from typing import Any, List, Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from txexec.core.context import Context, run_bounded
from txexec.core.options import TxOptions

from .adapters import as_statement, execution_options_for

logger = logging.getLogger(__name__)


class SQLAlchemyAsyncTransaction:
    """Async transaction handle bound to one ``AsyncConnection``.

    Every await is bounded by the deadline of the context it is given.
    """

    def __init__(self, connection: AsyncConnection, transaction, ctx: Context):
        self.connection = connection
        self._transaction = transaction
        self._ctx = ctx

    async def execute(self, ctx: Context, statement: Any, params: Optional[Mapping[str, Any]] = None):
        return await run_bounded(ctx, self.connection.execute(as_statement(statement), params))

    async def query(self, ctx: Context, statement: Any, params: Optional[Mapping[str, Any]] = None) -> List[Any]:
        result = await self.execute(ctx, statement, params)
        return result.all()

    async def scalar(self, ctx: Context, statement: Any, params: Optional[Mapping[str, Any]] = None) -> Any:
        result = await self.execute(ctx, statement, params)
        return result.scalar()

    async def commit(self) -> None:
        try:
            error = self._ctx.err()
            if error is not None:
                await self._transaction.rollback()
                raise error
            await run_bounded(self._ctx, self._transaction.commit())
        finally:
            await self.connection.close()

    async def rollback(self) -> None:
        try:
            await self._transaction.rollback()
        finally:
            await self.connection.close()


class SQLAlchemyAsyncDatabase:
    """``AsyncDatabase`` backed by a SQLAlchemy ``AsyncEngine``."""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    async def begin_transaction(self, ctx: Context, options: TxOptions) -> SQLAlchemyAsyncTransaction:
        ctx.check()
        execution_options = execution_options_for(self.dialect_name, options)

        connection = self.engine.connect()
        await run_bounded(ctx, connection.start())
        try:
            if execution_options:
                await connection.execution_options(**execution_options)
            transaction = connection.begin()
            await run_bounded(ctx, transaction.start())
        except BaseException:
            await connection.close()
            raise

        logger.debug(f"Async transaction started on {self.dialect_name} with {execution_options or 'driver defaults'}")
        return SQLAlchemyAsyncTransaction(connection, transaction, ctx)


def as_async_database(db: Any):
    """Return ``db`` as an ``AsyncDatabase``, wrapping a bare ``AsyncEngine``."""
    if isinstance(db, AsyncEngine):
        return SQLAlchemyAsyncDatabase(db)
    if callable(getattr(db, "begin_transaction", None)):
        return db
    raise TypeError(f"unsupported database handle: {type(db).__name__}")
