"""
SQLAlchemy implementation of the database / transaction capabilities.

Every transaction gets its own pooled connection; the connection goes back to
the pool as soon as the transaction is committed or rolled back.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine

from txexec.core.context import Context
from txexec.core.exceptions import UnsupportedOptionError
from txexec.core.options import IsolationLevel, TxOptions

logger = logging.getLogger(__name__)


def as_statement(statement: Any) -> Any:
    """Wrap raw SQL strings in ``text()``; SQLAlchemy constructs pass through."""
    if isinstance(statement, str):
        return text(statement)
    return statement


def execution_options_for(dialect_name: str, options: TxOptions) -> Dict[str, Any]:
    """
    Translate ``TxOptions`` into SQLAlchemy connection execution options.

    The isolation level name is validated by the dialect itself when the
    option is applied. Read-only transactions are only available on
    PostgreSQL.

    Raises:
        UnsupportedOptionError: read-only requested on another dialect
    """
    execution_options: Dict[str, Any] = {}
    if options.isolation_level is not IsolationLevel.DEFAULT:
        execution_options["isolation_level"] = options.isolation_level.value
    if options.read_only:
        if dialect_name != "postgresql":
            raise UnsupportedOptionError(
                f"read-only transactions are not supported by dialect {dialect_name!r}",
                option="read_only",
                dialect=dialect_name,
            )
        execution_options["postgresql_readonly"] = True
    return execution_options


class SQLAlchemyTransaction:
    """Transaction handle bound to one SQLAlchemy connection."""

    def __init__(self, connection: Connection, transaction, ctx: Context):
        self.connection = connection
        self._transaction = transaction
        self._ctx = ctx

    def execute(self, ctx: Context, statement: Any, params: Optional[Mapping[str, Any]] = None):
        ctx.check()
        return self.connection.execute(as_statement(statement), params)

    def query(self, ctx: Context, statement: Any, params: Optional[Mapping[str, Any]] = None) -> List[Any]:
        return self.execute(ctx, statement, params).all()

    def scalar(self, ctx: Context, statement: Any, params: Optional[Mapping[str, Any]] = None) -> Any:
        return self.execute(ctx, statement, params).scalar()

    def commit(self) -> None:
        """
        Commit and release the connection.

        A transaction whose context is already done is rolled back instead
        and the context error is raised.
        """
        try:
            error = self._ctx.err()
            if error is not None:
                self._transaction.rollback()
                raise error
            self._transaction.commit()
        finally:
            self.connection.close()

    def rollback(self) -> None:
        try:
            self._transaction.rollback()
        finally:
            self.connection.close()


class SQLAlchemyDatabase:
    """``Database`` backed by a SQLAlchemy ``Engine``."""

    def __init__(self, engine: Engine):
        self.engine = engine

    @property
    def dialect_name(self) -> str:
        return self.engine.dialect.name

    def begin_transaction(self, ctx: Context, options: TxOptions) -> SQLAlchemyTransaction:
        ctx.check()
        execution_options = execution_options_for(self.dialect_name, options)

        connection = self.engine.connect()
        try:
            if execution_options:
                connection.execution_options(**execution_options)
            ctx.check()
            transaction = connection.begin()
        except BaseException:
            connection.close()
            raise

        logger.debug(f"Transaction started on {self.dialect_name} with {execution_options or 'driver defaults'}")
        return SQLAlchemyTransaction(connection, transaction, ctx)


def as_database(db: Any):
    """Return ``db`` as a ``Database``, wrapping a bare SQLAlchemy ``Engine``."""
    if isinstance(db, Engine):
        return SQLAlchemyDatabase(db)
    if callable(getattr(db, "begin_transaction", None)):
        return db
    raise TypeError(f"unsupported database handle: {type(db).__name__}")
