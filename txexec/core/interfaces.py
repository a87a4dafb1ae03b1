"""
Capabilities the executor needs from a database.

Anything that implements these protocols can be driven by the executor; the
SQLAlchemy adapters in :mod:`txexec.db.adapters` are the stock
implementation.
"""

from typing import Any, List, Mapping, Optional, Protocol

from .context import Context
from .options import TxOptions


class Transaction(Protocol):
    """One open transaction, owned by a single executor call."""

    def execute(self, ctx: Context, statement: Any, params: Optional[Mapping[str, Any]] = None) -> Any:
        """Run a statement inside the transaction and return the driver result."""
        ...

    def query(self, ctx: Context, statement: Any, params: Optional[Mapping[str, Any]] = None) -> List[Any]:
        """Run a statement and return all rows."""
        ...

    def scalar(self, ctx: Context, statement: Any, params: Optional[Mapping[str, Any]] = None) -> Any:
        """Run a statement and return the first column of the first row."""
        ...

    def commit(self) -> None:
        ...

    def rollback(self) -> None:
        ...


class Database(Protocol):
    """Something that can start transactions."""

    def begin_transaction(self, ctx: Context, options: TxOptions) -> Transaction:
        ...


class AsyncTransaction(Protocol):
    """Coroutine flavour of :class:`Transaction`."""

    async def execute(self, ctx: Context, statement: Any, params: Optional[Mapping[str, Any]] = None) -> Any:
        ...

    async def query(self, ctx: Context, statement: Any, params: Optional[Mapping[str, Any]] = None) -> List[Any]:
        ...

    async def scalar(self, ctx: Context, statement: Any, params: Optional[Mapping[str, Any]] = None) -> Any:
        ...

    async def commit(self) -> None:
        ...

    async def rollback(self) -> None:
        ...


class AsyncDatabase(Protocol):
    """Coroutine flavour of :class:`Database`."""

    async def begin_transaction(self, ctx: Context, options: TxOptions) -> AsyncTransaction:
        ...
