"""Core of txexec: options, context, exceptions and the executors."""

from .async_executor import async_transaction, execute_async
from .context import Context, background
from .exceptions import (
    BeginError,
    CleanupError,
    CommitError,
    ContextCancelledError,
    ContextError,
    DeadlineExceededError,
    RollbackError,
    TxExecError,
    UnsupportedOptionError,
    find_cause,
)
from .executor import (
    DEALLOCATE_ALL,
    Outcome,
    execute,
    execute_context,
    transaction,
    transactional,
    try_execute,
)
from .interfaces import AsyncDatabase, AsyncTransaction, Database, Transaction
from .options import (
    ConfigOption,
    IsolationLevel,
    TxConfig,
    TxOptions,
    with_deallocate_all,
    with_isolation_level,
    with_read_only,
    with_tx_options,
)

__all__ = [
    "AsyncDatabase",
    "AsyncTransaction",
    "BeginError",
    "CleanupError",
    "CommitError",
    "ConfigOption",
    "Context",
    "ContextCancelledError",
    "ContextError",
    "DEALLOCATE_ALL",
    "Database",
    "DeadlineExceededError",
    "IsolationLevel",
    "Outcome",
    "RollbackError",
    "Transaction",
    "TxConfig",
    "TxExecError",
    "TxOptions",
    "UnsupportedOptionError",
    "async_transaction",
    "background",
    "execute",
    "execute_async",
    "execute_context",
    "find_cause",
    "transaction",
    "transactional",
    "try_execute",
    "with_deallocate_all",
    "with_isolation_level",
    "with_read_only",
    "with_tx_options",
]
