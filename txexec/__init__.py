"""
txexec - run a unit of work inside one database transaction.

    from txexec import background, execute, with_isolation_level

    total = execute(
        engine,
        lambda tx: tx.scalar(background(), "SELECT count(*) FROM accounts"),
        with_isolation_level("SERIALIZABLE"),
    )

The transaction is committed when the unit of work returns, rolled back when
it raises, and always resolved before control returns to the caller.
"""

from .core import *  # noqa: F401,F403
from .core import __all__ as _core_all
from .config import TxSettings, configure_logging_from_settings, get_settings
from .db.session import create_async_engine_from_settings, create_engine_from_settings

__version__ = "0.1.0"

__all__ = list(_core_all) + [
    "TxSettings",
    "configure_logging_from_settings",
    "create_async_engine_from_settings",
    "create_engine_from_settings",
    "get_settings",
]
