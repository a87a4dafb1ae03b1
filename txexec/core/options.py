"""Transaction configuration and functional options."""

from __future__ import annotations

from enum import Enum
from typing import Callable, Optional

from pydantic import BaseModel, ConfigDict


class IsolationLevel(str, Enum):
    """Isolation levels, valued with the names SQLAlchemy dialects accept."""

    DEFAULT = "DEFAULT"
    READ_UNCOMMITTED = "READ UNCOMMITTED"
    READ_COMMITTED = "READ COMMITTED"
    REPEATABLE_READ = "REPEATABLE READ"
    SNAPSHOT = "SNAPSHOT"
    SERIALIZABLE = "SERIALIZABLE"

    @classmethod
    def _missing_(cls, value):
        # Accept member names and lower case: "repeatable_read", "serializable".
        if isinstance(value, str):
            return cls.__members__.get(value.strip().upper().replace(" ", "_"))
        return None


class TxOptions(BaseModel):
    """Options handed to ``Database.begin_transaction``."""

    model_config = ConfigDict(frozen=True)

    isolation_level: IsolationLevel = IsolationLevel.DEFAULT
    read_only: bool = False


class TxConfig(BaseModel):
    """
    Immutable configuration for one executor call.

    ``deallocate_all`` is PostgreSQL specific: when set, ``DEALLOCATE ALL``
    runs right after begin and before the unit of work.
    """

    model_config = ConfigDict(frozen=True)

    isolation_level: IsolationLevel = IsolationLevel.DEFAULT
    read_only: bool = False
    deallocate_all: bool = False

    @property
    def tx_options(self) -> TxOptions:
        return TxOptions(isolation_level=self.isolation_level, read_only=self.read_only)

    @classmethod
    def build(cls, *options: "ConfigOption", base: Optional["TxConfig"] = None) -> "TxConfig":
        """Apply ``options`` in order on top of ``base`` (defaults when ``None``)."""
        config = base if base is not None else cls()
        for option in options:
            config = option(config)
        return config


ConfigOption = Callable[[TxConfig], TxConfig]


def with_isolation_level(level: IsolationLevel | str) -> ConfigOption:
    level = IsolationLevel(level)

    def apply(config: TxConfig) -> TxConfig:
        return config.model_copy(update={"isolation_level": level})

    return apply


def with_read_only() -> ConfigOption:
    def apply(config: TxConfig) -> TxConfig:
        return config.model_copy(update={"read_only": True})

    return apply


def with_deallocate_all() -> ConfigOption:
    """Enable the PostgreSQL prepared statement cleanup."""

    def apply(config: TxConfig) -> TxConfig:
        return config.model_copy(update={"deallocate_all": True})

    return apply


def with_tx_options(options: TxOptions) -> ConfigOption:
    """Replace isolation level and read-only flag at once."""

    def apply(config: TxConfig) -> TxConfig:
        return config.model_copy(
            update={"isolation_level": options.isolation_level, "read_only": options.read_only}
        )

    return apply
