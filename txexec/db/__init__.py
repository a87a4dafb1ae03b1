"""SQLAlchemy adapters and engine factories."""

from .adapters import SQLAlchemyDatabase, SQLAlchemyTransaction, as_database

__all__ = ["SQLAlchemyDatabase", "SQLAlchemyTransaction", "as_database"]
