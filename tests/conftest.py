"""Shared fixtures for the txexec test-suite."""

import pytest
from sqlalchemy import create_engine, text


class RecordingTransaction:
    """Transaction double that records every call on its database."""

    def __init__(self, db):
        self._db = db

    def execute(self, ctx, statement, params=None):
        ctx.check()
        self._db.calls.append(f"execute:{statement}")
        if self._db.execute_error is not None:
            raise self._db.execute_error
        return None

    def query(self, ctx, statement, params=None):
        ctx.check()
        self._db.calls.append(f"query:{statement}")
        return [(1,)] if statement == "SELECT 1" else []

    def scalar(self, ctx, statement, params=None):
        rows = self.query(ctx, statement, params)
        return rows[0][0] if rows else None

    def commit(self):
        self._db.calls.append("commit")
        if self._db.commit_error is not None:
            raise self._db.commit_error

    def rollback(self):
        self._db.calls.append("rollback")
        if self._db.rollback_error is not None:
            raise self._db.rollback_error


class RecordingDatabase:
    """Database double; failures are injected through the ``*_error`` attributes."""

    def __init__(self, begin_error=None, execute_error=None, commit_error=None, rollback_error=None):
        self.begin_error = begin_error
        self.execute_error = execute_error
        self.commit_error = commit_error
        self.rollback_error = rollback_error
        self.calls = []
        self.options = None

    def begin_transaction(self, ctx, options):
        self.calls.append("begin")
        self.options = options
        ctx.check()
        if self.begin_error is not None:
            raise self.begin_error
        return RecordingTransaction(self)


@pytest.fixture
def make_db():
    """Factory for ``RecordingDatabase`` instances."""
    return RecordingDatabase


@pytest.fixture
def db():
    return RecordingDatabase()


@pytest.fixture
def engine():
    """In-memory SQLite engine with an ``accounts`` table."""
    engine = create_engine("sqlite://")
    with engine.begin() as conn:
        conn.execute(text("CREATE TABLE accounts (id INTEGER PRIMARY KEY, owner TEXT, balance INTEGER)"))
    yield engine
    engine.dispose()


def count_accounts(engine):
    with engine.connect() as conn:
        return conn.execute(text("SELECT count(*) FROM accounts")).scalar()


@pytest.fixture
def account_count():
    return count_accounts
