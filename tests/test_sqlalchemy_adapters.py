import pytest
from sqlalchemy import literal, select, text
from sqlalchemy.exc import OperationalError

from txexec import (
    BeginError,
    CleanupError,
    CommitError,
    Context,
    ContextCancelledError,
    IsolationLevel,
    TxOptions,
    UnsupportedOptionError,
    execute,
    execute_context,
    with_deallocate_all,
    with_isolation_level,
    with_read_only,
)
from txexec.db.adapters import SQLAlchemyDatabase, as_database, as_statement, execution_options_for


class InsufficientFunds(Exception):
    pass


class Panic(BaseException):
    pass


INSERT = "INSERT INTO accounts (owner, balance) VALUES (:owner, :balance)"


def test_select_one_through_engine(engine):
    ctx = Context.background()

    assert execute(engine, lambda tx: tx.scalar(ctx, "SELECT 1")) == 1


def test_query_returns_rows(engine):
    ctx = Context.background()

    def work(tx):
        tx.execute(ctx, INSERT, {"owner": "alice", "balance": 10})
        tx.execute(ctx, INSERT, {"owner": "bob", "balance": 20})
        return tx.query(ctx, "SELECT owner, balance FROM accounts ORDER BY owner")

    rows = execute(engine, work)

    assert [tuple(row) for row in rows] == [("alice", 10), ("bob", 20)]


def test_sqlalchemy_constructs_are_accepted(engine):
    ctx = Context.background()

    assert execute(engine, lambda tx: tx.scalar(ctx, select(literal(7)))) == 7


def test_commit_persists_rows(engine, account_count):
    ctx = Context.background()

    execute(engine, lambda tx: tx.execute(ctx, INSERT, {"owner": "alice", "balance": 10}))

    assert account_count(engine) == 1


def test_error_rolls_back_rows(engine, account_count):
    ctx = Context.background()

    def work(tx):
        tx.execute(ctx, INSERT, {"owner": "alice", "balance": 10})
        raise InsufficientFunds("insufficient funds")

    with pytest.raises(InsufficientFunds, match="insufficient funds"):
        execute(engine, work)

    assert account_count(engine) == 0


def test_abrupt_failure_rolls_back_rows(engine, account_count):
    ctx = Context.background()

    def work(tx):
        tx.execute(ctx, INSERT, {"owner": "alice", "balance": 10})
        raise Panic("boom")

    with pytest.raises(Panic):
        execute(engine, work)

    assert account_count(engine) == 0


def test_raw_connection_is_available(engine, account_count):
    def work(tx):
        tx.connection.execute(text(INSERT), {"owner": "carol", "balance": 5})
        return tx.connection.execute(text("SELECT balance FROM accounts")).scalar()

    assert execute(engine, work) == 5
    assert account_count(engine) == 1


def test_deallocate_all_fails_on_sqlite_and_rolls_back(engine, account_count):
    with pytest.raises(CleanupError) as excinfo:
        execute(engine, lambda tx: 1, with_deallocate_all())

    assert isinstance(excinfo.value.cause, OperationalError)
    # The connection went back to the pool in a usable state.
    assert account_count(engine) == 0
    assert execute(engine, lambda tx: tx.scalar(Context.background(), "SELECT 1")) == 1


def test_read_only_is_rejected_on_sqlite(engine):
    with pytest.raises(BeginError) as excinfo:
        execute(engine, lambda tx: 1, with_read_only())

    assert isinstance(excinfo.value.cause, UnsupportedOptionError)
    assert excinfo.value.cause.details == {"option": "read_only", "dialect": "sqlite"}


def test_serializable_isolation_on_sqlite(engine):
    ctx = Context.background()

    result = execute(engine, lambda tx: tx.scalar(ctx, "SELECT 1"), with_isolation_level("SERIALIZABLE"))

    assert result == 1


def test_cancel_inside_unit_of_work_fails_commit(engine, account_count):
    ctx = Context.background().with_cancel()

    def work(tx):
        tx.execute(ctx, INSERT, {"owner": "alice", "balance": 10})
        ctx.cancel()
        return 42

    with pytest.raises(CommitError) as excinfo:
        execute_context(ctx, engine, work)

    assert isinstance(excinfo.value.cause, ContextCancelledError)
    assert account_count(engine) == 0


def test_statement_with_done_context_raises(engine, account_count):
    ctx = Context.background().with_cancel()

    def work(tx):
        ctx.cancel()
        tx.execute(ctx, INSERT, {"owner": "alice", "balance": 10})

    with pytest.raises(ContextCancelledError):
        execute(engine, work)

    assert account_count(engine) == 0


def test_begin_with_expired_deadline(engine):
    ctx = Context.background().with_timeout(0)

    with pytest.raises(BeginError, match="deadline exceeded"):
        execute_context(ctx, engine, lambda tx: 1)


def test_execution_options_for_defaults():
    assert execution_options_for("postgresql", TxOptions()) == {}


def test_execution_options_for_postgresql():
    options = TxOptions(isolation_level=IsolationLevel.REPEATABLE_READ, read_only=True)

    assert execution_options_for("postgresql", options) == {
        "isolation_level": "REPEATABLE READ",
        "postgresql_readonly": True,
    }


def test_execution_options_for_read_only_elsewhere():
    with pytest.raises(UnsupportedOptionError):
        execution_options_for("mysql", TxOptions(read_only=True))


def test_as_statement_wraps_strings():
    statement = as_statement("SELECT 1")

    assert str(statement) == "SELECT 1"
    query = select(literal(1))
    assert as_statement(query) is query


def test_as_database_wraps_engine(engine):
    database = as_database(engine)

    assert isinstance(database, SQLAlchemyDatabase)
    assert database.dialect_name == "sqlite"
