import json
import logging

import pytest
from pythonjsonlogger import jsonlogger

from txexec import TxSettings, configure_logging_from_settings, execute, with_deallocate_all
from txexec.utils.logging import configure_logging, get_correlation_id, set_correlation_id


@pytest.fixture
def isolated_logger():
    name = "txexec.tests.json"
    yield name
    logger = logging.getLogger(name)
    logger.handlers = []
    logger.setLevel(logging.NOTSET)


def test_json_logs_carry_correlation_id(capsys, isolated_logger):
    configure_logging(level="info", logger_name=isolated_logger)
    correlation_id = set_correlation_id("req-42")

    logging.getLogger(isolated_logger).info("transfer committed")

    line = capsys.readouterr().err.strip().splitlines()[-1]
    record = json.loads(line)
    assert correlation_id == get_correlation_id() == "req-42"
    assert record["message"] == "transfer committed"
    assert record["correlation_id"] == "req-42"
    assert record["levelname"] == "INFO"


def test_plain_logs(capsys, isolated_logger):
    configure_logging(level=logging.DEBUG, json_output=False, logger_name=isolated_logger)
    set_correlation_id("req-7")

    logging.getLogger(isolated_logger).debug("hello")

    assert "[req-7]" in capsys.readouterr().err


def test_set_correlation_id_generates_one():
    assert set_correlation_id() == get_correlation_id()


def test_swallowed_rollback_failure_is_logged(make_db, caplog):
    db = make_db(execute_error=RuntimeError("cleanup broke"), rollback_error=RuntimeError("rollback broke"))

    with caplog.at_level(logging.WARNING, logger="txexec.core.executor"):
        with pytest.raises(Exception):
            execute(db, lambda tx: None, with_deallocate_all())

    messages = [record.getMessage() for record in caplog.records]
    assert any("Best-effort rollback failed: rollback broke" in message for message in messages)


def test_configure_logging_from_settings(capsys):
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        handler = configure_logging_from_settings(TxSettings(LOG_LEVEL="warning", LOG_JSON=False, _env_file=None))

        assert root.handlers == [handler]
        assert root.level == logging.WARNING
        assert not isinstance(handler.formatter, jsonlogger.JsonFormatter)
    finally:
        root.handlers = saved_handlers
        root.setLevel(saved_level)


def test_json_handler_uses_json_formatter_without_warnings(isolated_logger, recwarn):
    handler = configure_logging(level="info", logger_name=isolated_logger)

    assert isinstance(handler.formatter, jsonlogger.JsonFormatter)
    assert not [w for w in recwarn if issubclass(w.category, DeprecationWarning)]
