import json
import logging

from convergedlb.logger import log, JsonFormatter, TRACE, LoggingConfig, setup_logger_from_config


def test_logging() -> None:
    assert type(log) is logging.Logger
    assert log.name == "convergedlb"
    assert logging.getLevelName(TRACE) == "TRACE"
    assert hasattr(log, "trace")


def test_json_logging() -> None:
    format = JsonFormatter({"level": "levelname", "message": "message"}, static_values={"process": "test"})
    record = logging.getLogger().makeRecord("test", logging.INFO, "test", 1, "test message", (), None)
    assert json.loads(format.format(record)) == {"level": "INFO", "message": "test message", "process": "test"}


def test_json_logging_with_exception() -> None:
    format = JsonFormatter({"message": "message"})
    try:
        raise ValueError("boom")
    except ValueError as e:
        record = logging.getLogger().makeRecord("test", logging.ERROR, "test", 1, "failed", (), (type(e), e, None))
    formatted = json.loads(format.format(record))
    assert formatted["message"] == "failed"
    assert "ValueError: boom" in formatted["exception"]


def test_setup_from_config() -> None:
    level = logging.getLogger("convergedlb").level
    try:
        setup_logger_from_config("test", LoggingConfig(verbose=True))
        assert logging.getLogger("convergedlb").level == logging.DEBUG
    finally:
        logging.getLogger("convergedlb").setLevel(level)
