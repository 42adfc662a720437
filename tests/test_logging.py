"""Tests for the logging setup and log sinks."""

import logging
import logging.handlers

import pytest

from syncnest.utils.logging import FileLogSink, TimedOperation, get_logger, setup_logging


def test_setup_logging_adds_rotating_file_handler(tmp_path):
    log_file = tmp_path / "logs" / "syncnest.log"

    logger = setup_logging(log_level="warning", log_file=log_file, log_to_console=False,
                           max_file_size=1024, backup_count=2)

    assert logger.level == logging.WARNING
    [handler] = logger.handlers
    assert isinstance(handler, logging.handlers.RotatingFileHandler)
    assert handler.maxBytes == 1024
    assert handler.backupCount == 2
    assert handler.level == logging.DEBUG

    get_logger("engine").warning("disk nearly full")

    assert "syncnest.engine - WARNING - disk nearly full" in log_file.read_text(encoding="utf-8")


def test_setup_logging_replaces_previous_handlers(tmp_path):
    setup_logging(log_file=tmp_path / "first.log")
    logger = setup_logging(log_file=tmp_path / "second.log", log_to_console=False)

    assert [h.baseFilename for h in logger.handlers] == [str(tmp_path / "second.log")]


def test_diagnostic_log_tolerates_undecodable_names(tmp_path):
    log_file = tmp_path / "syncnest.log"
    setup_logging(log_level="INFO", log_file=log_file, log_to_console=False)

    get_logger("engine").info("Unchanged: bad\udcff.txt")

    assert "Unchanged: bad\\udcff.txt" in log_file.read_text(encoding="utf-8")


def test_file_sink_escapes_undecodable_names(tmp_path):
    sink = FileLogSink(tmp_path / "logs" / "backup_log_1.txt")

    sink("bad\udcff.txt new backup")
    sink("good.txt new backup\n")

    assert sink.path.read_text(encoding="utf-8").splitlines() == [
        "bad\\udcff.txt new backup",
        "good.txt new backup",
    ]


def test_timed_operation_logs_start_and_completion(caplog):
    logger = logging.getLogger("syncnest.test")

    with caplog.at_level(logging.DEBUG, logger="syncnest.test"):
        with TimedOperation(logger, "scan", log_level="DEBUG"):
            pass

    messages = [r.getMessage() for r in caplog.records]
    assert messages[0] == "Starting scan"
    assert messages[1].startswith("Completed scan in ")


def test_timed_operation_logs_failure(caplog):
    logger = logging.getLogger("syncnest.test")

    with caplog.at_level(logging.DEBUG, logger="syncnest.test"):
        with pytest.raises(RuntimeError):
            with TimedOperation(logger, "scan"):
                raise RuntimeError("boom")

    failure = caplog.records[-1]
    assert failure.levelno == logging.ERROR
    assert failure.getMessage().startswith("Failed scan after ")
    assert failure.getMessage().endswith(": boom")
