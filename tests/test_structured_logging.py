import json
import logging

import pytest

from issuecache import logging as ic_logging
from issuecache.logging import JSONFormatter, StructuredLogger


def _last_json(err: str) -> dict:
    return json.loads(err.strip().splitlines()[-1])


def test_json_formatter_includes_extras():
    record = logging.LogRecord("issuecache", logging.INFO, __file__, 1, "hello", None, None)
    record.operation = "fetch"
    data = json.loads(JSONFormatter().format(record))

    assert data["message"] == "hello"
    assert data["level"] == "INFO"
    assert data["operation"] == "fetch"
    assert "lineno" not in data


def test_log_operation_and_performance(capsys):
    logger = StructuredLogger(name="issuecache.test.ops", json_logging=True)
    logger.log_operation("fetched", issue_count=3)
    entry = _last_json(capsys.readouterr().err)
    assert entry["operation"] == "fetched"
    assert entry["issue_count"] == 3

    logger.log_performance("command_tree", 12.3456)
    entry = _last_json(capsys.readouterr().err)
    assert entry["duration_ms"] == 12.35


def test_log_error_redacts(capsys):
    logger = StructuredLogger(name="issuecache.test.err", json_logging=True)
    logger.log_error("failed", error="Bearer abcdefghijklmnopqrstuvwxyz")
    entry = _last_json(capsys.readouterr().err)
    assert entry["level"] == "ERROR"
    assert entry["error"] == "<redacted>"


def test_level_filters_debug(capsys):
    logger = StructuredLogger(name="issuecache.test.level", json_logging=True, level="INFO")
    logger.debug("hidden")
    assert capsys.readouterr().err == ""


def test_timed_operation_logs_and_reraises(capsys):
    logger = StructuredLogger(name="issuecache.test.timed", json_logging=True)
    with pytest.raises(RuntimeError):
        with logger.timed_operation("fetch", repo="octo/widgets"):
            raise RuntimeError("boom")
    lines = [json.loads(line) for line in capsys.readouterr().err.strip().splitlines()]
    assert lines[0]["operation"] == "fetch_start"
    assert lines[-1]["message"] == "operation fetch failed"
    assert lines[-1]["repo"] == "octo/widgets"


def test_configure_logging_replaces_global():
    first = ic_logging.configure_logging(level="DEBUG")
    assert ic_logging.get_logger() is first
    second = ic_logging.configure_logging(json_logging=True)
    assert ic_logging.get_logger() is second


def test_bind_adds_context_without_touching_parent(capsys):
    logger = StructuredLogger(name="issuecache.test.bind", json_logging=True)
    bound = logger.bind(repo="octo/widgets")
    bound.info("fetching", page=2)
    logger.info("plain")

    first, second = (json.loads(line) for line in capsys.readouterr().err.strip().splitlines())
    assert first["repo"] == "octo/widgets"
    assert first["page"] == 2
    assert "repo" not in second


def test_explicit_stream(tmp_path):
    target = tmp_path / "log.txt"
    with target.open("w") as stream:
        logger = StructuredLogger(name="issuecache.test.stream", stream=stream)
        logger.warning("cache file unreadable")
    assert "WARNING cache file unreadable" in target.read_text()
