import io
import json
import logging

from document_search.logging_utils import coerce_level, setup_logging


def test_json_lines(monkeypatch):
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    buf = io.StringIO()
    setup_logging(level="DEBUG", json_logs=True, stream=buf)
    logging.getLogger("document_search.test").debug("hello %s", "there")
    record = json.loads(buf.getvalue().splitlines()[-1])
    assert record["msg"] == "hello there"
    assert record["level"] == "DEBUG"


def test_env_level_is_fallback(monkeypatch):
    monkeypatch.setenv("LOG_LEVEL", "warning")
    setup_logging(stream=io.StringIO())
    assert logging.getLogger().level == logging.WARNING


def test_coerce_level():
    assert coerce_level("debug") == logging.DEBUG
    assert coerce_level("bogus") == logging.INFO
    assert coerce_level(None) == logging.INFO
