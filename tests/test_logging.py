"""Tests for JSON logging."""

import json
import logging
import sys

from docloader.core.logging import JsonFormatter, configure_logging


def make_record(msg="hello", **extra):
    record = logging.LogRecord("docloader.test", logging.INFO, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJsonFormatter:
    def test_basic_fields(self):
        payload = json.loads(JsonFormatter().format(make_record()))
        assert payload["level"] == "INFO"
        assert payload["logger"] == "docloader.test"
        assert payload["msg"] == "hello"
        assert "ts" in payload

    def test_extras_included(self):
        record = make_record(route="/resolve", identifier="did:key:z6Mk")
        payload = json.loads(JsonFormatter().format(record))
        assert payload["route"] == "/resolve"
        assert payload["identifier"] == "did:key:z6Mk"
        assert "request_id" not in payload

    def test_exception_info(self):
        try:
            raise ValueError("boom")
        except ValueError:
            record = make_record()
            record.exc_info = sys.exc_info()
        payload = json.loads(JsonFormatter().format(record))
        assert "ValueError: boom" in payload["exc_info"]


class TestConfigureLogging:
    def test_file_handler(self, tmp_path):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            log_file = tmp_path / "docloader.log"
            configure_logging(log_file=str(log_file), log_level="debug")
            assert root.level == logging.DEBUG
            assert len(root.handlers) == 2

            logging.getLogger("tests.logging").debug("written")
            for handler in root.handlers:
                handler.flush()
            assert json.loads(log_file.read_text().splitlines()[-1])["msg"] == "written"
        finally:
            for handler in root.handlers:
                if handler not in saved_handlers:
                    handler.close()
            root.handlers = saved_handlers
            root.setLevel(saved_level)

    def test_stdout_only_by_default(self, monkeypatch):
        monkeypatch.delenv("DOCLOADER_LOG_FILE", raising=False)
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            configure_logging()
            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, JsonFormatter)
        finally:
            root.handlers = saved_handlers
            root.setLevel(saved_level)
