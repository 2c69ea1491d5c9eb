"""Tests for admission_advisor/utils/logging.py."""

from __future__ import annotations

import json
import logging
import sys

from admission_advisor.config import LoggingConfig
from admission_advisor.utils.logging import _JsonFormatter, configure_logging


def _record(msg: str, **extra) -> logging.LogRecord:
    record = logging.LogRecord("admission_advisor.test", logging.INFO, __file__, 1, msg, (), None)
    record.__dict__.update(extra)
    return record


class TestJsonFormatter:
    def test_core_fields(self):
        payload = json.loads(_JsonFormatter().format(_record("hello")))
        assert payload["level"] == "INFO"
        assert payload["logger"] == "admission_advisor.test"
        assert payload["msg"] == "hello"
        assert payload["ts"].endswith("Z")

    def test_extra_fields_and_unicode(self):
        line = _JsonFormatter().format(_record("江苏", province="江苏"))
        assert "江苏" in line
        assert json.loads(line)["province"] == "江苏"


class TestConfigureLogging:
    def test_console_handler_on_stderr(self):
        configure_logging(LoggingConfig(level="WARNING"))
        root = logging.getLogger()
        assert root.level == logging.WARNING
        streams = [h.stream for h in root.handlers if isinstance(h, logging.StreamHandler)]
        assert sys.stderr in streams

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "advisor.log"
        configure_logging(LoggingConfig(log_file=str(log_file), json_format=True))
        logging.getLogger("admission_advisor.test").info("written")
        for handler in logging.getLogger().handlers:
            handler.flush()
        assert json.loads(log_file.read_text(encoding="utf-8").splitlines()[-1])["msg"] == "written"
        for handler in list(logging.getLogger().handlers):
            if isinstance(handler, logging.FileHandler):
                handler.close()
                logging.getLogger().removeHandler(handler)
