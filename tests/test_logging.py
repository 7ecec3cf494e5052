"""Unit tests for keygate/core/logging.py -- secret redaction and handlers."""

from __future__ import annotations

import json
import logging

import pytest

from keygate.core.config import LoggingConfig
from keygate.core.logging import SecureLogFilter, StructuredLogFormatter, configure_root_logger


def _record(msg, args=()):
    return logging.LogRecord("keygate.test", logging.INFO, __file__, 1, msg, args, None)


@pytest.mark.parametrize(
    "message,secret",
    [
        ("login password=hunter22", "hunter22"),
        ("Authorization: Bearer " + "ab" * 32, "ab" * 32),
        ("token=" + "c" * 40, "c" * 40),
        ("stored $argon2id$v=19$m=1024,t=1,p=1$c2FsdA$aGFzaA", "$argon2id$"),
        ("session " + "0123456789abcdef" * 4, "0123456789abcdef" * 4),
        ("api key " + "Zm9vYmFy" * 6 + "==", "Zm9vYmFy" * 6),
    ],
)
def test_filter_redacts_message(message, secret):
    record = _record(message)
    assert SecureLogFilter().filter(record) is True
    assert secret not in record.getMessage()
    assert "[REDACTED]" in record.getMessage()


def test_filter_redacts_arguments():
    token = "f" * 64
    record = _record("Session %s issued for %s", (token, "alice"))
    SecureLogFilter().filter(record)
    message = record.getMessage()
    assert token not in message
    assert "alice" in message


def test_filter_leaves_plain_messages():
    record = _record("Created user %s with role %s", ("alice", "user"))
    SecureLogFilter().filter(record)
    assert record.getMessage() == "Created user alice with role user"


def test_structured_formatter_emits_json():
    output = StructuredLogFormatter().format(_record("hello %s", ("world",)))
    data = json.loads(output)
    assert data["message"] == "hello world"
    assert data["logger"] == "keygate.test"
    assert data["level"] == "INFO"


def test_configure_root_logger_writes_redacted_file(tmp_path):
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        configure_root_logger(
            LoggingConfig(level="DEBUG", enable_console=False, enable_file=True),
            tmp_path,
        )
        logging.getLogger("keygate.test").info("password=hunter22")
        for handler in root.handlers:
            handler.flush()
            handler.close()
        content = (tmp_path / "keygate.log").read_text()
        assert "hunter22" not in content
        assert "[REDACTED]" in content
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
