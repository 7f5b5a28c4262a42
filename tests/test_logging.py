import logging

import pytest

from docent.config import LoggingConfig
from docent.system import PIIFilter, setup_logging, setup_logging_from_config


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def _record(msg, args=()):
    return logging.LogRecord("docent", logging.INFO, __file__, 1, msg, args, None)


def test_pii_filter_redacts_message_and_args():
    record = _record("query from %s about %s", ("kim@example.com", "10.0.0.1"))

    assert PIIFilter().filter(record)
    assert record.getMessage() == "query from [EMAIL] about [IP]"


def test_api_tokens_are_redacted():
    record = _record("paperless auth %s", ("Token 0123456789abcdef",))
    PIIFilter().filter(record)
    assert record.getMessage() == "paperless auth [TOKEN]"


def test_disabled_filter_leaves_record_alone():
    record = _record("mail kim@example.com")
    PIIFilter(enabled=False).filter(record)
    assert record.getMessage() == "mail kim@example.com"


def test_setup_logging_writes_redacted_file(tmp_path):
    setup_logging(log_dir=tmp_path, log_to_console=False, pii_redaction=True)

    logging.getLogger("docent.test").info("searching mail for %s", "kim@example.com")
    for handler in logging.getLogger().handlers:
        handler.flush()

    text = (tmp_path / "docent.log").read_text(encoding="utf-8")
    assert "searching mail for [EMAIL]" in text
    assert "kim@example.com" not in text


def test_setup_from_config_without_log_dir():
    root = setup_logging_from_config(LoggingConfig(level="debug", log_to_file=True))

    assert root.level == logging.DEBUG
    assert len(root.handlers) == 1
