"""
Logging setup for Docent

Queries, document snippets and mail headers pass through debug logs, so
handlers can carry a ``PIIFilter`` that scrubs addresses, phone numbers,
IPs, card numbers and API tokens before anything is written.
"""

from __future__ import annotations

import logging
import re
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..config.schema import LoggingConfig

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Chatty client libraries stay at WARNING unless the app runs at DEBUG
NOISY_LOGGERS = ("chromadb", "httpx", "httpcore", "openai", "urllib3")

REDACTIONS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"), "[EMAIL]"),
    (re.compile(r"\b(?:Token|Bearer)\s+[A-Za-z0-9._~+/-]{8,}=*", re.IGNORECASE), "[TOKEN]"),
    (re.compile(r"\bsk-[A-Za-z0-9_-]{16,}\b"), "[TOKEN]"),
    (re.compile(r"\b(?:\d{4}[-\s]?){3}\d{4}\b"), "[CC]"),
    (re.compile(r"\b(?:\d{1,3}\.){3}\d{1,3}\b"), "[IP]"),
    (re.compile(r"\+\d{1,3}[-.\s]?\d{1,4}[-.\s]?\d{1,4}[-.\s]?\d{1,9}\b"), "[PHONE]"),
)


def redact(text: str) -> str:
    for pattern, placeholder in REDACTIONS:
        text = pattern.sub(placeholder, text)
    return text


class PIIFilter(logging.Filter):
    """Rewrites the message template and any string arguments of a record."""

    def __init__(self, name: str = "", enabled: bool = True):
        super().__init__(name)
        self.enabled = enabled

    def filter(self, record: logging.LogRecord) -> bool:
        if not self.enabled:
            return True
        if record.msg:
            record.msg = redact(str(record.msg))
        if isinstance(record.args, tuple):
            record.args = tuple(redact(a) if isinstance(a, str) else a for a in record.args)
        elif isinstance(record.args, dict):
            record.args = {k: redact(v) if isinstance(v, str) else v for k, v in record.args.items()}
        return True


def _configure_handler(handler: logging.Handler, level: int, pii_redaction: bool) -> logging.Handler:
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    if pii_redaction:
        handler.addFilter(PIIFilter())
    return handler


def setup_logging(
    *,
    log_dir: Path | None = None,
    level: int = logging.INFO,
    log_to_console: bool = True,
    log_to_file: bool = True,
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 3,
    pii_redaction: bool = False,
    app_name: str = "docent",
) -> logging.Logger:
    """
    Replace the root logger's handlers.

    Args:
        log_dir: Directory for ``<app_name>.log``; file output is skipped when None
        level: Level for the root logger and every handler
        log_to_console: Write to stdout
        log_to_file: Write to a rotating file in ``log_dir``
        max_bytes: Rotation size of the log file
        backup_count: Rotated files to keep
        pii_redaction: Attach a ``PIIFilter`` to each handler
        app_name: Base name of the log file

    Returns:
        The root logger
    """
    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()

    if log_to_console:
        root.addHandler(_configure_handler(logging.StreamHandler(sys.stdout), level, pii_redaction))

    if log_to_file and log_dir is not None:
        log_dir.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_dir / f"{app_name}.log",
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        root.addHandler(_configure_handler(file_handler, level, pii_redaction))

    library_level = level if level <= logging.DEBUG else logging.WARNING
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(library_level)

    return root


def setup_logging_from_config(config: LoggingConfig) -> logging.Logger:
    level = logging.getLevelName(config.level.upper())
    if not isinstance(level, int):
        level = logging.INFO
    return setup_logging(
        log_dir=Path(config.log_dir) if config.log_dir else None,
        level=level,
        log_to_console=config.log_to_console,
        log_to_file=config.log_to_file,
        pii_redaction=config.pii_redaction,
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
