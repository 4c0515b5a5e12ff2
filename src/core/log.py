# src/core/log.py
"""
Logging setup for the reconciler.

Modules log through `logging.getLogger(__name__)`; `configure_logging()` is
called once by entry points (CLI, tool facade) to attach handlers to the
`src` logger. Secrets registered with `register_secret()` are masked in
every record that passes through those handlers.
"""

from __future__ import annotations

import logging
import os
import threading
from logging.handlers import RotatingFileHandler

_ROOT_LOGGER = "src"
_FORMAT = "%(asctime)s %(levelname)s %(message)s"
_DATEFMT = "(%Y-%m-%d %H:%M:%S)"
_MASK = "***"

_SECRETS: set[str] = set()
_SECRETS_LOCK = threading.Lock()


def register_secret(value: str | None) -> None:
    """Mask `value` in log output from now on. Short values are ignored."""
    if value and len(value) >= 4:
        with _SECRETS_LOCK:
            _SECRETS.add(value)


def redact(text: str) -> str:
    with _SECRETS_LOCK:
        secrets = sorted(_SECRETS, key=len, reverse=True)
    for secret in secrets:
        text = text.replace(secret, _MASK)
    return text


class _RedactingFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        return redact(super().format(record))


def _has_handler(logger: logging.Logger, kind: type[logging.Handler], path: str | None = None) -> bool:
    for h in logger.handlers:
        if type(h) is not kind:
            continue
        if path is None or getattr(h, "baseFilename", None) == os.path.abspath(path):
            return True
    return False


def configure_logging(level: str | int = "INFO", log_file: str | None = None) -> logging.Logger:
    """
    Attach a stderr handler and, when `log_file` is given, a rotating file
    handler (1 MB, 3 backups) to the package logger. Safe to call repeatedly.
    """
    logger = logging.getLogger(_ROOT_LOGGER)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO
    logger.setLevel(level)
    formatter = _RedactingFormatter(fmt=_FORMAT, datefmt=_DATEFMT)

    # Avoid duplicate handlers if reloaded in REPL/tests
    if not _has_handler(logger, logging.StreamHandler):
        stream = logging.StreamHandler()
        stream.setFormatter(formatter)
        logger.addHandler(stream)

    if log_file and not _has_handler(logger, RotatingFileHandler, log_file):
        directory = os.path.dirname(log_file)
        if directory:
            os.makedirs(directory, exist_ok=True)
        handler = RotatingFileHandler(log_file, maxBytes=1_000_000, backupCount=3, encoding="utf-8")
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


__all__ = ["configure_logging", "redact", "register_secret"]
