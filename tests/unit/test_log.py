# tests/unit/test_log.py
from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

from src.core.log import configure_logging, redact, register_secret


@pytest.fixture
def clean_logger():
    logger = logging.getLogger("src")
    before = list(logger.handlers)
    yield logger
    for h in list(logger.handlers):
        if h not in before:
            logger.removeHandler(h)
            h.close()


def test_redact_masks_registered_secrets() -> None:
    register_secret("rc-live-0123456789")
    register_secret("abc")  # too short to register
    assert redact("key=rc-live-0123456789 abc") == "key=*** abc"


def test_configure_logging_is_idempotent(clean_logger, tmp_path: Path) -> None:
    log_file = tmp_path / "logs" / "reconciler.log"
    configure_logging("debug", str(log_file))
    configure_logging("debug", str(log_file))

    rotating = [h for h in clean_logger.handlers if isinstance(h, RotatingFileHandler)]
    streams = [h for h in clean_logger.handlers if type(h) is logging.StreamHandler]
    assert len(rotating) == 1
    assert len(streams) == 1
    assert rotating[0].maxBytes == 1_000_000
    assert rotating[0].backupCount == 3
    assert clean_logger.level == logging.DEBUG


def test_file_output_is_redacted(clean_logger, tmp_path: Path) -> None:
    log_file = tmp_path / "out.log"
    register_secret("topsecret-key-42")
    configure_logging("INFO", str(log_file))
    logging.getLogger("src.core.rentcast.client").info("calling with topsecret-key-42")
    for h in clean_logger.handlers:
        h.flush()
    text = log_file.read_text(encoding="utf-8")
    assert "topsecret-key-42" not in text
    assert "calling with ***" in text
