"""Tests for logging configuration."""

import logging

from ohako_client.app_logging import configure_logging


def test_configure_logging_idempotent() -> None:
    logger = logging.getLogger("ohako_client")
    logger.handlers.clear()

    configure_logging()
    first_count = len(logger.handlers)

    configure_logging()
    second_count = len(logger.handlers)

    assert first_count == 1
    assert second_count == 1
    assert logger.propagate is False


def test_configure_logging_accepts_level_names() -> None:
    logger = logging.getLogger("ohako_client")

    configure_logging("debug")
    assert logger.level == logging.DEBUG
    assert logging.getLogger("httpx").level == logging.DEBUG

    configure_logging("INFO")
    assert logger.level == logging.INFO
    assert logging.getLogger("httpx").level == logging.WARNING
    assert logging.getLogger("httpcore").level == logging.WARNING
