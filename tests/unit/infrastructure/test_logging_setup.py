"""Tests for structlog/stdlib logging setup."""

from __future__ import annotations

import logging
from logging.handlers import QueueHandler

from streamfinder.infrastructure.config.schema import AppConfig
from streamfinder.infrastructure.logging import setup


def test_root_routes_through_queue() -> None:
    setup.configure_logging(AppConfig(log_level="WARNING"))

    root = logging.getLogger()
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0], QueueHandler)
    assert root.level == logging.WARNING
    assert setup._QUEUE_LISTENER is not None


def test_noisy_loggers_quiet_unless_debug() -> None:
    setup.configure_logging(AppConfig(log_level="INFO"))
    assert logging.getLogger("httpx").level == logging.WARNING

    setup.configure_logging(AppConfig(log_level="DEBUG"))
    assert logging.getLogger("httpx").level == logging.DEBUG


def test_shutdown_is_idempotent() -> None:
    setup.configure_logging(AppConfig())
    setup.shutdown_logging()
    setup.shutdown_logging()
    assert setup._QUEUE_LISTENER is None
