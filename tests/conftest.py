"""Shared test fixtures for the streamfinder test suite."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator

import pytest

from streamfinder.infrastructure.config.schema import RankingConfig, SearchConfig
from streamfinder.infrastructure.logging.setup import shutdown_logging

_ENV_PREFIX = "STREAMFINDER_"


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Hide STREAMFINDER_* variables from tests and drop any a test leaks.

    ``load_dotenv`` writes to ``os.environ`` directly, bypassing monkeypatch.
    """
    for key in list(os.environ):
        if key.startswith(_ENV_PREFIX):
            monkeypatch.delenv(key)
    yield
    for key in list(os.environ):
        if key.startswith(_ENV_PREFIX):
            del os.environ[key]


@pytest.fixture()
def ranking_config() -> RankingConfig:
    return RankingConfig()


@pytest.fixture()
def fast_search_config() -> SearchConfig:
    """Short deadlines for tests that exercise timeouts."""
    return SearchConfig(provider_timeout_seconds=0.5, probe_timeout_seconds=0.5)


@pytest.fixture(autouse=True)
def _restore_root_logger() -> Iterator[None]:
    """Undo configure_logging() side effects (root handlers, listener)."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    shutdown_logging()
    root.handlers[:] = handlers
    root.setLevel(level)
