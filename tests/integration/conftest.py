"""Shared fixtures for integration tests.

These tests use the real adapters and composition root with mocked HTTP
via respx.
"""

from __future__ import annotations

from collections.abc import Iterator

import pytest
import respx


@pytest.fixture()
def respx_mock() -> Iterator[respx.MockRouter]:
    """Explicit respx mock router for request interception."""
    with respx.mock(assert_all_called=False) as router:
        yield router
