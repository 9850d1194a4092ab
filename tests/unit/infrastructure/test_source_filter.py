"""Tests for ConfigSourceFilter."""

from __future__ import annotations

from streamfinder.domain.ports import SourceFilterPort
from streamfinder.infrastructure.config.schema import SourcesConfig
from streamfinder.infrastructure.sources import ConfigSourceFilter


def test_enabled_all_passes_everything() -> None:
    f = ConfigSourceFilter(SourcesConfig(enabled_all=True, enabled={"a": False}))
    assert f.is_enabled("a") is True
    assert f.is_enabled("anything") is True


def test_per_source_map() -> None:
    f = ConfigSourceFilter(
        SourcesConfig(enabled_all=False, enabled={"a": True, "b": False})
    )
    assert f.is_enabled("a") is True
    assert f.is_enabled("b") is False
    assert f.is_enabled("unknown") is False


def test_satisfies_port() -> None:
    assert isinstance(ConfigSourceFilter(SourcesConfig()), SourceFilterPort)
