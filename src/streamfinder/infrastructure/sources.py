"""Configuration-backed provider filter."""

from __future__ import annotations

from streamfinder.infrastructure.config.schema import SourcesConfig


class ConfigSourceFilter:
    """Implements ``SourceFilterPort``.

    With ``enabled_all`` every provider passes; otherwise only keys mapped
    to true in ``enabled``. Unknown keys are disabled.
    """

    def __init__(self, config: SourcesConfig) -> None:
        self._enabled_all = config.enabled_all
        self._enabled = dict(config.enabled)

    def is_enabled(self, source_key: str) -> bool:
        if self._enabled_all:
            return True
        return self._enabled.get(source_key, False)
