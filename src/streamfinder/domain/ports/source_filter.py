"""Port for the enabled/disabled provider filter."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class SourceFilterPort(Protocol):
    def is_enabled(self, source_key: str) -> bool: ...
