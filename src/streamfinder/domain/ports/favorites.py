"""Port for favorites persistence."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from streamfinder.domain.entities.candidate import FavoriteRecord


@runtime_checkable
class FavoritesPort(Protocol):
    async def is_favorited(self, source_key: str, title_id: str) -> bool: ...

    async def toggle(
        self, source_key: str, title_id: str, record: FavoriteRecord
    ) -> bool:
        """Flip the favorite state and return the new state."""
        ...
