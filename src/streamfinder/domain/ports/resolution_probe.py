"""Port for estimating the playback resolution of a media locator."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class ResolutionProbePort(Protocol):
    """Inspects a playable manifest and returns a quality label.

    Implementations may be slow; callers bound and cancel them.
    """

    async def estimate(self, locator: str) -> str:
        """Return a label such as ``"1080p"``.

        Raises ``ProbeError`` when the locator cannot be inspected.
        """
        ...
