"""Error taxonomy for provider calls and search sessions."""

from __future__ import annotations


class TransportError(Exception):
    """A single provider call failed (network, non-2xx, parse)."""


class ProviderTimeoutError(TransportError):
    """A provider call exceeded its deadline without being cancelled."""


class ProbeError(Exception):
    """Resolution probing failed for a media locator."""


class SearchCancelled(Exception):
    """Raised inside a session when its cancellation token fires.

    Control flow only; never surfaced to callers.
    """

    def __init__(self, epoch: int) -> None:
        super().__init__(f"session {epoch} cancelled")
        self.epoch = epoch


class SearchError(Exception):
    """Base error for a failed search attempt (stored on the session)."""


class NoSourcesConfiguredError(SearchError):
    def __init__(self) -> None:
        super().__init__("no enabled sources")


class NoResultsFoundError(SearchError):
    def __init__(self, query: str) -> None:
        super().__init__(f'no source found for "{query}"')
        self.query = query


class SearchFailedError(SearchError):
    """Catalog listing or fallback search failed outright."""
