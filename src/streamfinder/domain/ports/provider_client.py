"""Port for the remote content-provider API."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from streamfinder.domain.entities.candidate import Candidate, SourceDescriptor


@runtime_checkable
class ProviderClientPort(Protocol):
    """Async interface for provider search and catalog listing.

    All methods raise ``TransportError`` (or ``ProviderTimeoutError``) when
    the remote call fails.
    """

    async def search_one(self, query: str, source_key: str) -> list[Candidate]:
        """Search a single provider for *query*."""
        ...

    async def search_all(self, query: str) -> list[Candidate]:
        """Search every provider known to the remote service at once."""
        ...

    async def list_providers(self) -> list[SourceDescriptor]:
        """List the provider catalog."""
        ...
