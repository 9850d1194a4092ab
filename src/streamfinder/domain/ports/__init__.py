from .favorites import FavoritesPort
from .provider_client import ProviderClientPort
from .resolution_probe import ResolutionProbePort
from .source_filter import SourceFilterPort

__all__ = [
    "FavoritesPort",
    "ProviderClientPort",
    "ResolutionProbePort",
    "SourceFilterPort",
]
