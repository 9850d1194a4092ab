from __future__ import annotations

from .load import load_config
from .schema import AppConfig, EnvOverrides, RankingConfig, SearchConfig, SourcesConfig

__all__ = [
    "AppConfig",
    "EnvOverrides",
    "RankingConfig",
    "SearchConfig",
    "SourcesConfig",
    "load_config",
]
