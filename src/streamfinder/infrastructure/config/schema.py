"""Pydantic configuration models with validation."""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import (
    AliasChoices,
    AliasPath,
    BaseModel,
    Field,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

Environment = Literal["dev", "test", "prod"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]


class SearchConfig(BaseModel):
    """Deadlines and fan-out limits for a search session.

    All values configurable via YAML (search section) or CLI.
    """

    provider_timeout_seconds: float = Field(
        default=10.0,
        description="Deadline per provider call (search, catalog listing).",
    )
    probe_timeout_seconds: float = Field(
        default=8.0,
        description="Deadline per resolution probe.",
    )
    max_concurrent_providers: int = Field(
        default=10,
        description="Max parallel single-source searches in the standard path.",
    )
    max_concurrent_probes: int = Field(
        default=6,
        description="Max parallel resolution probes.",
    )
    probe_enabled: bool = Field(
        default=True,
        description="Probe manifests of candidates lacking a quality measurement.",
    )

    @field_validator("provider_timeout_seconds", "probe_timeout_seconds")
    @classmethod
    def _validate_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("timeouts must be > 0")
        return v

    @field_validator("max_concurrent_providers", "max_concurrent_probes")
    @classmethod
    def _validate_concurrency(cls, v: int) -> int:
        if v < 1:
            raise ValueError("concurrency limits must be >= 1")
        return v


class SourcesConfig(BaseModel):
    """Enabled/disabled provider filter consumed by the standard search path."""

    enabled_all: bool = Field(
        default=True,
        description="Search every listed provider, ignoring the enabled map.",
    )
    enabled: dict[str, bool] = Field(
        default_factory=dict,
        description="Per-provider enable flags (used when enabled_all is false).",
    )


class RankingConfig(BaseModel):
    """Weights and bounds for the failover video score.

    Score formula:
    quality_weight * quality + speed_weight * speed + ping_weight * ping,
    each component on a 0-100 scale.
    """

    quality_scores: dict[str, float] = Field(
        default={
            "4K": 100,
            "2K": 85,
            "1080p": 75,
            "720p": 60,
            "480p": 40,
            "SD": 20,
        },
        description="Score per quality label.",
    )
    default_quality_score: float = Field(
        default=30,
        description="Score for unknown quality labels.",
    )
    quality_weight: float = Field(default=0.4)

    speed_ceiling_kbps: float = Field(
        default=5120,
        description="Load speed (KB/s) that earns the full speed score.",
    )
    unknown_speed_score: float = Field(
        default=30,
        description="Score for unparsable or not-yet-measured speed labels.",
    )
    speed_sentinels: list[str] = Field(
        default=["unknown", "measuring", "未知", "测量中..."],
        description="Speed labels that mean no measurement.",
    )
    speed_weight: float = Field(default=0.4)

    ping_best_ms: float = Field(default=50, description="Ping earning 100.")
    ping_worst_ms: float = Field(default=1000, description="Ping earning 0.")
    ping_weight: float = Field(default=0.2)

    resolution_priorities: dict[str, int] = Field(
        default={"1080": 4, "720": 3, "480": 2, "360": 1},
        description=(
            "Fallback priority for unmeasured candidates; first matching "
            "substring of the resolution label wins."
        ),
    )

    @model_validator(mode="after")
    def _validate_bounds(self) -> "RankingConfig":
        if self.ping_best_ms >= self.ping_worst_ms:
            raise ValueError("ping_best_ms must be < ping_worst_ms")
        if self.speed_ceiling_kbps <= 0:
            raise ValueError("speed_ceiling_kbps must be > 0")
        return self


class AppConfig(BaseModel):
    """
    Canonical application configuration (validated, final).

    Note:
    - YAML is expected to be sectioned (api/logging/search/sources/ranking).
    - Environment variables are handled by EnvOverrides(BaseSettings) to allow strict
      precedence control (defaults < YAML < ENV < CLI) in load.py.
    """

    # General
    app_name: str = Field(default="streamfinder", description="Application name.")
    environment: Environment = Field(
        default="dev",
        description="Runtime environment (affects defaults like log format).",
    )

    # Provider API (YAML section: api.*)
    api_base_url: str = Field(
        default="http://localhost:3000",
        validation_alias=AliasChoices(
            "api_base_url",
            AliasPath("api", "base_url"),
        ),
        description="Base URL of the content-provider API.",
    )
    api_timeout_seconds: float = Field(
        default=10.0,
        validation_alias=AliasChoices(
            "api_timeout_seconds",
            AliasPath("api", "timeout_seconds"),
        ),
        description="HTTP timeout in seconds for API requests.",
    )
    api_user_agent: str = Field(
        default="streamfinder/0.1.0",
        validation_alias=AliasChoices(
            "api_user_agent",
            AliasPath("api", "user_agent"),
        ),
        description="User-Agent for outgoing HTTP requests.",
    )

    # Logging (YAML section: logging.*)
    log_level: LogLevel = Field(
        default="INFO",
        validation_alias=AliasChoices(
            "log_level",
            AliasPath("logging", "level"),
        ),
        description="Log level.",
    )
    log_format: Optional[LogFormat] = Field(
        default=None,
        validation_alias=AliasChoices(
            "log_format",
            AliasPath("logging", "format"),
        ),
        description=(
            "Log renderer format (console/json). If unset, derived from environment."
        ),
    )

    search: SearchConfig = Field(default_factory=SearchConfig)
    sources: SourcesConfig = Field(default_factory=SourcesConfig)
    ranking: RankingConfig = Field(default_factory=RankingConfig)

    @field_validator("api_base_url")
    @classmethod
    def _validate_base_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError("api_base_url must be an http(s) URL")
        return v.rstrip("/")

    @field_validator("api_timeout_seconds")
    @classmethod
    def _validate_api_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("api_timeout_seconds must be > 0")
        return v

    @model_validator(mode="after")
    def _derive_defaults(self) -> "AppConfig":
        # Default log format: console in dev/test, json in prod.
        if self.log_format is None:
            self.log_format = "json" if self.environment == "prod" else "console"
        return self

    def to_sectioned_dict(self) -> dict[str, Any]:
        """
        Dump configuration in the sectioned shape used by config.yaml/docs.
        """
        return {
            "app_name": self.app_name,
            "environment": self.environment,
            "api": {
                "base_url": self.api_base_url,
                "timeout_seconds": self.api_timeout_seconds,
                "user_agent": self.api_user_agent,
            },
            "logging": {"level": self.log_level, "format": self.log_format},
            "search": self.search.model_dump(),
            "sources": self.sources.model_dump(),
            "ranking": self.ranking.model_dump(),
        }


class EnvOverrides(BaseSettings):
    """
    Environment-variable overrides (all optional).

    Intended usage:
    - load.py creates EnvOverrides() to read STREAMFINDER_* variables,
      converts to dict of set values, merges into YAML/defaults,
      then validates AppConfig.

    Supported env var examples (flat, explicit):
    - STREAMFINDER_API_BASE_URL
    - STREAMFINDER_API_TIMEOUT_SECONDS
    - STREAMFINDER_PROVIDER_TIMEOUT_SECONDS
    - STREAMFINDER_LOG_LEVEL
    """

    model_config = SettingsConfigDict(
        env_prefix="STREAMFINDER_",
        extra="ignore",
        case_sensitive=False,
    )

    app_name: Optional[str] = None
    environment: Optional[Environment] = None

    api_base_url: Optional[str] = None
    api_timeout_seconds: Optional[float] = None
    api_user_agent: Optional[str] = None

    log_level: Optional[LogLevel] = None
    log_format: Optional[LogFormat] = None

    provider_timeout_seconds: Optional[float] = None
    probe_timeout_seconds: Optional[float] = None
    probe_enabled: Optional[bool] = None

    sources_enabled_all: Optional[bool] = None

    def to_update_dict(self) -> dict[str, Any]:
        """
        Return only values that were actually provided (non-None), for merging.
        """
        return self.model_dump(exclude_none=True)
