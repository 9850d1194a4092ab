"""Integration tests for configuration loading with layered precedence.

Tests the real load_config() function with actual YAML files, environment
variables, and CLI overrides to verify precedence: defaults < YAML < ENV < CLI.
"""

from __future__ import annotations

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from streamfinder.infrastructure.config.load import load_config

pytestmark = pytest.mark.integration


@pytest.fixture()
def yaml_config(tmp_path: Path) -> Path:
    """Write a minimal YAML config and return its path."""
    config = {
        "app_name": "streamfinder-test",
        "environment": "test",
        "api": {
            "base_url": "https://tv.example/",
            "timeout_seconds": 15.0,
            "user_agent": "TestAgent/1.0",
        },
        "logging": {"level": "DEBUG", "format": "console"},
        "search": {"provider_timeout_seconds": 4.0, "max_concurrent_probes": 2},
        "sources": {"enabled_all": False, "enabled": {"heimuer": True}},
        "ranking": {"quality_weight": 0.5, "speed_weight": 0.3, "ping_weight": 0.2},
    }
    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump(config), encoding="utf-8")
    return path


class TestDefaultsOnly:
    """Load with no YAML, ENV or CLI layer: pure defaults."""

    def test_defaults_produce_valid_config(self) -> None:
        config = load_config()
        assert config.app_name == "streamfinder"
        assert config.environment == "dev"
        assert config.api_base_url == "http://localhost:3000"
        assert config.api_timeout_seconds == 10.0
        assert config.log_level == "INFO"
        assert config.log_format == "console"  # dev → console
        assert config.search.provider_timeout_seconds == 10.0
        assert config.search.probe_enabled is True
        assert config.sources.enabled_all is True
        assert config.ranking.quality_scores["1080p"] == 75

    def test_defaults_derive_log_format_from_environment(self) -> None:
        config = load_config(cli_overrides={"environment": "prod"})
        assert config.log_format == "json"


class TestYamlOverrides:
    """YAML values override defaults."""

    def test_yaml_overrides_defaults(self, yaml_config: Path) -> None:
        config = load_config(config_path=yaml_config)
        assert config.app_name == "streamfinder-test"
        assert config.environment == "test"
        assert config.api_base_url == "https://tv.example"  # trailing slash stripped
        assert config.api_timeout_seconds == 15.0
        assert config.api_user_agent == "TestAgent/1.0"
        assert config.log_level == "DEBUG"
        assert config.search.provider_timeout_seconds == 4.0
        assert config.search.max_concurrent_probes == 2
        assert config.sources.enabled == {"heimuer": True}
        assert config.ranking.quality_weight == 0.5

    def test_yaml_file_not_found_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(config_path=tmp_path / "nonexistent.yaml")

    def test_yaml_partial_override_preserves_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "partial.yaml"
        path.write_text(yaml.dump({"search": {"probe_enabled": False}}), encoding="utf-8")

        config = load_config(config_path=path)
        assert config.search.probe_enabled is False
        assert config.search.provider_timeout_seconds == 10.0  # default preserved
        assert config.app_name == "streamfinder"

    def test_yaml_must_be_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ValueError):
            load_config(config_path=path)

    def test_invalid_values_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text(
            yaml.dump({"search": {"provider_timeout_seconds": 0}}), encoding="utf-8"
        )
        with pytest.raises(ValidationError):
            load_config(config_path=path)

    def test_invalid_ping_bounds_rejected(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text(
            yaml.dump({"ranking": {"ping_best_ms": 500, "ping_worst_ms": 100}}),
            encoding="utf-8",
        )
        with pytest.raises(ValidationError):
            load_config(config_path=path)


class TestEnvOverrides:
    """Environment variables override YAML and defaults."""

    def test_env_overrides_yaml(
        self, yaml_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("STREAMFINDER_LOG_LEVEL", "WARNING")
        monkeypatch.setenv("STREAMFINDER_PROVIDER_TIMEOUT_SECONDS", "2.5")
        monkeypatch.setenv("STREAMFINDER_SOURCES_ENABLED_ALL", "true")

        config = load_config(config_path=yaml_config)
        assert config.log_level == "WARNING"
        assert config.search.provider_timeout_seconds == 2.5
        assert config.sources.enabled_all is True
        # YAML values not overridden by ENV stay
        assert config.app_name == "streamfinder-test"
        assert config.sources.enabled == {"heimuer": True}

    def test_env_overrides_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("STREAMFINDER_ENVIRONMENT", "prod")

        config = load_config()
        assert config.environment == "prod"
        assert config.log_format == "json"  # prod → json

    def test_dotenv_file(self, tmp_path: Path) -> None:
        dotenv = tmp_path / ".env"
        dotenv.write_text("STREAMFINDER_API_BASE_URL=https://dotenv.example\n")

        config = load_config(dotenv_path=dotenv)
        assert config.api_base_url == "https://dotenv.example"

    def test_dotenv_not_found_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(dotenv_path=tmp_path / "missing.env")


class TestCliOverrides:
    """CLI overrides beat everything (highest precedence)."""

    def test_cli_overrides_yaml_and_env(
        self, yaml_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("STREAMFINDER_LOG_LEVEL", "WARNING")

        config = load_config(
            config_path=yaml_config,
            cli_overrides={"log_level": "ERROR", "api_base_url": "http://cli.example"},
        )
        assert config.log_level == "ERROR"
        assert config.api_base_url == "http://cli.example"

    def test_cli_overrides_with_sectioned_format(self, yaml_config: Path) -> None:
        config = load_config(
            config_path=yaml_config,
            cli_overrides={"api": {"timeout_seconds": 5.0}},
        )
        assert config.api_timeout_seconds == 5.0

    def test_sectioned_dump_round_trips(self, yaml_config: Path) -> None:
        config = load_config(config_path=yaml_config)
        dumped = config.to_sectioned_dict()
        assert dumped["api"]["base_url"] == "https://tv.example"
        assert dumped["sources"]["enabled"] == {"heimuer": True}
        assert load_config(cli_overrides=dumped) == config

    def test_flat_key_beats_section_in_same_layer(self) -> None:
        config = load_config(
            cli_overrides={
                "search": {"probe_enabled": True, "max_concurrent_probes": 3},
                "probe_enabled": False,
                "unknown_key": "ignored",
            }
        )
        assert config.search.probe_enabled is False
        assert config.search.max_concurrent_probes == 3
