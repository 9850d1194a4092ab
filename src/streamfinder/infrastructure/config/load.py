from __future__ import annotations

from copy import deepcopy
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import load_dotenv

from .defaults import DEFAULT_CONFIG
from .schema import AppConfig, EnvOverrides

_TOP_LEVEL_KEYS = ("app_name", "environment")

# Flat key (env var suffix / CLI override) -> (section, key inside section).
_FLAT_KEYS: dict[str, tuple[str, str]] = {
    "api_base_url": ("api", "base_url"),
    "api_timeout_seconds": ("api", "timeout_seconds"),
    "api_user_agent": ("api", "user_agent"),
    "log_level": ("logging", "level"),
    "log_format": ("logging", "format"),
    "provider_timeout_seconds": ("search", "provider_timeout_seconds"),
    "probe_timeout_seconds": ("search", "probe_timeout_seconds"),
    "probe_enabled": ("search", "probe_enabled"),
    "sources_enabled_all": ("sources", "enabled_all"),
}

_SECTIONS = frozenset(section for section, _ in _FLAT_KEYS.values()) | {"ranking"}


def _merge_into(base: dict[str, Any], layer: Mapping[str, Any]) -> None:
    """Nested mappings merge key by key; any other value replaces."""
    for key, value in layer.items():
        current = base.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            _merge_into(current, value)
        else:
            base[key] = value


def _sectioned(data: Mapping[str, Any]) -> dict[str, Any]:
    """Bring one layer into the sectioned shape AppConfig validates.

    Layers may mix both spellings, e.g. ``{"search": {...}}`` from YAML and
    ``probe_enabled`` from the environment. Flat keys win over a section
    block given in the same layer. Unknown keys are dropped.
    """
    out: dict[str, Any] = {
        key: dict(value)
        for key, value in data.items()
        if key in _SECTIONS and isinstance(value, Mapping)
    }
    out.update({key: data[key] for key in _TOP_LEVEL_KEYS if key in data})
    for flat_key, (section, field) in _FLAT_KEYS.items():
        if flat_key in data:
            out.setdefault(section, {})[field] = data[flat_key]
    return out


def _existing(path: Path) -> Path:
    if not path.exists():
        raise FileNotFoundError(path)
    return path


def _yaml_layer(config_path: Path) -> dict[str, Any]:
    parsed = yaml.safe_load(_existing(config_path).read_text(encoding="utf-8"))
    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise ValueError(
            f"{config_path}: top level must be a mapping, got {type(parsed).__name__}"
        )
    return parsed


def load_config(
    *,
    config_path: Path | None = None,
    dotenv_path: Path | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> AppConfig:
    """
    Build the AppConfig from defaults < YAML file < STREAMFINDER_* env < CLI.

    A dotenv file only fills variables not already set in the process
    environment. Missing files raise FileNotFoundError; nothing is written.
    """
    if dotenv_path is not None:
        load_dotenv(_existing(dotenv_path), override=False)

    layers: list[Mapping[str, Any]] = [deepcopy(DEFAULT_CONFIG)]
    if config_path is not None:
        layers.append(_yaml_layer(config_path))
    layers.append(EnvOverrides().to_update_dict())
    layers.append(cli_overrides or {})

    merged: dict[str, Any] = {}
    for layer in layers:
        _merge_into(merged, _sectioned(layer))
    return AppConfig.model_validate(merged)
