"""Hardcoded default configuration values."""

from __future__ import annotations

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "app_name": "streamfinder",
    "environment": "dev",
    "api": {
        "base_url": "http://localhost:3000",
        "timeout_seconds": 10.0,
        "user_agent": "streamfinder/0.1.0",
    },
    "logging": {
        "level": "INFO",
        "format": None,  # Derived from environment in schema.py
    },
    "search": {
        "provider_timeout_seconds": 10.0,
        "probe_timeout_seconds": 8.0,
        "max_concurrent_providers": 10,
        "max_concurrent_probes": 6,
        "probe_enabled": True,
    },
    "sources": {
        "enabled_all": True,
        "enabled": {},
    },
}
