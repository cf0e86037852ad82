"""
Configuration loading for GrindProof.

Settings live in args/grindproof.yaml; secrets come from the environment
(optionally populated from a .env file). Missing sections fall back to
the defaults below so a fresh checkout runs without any config file.

Usage:
    from grindproof.config import load_config, get_section

    weights = get_section("validation")["evidence_weights"]
"""

import copy
import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from grindproof import CONFIG_PATH


DEFAULT_CONFIG: dict[str, Any] = {
    "database": {"path": "data/grindproof.db"},
    "analysis": {
        "abandonment_days": 30,
        "new_project_goal_threshold": 3,
        "max_evidence_samples": 3,
    },
    "validation": {
        "min_confidence": 0.5,
        "evidence_weights": {"validated": 1.0, "unvalidated": 0.5},
    },
    "ai": {
        "model": "claude-sonnet-4-20250514",
        "max_tokens": 2048,
        "temperature": 0.7,
        "refine_temperature": 0.2,
        "max_tool_rounds": 5,
    },
    "security": {"require_auth": True, "session_ttl_hours": 24},
    "integrations": {
        "github": {"api_url": "https://api.github.com", "max_repos_fallback": 10},
        "google_calendar": {
            "api_url": "https://www.googleapis.com/calendar/v3",
            "token_url": "https://oauth2.googleapis.com/token",
            "refresh_threshold_minutes": 5,
            "sync_days_back": 7,
            "sync_days_forward": 30,
        },
    },
    "dashboard": {"cors_origins": ["http://localhost:3000"]},
    "logging": {"level": "INFO", "format": "console"},
}

_config_cache: dict[str, Any] | None = None


def _merge(base: dict, override: dict) -> dict:
    """Recursively merge override into a copy of base."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path: Path | None = None, reload: bool = False) -> dict[str, Any]:
    """Load configuration from YAML merged over defaults."""
    global _config_cache

    if _config_cache is not None and path is None and not reload:
        return _config_cache

    load_dotenv()

    config_path = path or CONFIG_PATH
    file_config: dict[str, Any] = {}
    if config_path.exists():
        with open(config_path) as f:
            file_config = yaml.safe_load(f) or {}

    config = _merge(DEFAULT_CONFIG, file_config)

    if path is None:
        _config_cache = config
    return config


def get_section(name: str) -> dict[str, Any]:
    return load_config().get(name, {})


def get_secret(name: str, default: str | None = None) -> str | None:
    """Read a secret from the environment (after .env has been loaded)."""
    load_dotenv()
    return os.environ.get(name, default)
