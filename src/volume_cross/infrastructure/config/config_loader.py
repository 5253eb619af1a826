"""
Configuration Loader - Bridge Between JSON Config and AppSettings
=================================================================
Loads an optional JSON configuration file and overlays it on the
environment-backed AppSettings defaults.
"""

import json
import os
import sys
from pathlib import Path
from typing import Any, Dict

from .settings import AppSettings

CONFIG_ENV_VAR = "VOLUME_CROSS_CONFIG"

DEFAULT_CONFIG_PATHS = [
    "config/config.json",
    "../config/config.json",
]

SECTIONS = ("trading", "exchange", "volume", "notifications", "logging", "api")


def resolve_env_vars(data: Any) -> Any:
    """Replace "${NAME}" string values with the NAME environment variable."""
    if isinstance(data, dict):
        return {k: resolve_env_vars(v) for k, v in data.items()}
    if isinstance(data, list):
        return [resolve_env_vars(i) for i in data]
    if isinstance(data, str) and data.startswith("${") and data.endswith("}"):
        return os.getenv(data[2:-1], "")
    return data


def load_app_settings_from_json(config_path: str) -> AppSettings:
    """
    Load AppSettings from a JSON configuration file.

    Each top-level section updates the matching settings section; values
    validate exactly like environment values do. Unknown sections are ignored.
    Empty strings (unset "${VAR}" placeholders) never override a default.

    Raises:
        OSError, json.JSONDecodeError, pydantic.ValidationError
    """
    with open(config_path, 'r', encoding='utf-8') as f:
        config_data: Dict[str, Any] = resolve_env_vars(json.load(f))

    settings = AppSettings()
    for section in SECTIONS:
        overrides = config_data.get(section)
        if not isinstance(overrides, dict):
            continue
        overrides = {k: v for k, v in overrides.items() if v != ""}
        current = getattr(settings, section)
        merged = current.model_dump()
        merged.update(overrides)
        setattr(settings, section, type(current).model_validate(merged))

    return settings


def get_settings_from_working_directory() -> AppSettings:
    """
    Load settings for the current working directory.

    Order: $VOLUME_CROSS_CONFIG, then config/config.json, then ../config/config.json.
    With no file present the environment-backed defaults are returned.
    """
    explicit = os.getenv(CONFIG_ENV_VAR)
    possible_paths = [explicit] if explicit else DEFAULT_CONFIG_PATHS

    for config_path in possible_paths:
        if Path(config_path).exists():
            return load_app_settings_from_json(config_path)

    if explicit:
        print(f"[WARNING] {CONFIG_ENV_VAR}={explicit} does not exist, using defaults", file=sys.stderr)
    return AppSettings()
