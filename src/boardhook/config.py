"""Configuration loading for boardhook deployments."""

from __future__ import annotations

import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

DEFAULT_CONFIG_FILE = "boardhook.yaml"
ENV_PREFIX = "BOARDHOOK_"


class ConfigError(Exception):
    """Raised when configuration is invalid."""


@dataclass
class Settings:
    """Runtime settings for the webhook service.

    Values come from (lowest to highest precedence) the dataclass defaults,
    an optional YAML file, and ``BOARDHOOK_*`` environment variables.
    ``ANTHROPIC_API_KEY`` is honoured when ``anthropic_api_key`` is unset.
    """

    database_path: str = "boardhook.db"
    log_dir: str = "logs"
    log_level: str = "INFO"
    anthropic_api_key: str = ""
    anthropic_base_url: str = "https://api.anthropic.com"
    extraction_model: str = "claude-haiku-4-5-20251001"
    extraction_max_tokens: int = 1024
    request_timeout: float = 55.0
    rate_limit_requests: int = 60
    rate_limit_window_seconds: int = 60
    background_workers: int = 4

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Settings:
        """Create settings from a mapping.

        Raises:
            ConfigError: On unknown keys or values of the wrong type.
        """
        known = {f.name: f for f in fields(cls)}
        unknown = sorted(set(data) - set(known))
        if unknown:
            raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")

        values: dict[str, Any] = {}
        for name, value in data.items():
            values[name] = _coerce(name, known[name].type, value)
        return cls(**values)


def _coerce(name: str, type_name: Any, value: Any) -> Any:
    # Annotations are strings under `from __future__ import annotations`
    type_name = getattr(type_name, "__name__", type_name)
    try:
        if type_name == "int":
            return int(value)
        if type_name == "float":
            return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value for {name}: {value!r}") from e
    return str(value)


def _env_overrides() -> dict[str, str]:
    overrides: dict[str, str] = {}
    for f in fields(Settings):
        env_value = os.environ.get(f"{ENV_PREFIX}{f.name.upper()}")
        if env_value is not None:
            overrides[f.name] = env_value
    return overrides


def load_settings(config_path: Path | str | None = None) -> Settings:
    """Load settings from YAML (if present) and the environment.

    Args:
        config_path: Path to a YAML file. When omitted, ``BOARDHOOK_CONFIG`` or
            ``boardhook.yaml`` in the working directory is used if it exists.

    Returns:
        Parsed settings.

    Raises:
        ConfigError: If an explicit file is missing or any file is invalid.
    """
    data: dict[str, Any] = {}

    explicit = config_path is not None or "BOARDHOOK_CONFIG" in os.environ
    path = Path(config_path or os.environ.get("BOARDHOOK_CONFIG", DEFAULT_CONFIG_FILE))

    if path.exists():
        try:
            with open(path) as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e
        if loaded is not None and not isinstance(loaded, dict):
            raise ConfigError(f"Configuration must be a YAML mapping, got {type(loaded).__name__}")
        data.update(loaded or {})
    elif explicit:
        raise ConfigError(f"Configuration file not found: {path}")

    data.update(_env_overrides())
    settings = Settings.from_dict(data)

    if not settings.anthropic_api_key:
        settings.anthropic_api_key = os.environ.get("ANTHROPIC_API_KEY", "")

    return settings
