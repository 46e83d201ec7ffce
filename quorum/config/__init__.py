"""
Configuration loading for Quorum.

Configuration values are resolved using the following precedence:

1. Explicit arguments passed to `load_config`
2. Environment variables (e.g., QUORUM_LOG_LEVEL)
3. `quorum.toml` if present in the working directory
4. Built-in defaults

Example `quorum.toml`::

    max_ratings = 50

    [dispatch]
    timeout_seconds = 20
    max_attempts = 2

    [providers.groq]
    credential_env = "GROQ_API_KEY"

    [providers.openai]
    enabled = true
    model = "gpt-4o-mini"
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import tomllib
from pydantic import BaseModel, Field, ValidationError

from quorum.dispatch.dispatcher import DispatchConfig
from quorum.errors import ConfigError
from quorum.providers.interfaces import ProviderConfig
from quorum.providers.registry import DEFAULT_PROVIDERS
from quorum.tracking.performance import DEFAULT_MAX_RATINGS

__all__ = [
    "QuorumConfig",
    "ConfigError",
    "DEFAULT_CREDENTIAL_ENV",
    "load_config",
]


DEFAULT_CONFIG_FILE = Path("quorum.toml")

# Environment variables consulted for a provider credential when neither
# the TOML table nor `credential_env` supplies one.
DEFAULT_CREDENTIAL_ENV: Dict[str, str] = {
    "groq": "GROQ_API_KEY",
    "openai": "OPENAI_API_KEY",
    "claude": "ANTHROPIC_API_KEY",
}

_UNBOUNDED = {"none", "unbounded"}


def _default_providers() -> List[ProviderConfig]:
    return list(DEFAULT_PROVIDERS)


class QuorumConfig(BaseModel):
    """Top-level configuration object shared across subsystems."""

    providers: List[ProviderConfig] = Field(
        default_factory=_default_providers, description="Configured providers"
    )
    dispatch: DispatchConfig = Field(default_factory=DispatchConfig)
    max_ratings: Optional[int] = Field(
        DEFAULT_MAX_RATINGS,
        description="Ratings kept per provider (None = unbounded)",
        ge=1,
    )
    log_level: str = Field("INFO", description="Log level", min_length=1)
    log_format: Literal["json", "console"] = Field(
        "console", description="Log renderer"
    )


def load_config(config_path: Optional[Path | str] = None) -> QuorumConfig:
    """
    Load Quorum configuration from file/environment/defaults.

    Args:
        config_path: Optional explicit path to a `quorum.toml` file.

    Returns:
        QuorumConfig populated with the resolved values.

    Raises:
        ConfigError: if the config path does not exist, the file cannot
            be parsed, or a value fails validation.
    """

    raw_data = _load_toml_data(config_path)

    try:
        providers = _load_provider_configs(raw_data.get("providers", {}))
        dispatch = _load_dispatch_config(raw_data.get("dispatch", {}))

        max_ratings = _parse_max_ratings(
            _env_or_value("QUORUM_MAX_RATINGS", raw_data.get("max_ratings"), DEFAULT_MAX_RATINGS)
        )
        log_level = _env_or_value("QUORUM_LOG_LEVEL", raw_data.get("log_level"), "INFO").upper()
        log_format = _env_or_value("QUORUM_LOG_FORMAT", raw_data.get("log_format"), "console").lower()

        return QuorumConfig(
            providers=providers,
            dispatch=dispatch,
            max_ratings=max_ratings,
            log_level=log_level,
            log_format=log_format,
        )
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


def _load_toml_data(config_path: Optional[Path | str]) -> Dict[str, Any]:
    """Load data from a TOML file if one can be resolved."""

    resolved = _resolve_config_path(config_path)
    if resolved is None:
        return {}

    if not resolved.exists():
        raise ConfigError(f"Configuration file not found: {resolved}")

    try:
        with resolved.open("rb") as fh:
            return tomllib.load(fh)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {resolved}: {exc}") from exc


def _resolve_config_path(config_path: Optional[Path | str]) -> Optional[Path]:
    """Resolve configuration path with environment fallback."""

    if config_path:
        return Path(config_path)

    env_path = os.getenv("QUORUM_CONFIG_FILE")
    if env_path:
        return Path(env_path)

    return DEFAULT_CONFIG_FILE if DEFAULT_CONFIG_FILE.exists() else None


def _load_provider_configs(raw: Dict[str, Any]) -> List[ProviderConfig]:
    """
    Merge `[providers.<name>]` tables over the built-in provider set.

    Tables for unknown names add new providers after the defaults.
    """

    if not isinstance(raw, dict):
        raise ConfigError("[providers] must be a table of provider tables")

    merged: Dict[str, Dict[str, Any]] = {
        config.name: config.model_dump() for config in DEFAULT_PROVIDERS
    }
    for name, cfg in raw.items():
        if not isinstance(cfg, dict):
            raise ConfigError(f"[providers.{name}] must be a table")
        config_data = dict(cfg)
        credential_env = config_data.pop("credential_env", None)
        if not config_data.get("credential") and credential_env:
            config_data["credential"] = os.getenv(credential_env)
        config_data["name"] = name
        merged[name] = {**merged.get(name, {}), **config_data}

    providers: List[ProviderConfig] = []
    for name, config_data in merged.items():
        if not config_data.get("credential") and name in DEFAULT_CREDENTIAL_ENV:
            config_data["credential"] = os.getenv(DEFAULT_CREDENTIAL_ENV[name])
        providers.append(ProviderConfig(**config_data))
    return providers


def _load_dispatch_config(raw: Dict[str, Any]) -> DispatchConfig:
    """Build DispatchConfig from the `[dispatch]` table and environment."""

    if not isinstance(raw, dict):
        raise ConfigError("[dispatch] must be a table")

    data = dict(raw)
    defaults = DispatchConfig()
    data["timeout_seconds"] = _parse_float(
        "QUORUM_TIMEOUT_SECONDS",
        _env_or_value("QUORUM_TIMEOUT_SECONDS", raw.get("timeout_seconds"), defaults.timeout_seconds),
    )
    data["max_attempts"] = _parse_int(
        "QUORUM_MAX_ATTEMPTS",
        _env_or_value("QUORUM_MAX_ATTEMPTS", raw.get("max_attempts"), defaults.max_attempts),
    )
    return DispatchConfig(**data)


def _parse_max_ratings(raw_value: str) -> Optional[int]:
    """Convert a ratings bound, accepting `none`/`unbounded` for no bound."""

    if raw_value.strip().lower() in _UNBOUNDED:
        return None
    return _parse_int("QUORUM_MAX_RATINGS", raw_value)


def _parse_int(env_var: str, raw_value: str) -> int:
    try:
        return int(raw_value)
    except ValueError as exc:
        raise ConfigError(f"Invalid integer for {env_var}: {raw_value}") from exc


def _parse_float(env_var: str, raw_value: str) -> float:
    try:
        return float(raw_value)
    except ValueError as exc:
        raise ConfigError(f"Invalid number for {env_var}: {raw_value}") from exc


def _env_or_value(env_var: str, value: Any, default: Any) -> str:
    """Return environment variable value if set, otherwise fallback to provided/default values."""

    env_value = os.getenv(env_var)
    if env_value is not None:
        return env_value
    if value is not None:
        return str(value)
    return str(default)
