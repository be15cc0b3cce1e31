"""Configuration loading for the ruleset bot.

The bot is configured from a single YAML file (``config.yml`` by default)
with a handful of environment overrides for secrets, so that private keys
never have to be written to disk in container deployments.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from rulesetbot.errors import ConfigError

DEFAULT_CONFIG_PATH = "config.yml"
DEFAULT_API_URL = "https://api.github.com/"
DEFAULT_RULESETS_PATH = "rulesets"

_TOP_LEVEL_KEYS = {
    "server",
    "github",
    "rulesets",
    "source_repository",
    "compare_parameters",
    "logging",
}

_ENV_OVERRIDES = {
    "GITHUB_APP_INTEGRATION_ID": ("github", "app", "integration_id"),
    "GITHUB_APP_PRIVATE_KEY": ("github", "app", "private_key"),
    "GITHUB_APP_WEBHOOK_SECRET": ("github", "app", "webhook_secret"),
    "GITHUB_V3_API_URL": ("github", "v3_api_url"),
    "RULESETBOT_RULESETS": ("rulesets",),
    "LOG_LEVEL": ("logging", "level"),
}


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass
class ServerConfig:
    address: str = "127.0.0.1"
    port: int = 8080


@dataclass
class AppConfig:
    """GitHub App credentials."""

    integration_id: int = 0
    private_key: str = ""
    webhook_secret: str = ""


@dataclass
class GitHubConfig:
    v3_api_url: str = DEFAULT_API_URL
    app: AppConfig = field(default_factory=AppConfig)


@dataclass
class Config:
    """Top-level bot configuration."""

    server: ServerConfig = field(default_factory=ServerConfig)
    github: GitHubConfig = field(default_factory=GitHubConfig)
    rulesets: str = DEFAULT_RULESETS_PATH
    source_repository: str = ""
    compare_parameters: bool = False
    log_level: str = "INFO"

    @property
    def rulesets_path(self) -> Path:
        return Path(self.rulesets)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def resolve_config_path(path: str | Path | None = None) -> Path:
    """Return the config path from the argument, ``RULESETBOT_CONFIG`` or the default."""
    return Path(path or os.environ.get("RULESETBOT_CONFIG") or DEFAULT_CONFIG_PATH)


def load_config(path: str | Path | None = None) -> Config:
    """Read, override from the environment, and validate the configuration file."""
    config_path = resolve_config_path(path)
    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read configuration file: {config_path}") from exc

    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse configuration file: {config_path}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Configuration file {config_path} must contain a mapping")

    _apply_env_overrides(data)
    config = parse_config(data)
    validate_config(config)
    return config


def parse_config(data: dict[str, Any]) -> Config:
    """Build a :class:`Config` from a parsed YAML mapping."""
    unknown = sorted(set(data) - _TOP_LEVEL_KEYS)
    if unknown:
        raise ConfigError(f"Unknown configuration keys: {', '.join(unknown)}")

    server = _section(data, "server")
    github = _section(data, "github")
    app = _section(github, "app")
    logging_section = _section(data, "logging")

    try:
        return Config(
            server=ServerConfig(
                address=str(server.get("address", "") or ""),
                port=int(server.get("port", 0) or 0),
            ),
            github=GitHubConfig(
                v3_api_url=str(github.get("v3_api_url", "") or ""),
                app=AppConfig(
                    integration_id=int(app.get("integration_id", 0) or 0),
                    private_key=str(app.get("private_key", "") or ""),
                    webhook_secret=str(app.get("webhook_secret", "") or ""),
                ),
            ),
            rulesets=str(data.get("rulesets") or DEFAULT_RULESETS_PATH),
            source_repository=str(data.get("source_repository") or ""),
            compare_parameters=bool(data.get("compare_parameters", False)),
            log_level=str(logging_section.get("level") or "INFO"),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid configuration value: {exc}") from exc


def validate_config(config: Config) -> None:
    """Raise :class:`ConfigError` for the first missing required field."""
    required = {
        "Server Address": config.server.address,
        "Server Port": config.server.port,
        "GitHub v3 API URL": config.github.v3_api_url,
        "GitHub App ID": config.github.app.integration_id,
        "GitHub App private key": config.github.app.private_key,
        "GitHub App webhook secret": config.github.app.webhook_secret,
    }
    for name, value in required.items():
        if not value:
            raise ConfigError(f"{name} field is required to be set in the config.yml file.")


def _section(data: dict[str, Any], key: str) -> dict[str, Any]:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"Configuration section '{key}' must be a mapping")
    return value


def _apply_env_overrides(data: dict[str, Any]) -> None:
    for env_name, keys in _ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if not value:
            continue
        node = data
        for key in keys[:-1]:
            child = node.get(key)
            if not isinstance(child, dict):
                child = {}
                node[key] = child
            node = child
        node[keys[-1]] = value
