"""Config Loader - loads client connection settings from YAML.

Example file:

    server_url: https://sonar.example.com
    login: ${SONAR_TOKEN}
    request_timeout: 30

String values may reference environment variables as ${NAME}; a reference
to an unset variable is an error rather than an empty string.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field

from sonarqube_client.models import ConnectionInfo


class ConfigError(Exception):
    """Raised when configuration loading fails."""


DEFAULT_REQUEST_TIMEOUT = 30.0

_ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")


class ClientConfig(BaseModel):
    """Top-level client configuration file structure."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    server_url: str = Field(description="Absolute URL of the SonarQube server")
    login: str | None = Field(default=None, repr=False, description="Login or user token")
    password: str | None = Field(default=None, repr=False, description="Password")
    request_timeout: float = Field(
        default=DEFAULT_REQUEST_TIMEOUT, gt=0, description="Per-request timeout in seconds"
    )
    verify_ssl: bool = Field(default=True, description="Verify the server certificate")

    def connection(self) -> ConnectionInfo:
        return ConnectionInfo(
            server_url=self.server_url, login=self.login, password=self.password
        )


def load_client_config(config_path: Path) -> ClientConfig:
    """Load client configuration from YAML with ${ENV_VAR} substitution."""
    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file: {e}") from e

    if not isinstance(raw_config, dict):
        raise ConfigError("Config file must be a YAML mapping")

    raw_config = {key: _expand_setting(key, value) for key, value in raw_config.items()}

    try:
        config = ClientConfig.model_validate(raw_config)
        # Fail on a bad server_url here rather than at first use
        config.connection()
    except ValueError as e:
        raise ConfigError(f"Invalid config structure: {e}") from e
    return config


def _expand_setting(key: str, value: Any) -> Any:
    """Replace ${NAME} references in a string setting with environment values.

    All settings are scalars, so only top-level strings are expanded.
    """
    if not isinstance(value, str):
        return value

    def lookup(match: re.Match[str]) -> str:
        name = match.group(1)
        if name not in os.environ:
            raise ConfigError(f"Setting '{key}' references unset environment variable '{name}'")
        return os.environ[name]

    return _ENV_VAR_PATTERN.sub(lookup, value)
