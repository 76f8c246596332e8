"""Project configuration loaded from ``reqflow.yaml``.

Example::

    requests_dir: requests
    workflows_dir: workflows
    timeout: 10
    default: staging
    environments:
      staging:
        base_url: https://staging.example.com
        token: ${env:STAGING_TOKEN}
      local:
        base_url: http://localhost:8000
        token: ${env:LOCAL_TOKEN:dev-token}

Values in ``environments`` may reference environment variables with
``${env:NAME}`` or ``${env:NAME:default}``.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

DEFAULT_CONFIG_NAMES = ["reqflow.yaml", "reqflow.yml", ".reqflow.yaml", ".reqflow.yml"]


class ConfigError(Exception):
    """Raised when the configuration file cannot be loaded or is invalid."""

    def __init__(self, message: str, path: str | None = None) -> None:
        self.message = message
        self.path = path
        super().__init__(f"{message} (in {path})" if path else message)


class ReqflowConfig(BaseModel):
    """Settings shared by every request and workflow run."""

    requests_dir: str = "requests"
    workflows_dir: str = "workflows"
    timeout: float = Field(default=30.0, gt=0)
    verify_ssl: bool = True
    default: str | None = None
    environments: dict[str, dict[str, Any]] = Field(default_factory=dict)

    model_config = {"extra": "forbid"}

    @field_validator("environments", mode="before")
    @classmethod
    def _empty_environments(cls, value: Any) -> Any:
        if value is None:
            return {}
        if isinstance(value, dict):
            return {name: variables or {} for name, variables in value.items()}
        return value

    def environment_variables(self, name: str | None = None) -> dict[str, Any]:
        """Variables of the named environment, falling back to ``default``.

        Raises:
            ConfigError: If the environment is not defined.
        """
        name = name or self.default
        if not name:
            return {}
        if name not in self.environments:
            raise ConfigError(f"Unknown environment '{name}'")
        return dict(self.environments[name])


class EnvironmentResolver:
    """Resolves ``${env:NAME}`` and ``${env:NAME:default}`` in configuration values."""

    ENV_PATTERN = re.compile(r"\$\{env:(\w+)(?::([^}]*))?\}")

    def __init__(self, environ: dict[str, str] | None = None) -> None:
        self.environ = os.environ if environ is None else environ

    def resolve(self, value: Any) -> Any:
        if isinstance(value, str):
            return self.ENV_PATTERN.sub(self._replace, value)
        if isinstance(value, dict):
            return {k: self.resolve(v) for k, v in value.items()}
        if isinstance(value, list):
            return [self.resolve(item) for item in value]
        return value

    def _replace(self, match: re.Match[str]) -> str:
        name, default = match.group(1), match.group(2)
        value = self.environ.get(name)
        if value is None:
            if default is None:
                raise ConfigError(f"Environment variable '{name}' is not set")
            return default
        return value


def find_config_file(directory: str | Path | None = None) -> Path | None:
    """Return the first default-named config file in ``directory``, if any."""
    directory = Path(directory) if directory is not None else Path.cwd()
    for name in DEFAULT_CONFIG_NAMES:
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None


def load_config(path: str | Path | None = None, directory: str | Path | None = None) -> ReqflowConfig:
    """Load configuration from ``path`` or from a default-named file.

    Without an explicit path and with no config file present, defaults are
    returned.

    Raises:
        ConfigError: If an explicit path does not exist, or the content is
            invalid.
    """
    if path is None:
        path = find_config_file(directory)
        if path is None:
            return ReqflowConfig()
    path = Path(path)
    if not path.is_file():
        raise ConfigError("Configuration file not found", str(path))

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML: {exc}", str(path)) from exc
    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a mapping", str(path))

    try:
        data = EnvironmentResolver().resolve(data)
    except ConfigError as exc:
        raise ConfigError(exc.message, str(path)) from exc

    try:
        config = ReqflowConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}", str(path)) from exc

    # Relative directories are taken relative to the config file
    base = path.parent
    config.requests_dir = str(base / config.requests_dir)
    config.workflows_dir = str(base / config.workflows_dir)
    return config
