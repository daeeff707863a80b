"""Registry configuration management.

Handles loading and validating configuration from multiple sources:
    - TOML/JSON config files
    - Environment variables (OPREG_* prefix)
    - Default values

Key components:
    - RegistryConfig: Configuration model
    - load_config(): Safe config loading with fallback
    - ConfigLoadResult: Metadata about config source
"""

from __future__ import annotations

import json
import os
import tomllib
from collections.abc import Mapping
from contextlib import nullcontext
from dataclasses import dataclass
from pathlib import Path
from typing import Any
from unittest.mock import patch

from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from opregistry.core.result import ConfigError

CONFIG_ENV_VAR = "OPREGISTRY_CONFIG"
DEFAULT_CONFIG_PATH = Path.home() / ".opregistry.toml"


@dataclass
class ConfigLoadResult:
    path: Path
    file_loaded: bool
    env_overrides: set[str]
    error: str | None = None


class RegistryConfig(BaseSettings):
    """Defaults applied when a registry is created."""

    model_config = SettingsConfigDict(
        env_prefix="OPREG_",
        extra="ignore",
    )

    title: str | None = Field(default=None, description="Title reported in the metadata document.")
    version: str | None = Field(
        default=None, description="Version reported in the metadata document."
    )
    default_namespace: str | None = Field(
        default=None, description="Namespace used for commands without a 'namespace:' prefix."
    )
    metadata_path: Path | None = Field(
        default=None, description="Supplementary metadata document overlaid on reflected metadata."
    )
    log_level: str = Field(default="INFO", description="Log level for opregistry output.")

    @field_validator("metadata_path", mode="after")
    @classmethod
    def expand_metadata_path(cls, v: Path | None) -> Path | None:
        return v.expanduser() if v is not None else None

    @field_validator("log_level", mode="after")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.upper()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[
        PydanticBaseSettingsSource,
        PydanticBaseSettingsSource,
        PydanticBaseSettingsSource,
        PydanticBaseSettingsSource,
    ]:
        # Environment variables win over config file entries.
        return (env_settings, init_settings, dotenv_settings, file_secret_settings)


def _resolve_config_path(config_path: Path | None, env_vars: Mapping[str, str]) -> Path:
    candidate = config_path or env_vars.get(CONFIG_ENV_VAR) or DEFAULT_CONFIG_PATH
    return Path(candidate).expanduser()


def _read_config_file(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}

    raw = path.read_text(encoding="utf-8")
    suffix = path.suffix.lower()
    parser = json.loads if suffix == ".json" else tomllib.loads

    try:
        data = parser(raw)
    except (json.JSONDecodeError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(f"Syntax error in {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigError(f"Config root in {path} must be a mapping.")

    # Allow the settings to live under an [opregistry] table.
    section = data.get("opregistry")
    if isinstance(section, dict):
        return section
    return data


def _detect_env_overrides(env_vars: Mapping[str, str]) -> set[str]:
    prefix = RegistryConfig.model_config.get("env_prefix", "")
    return {
        field for field in RegistryConfig.model_fields if f"{prefix}{field}".upper() in env_vars
    }


def load_config(
    config_path: Path | None = None,
    env: Mapping[str, str] | None = None,
) -> tuple[RegistryConfig, ConfigLoadResult]:
    """
    Load configuration with Safe Mode fallback.
    If the file is invalid, returns default config + error message.
    """
    env_vars: Mapping[str, str] = os.environ if env is None else {**os.environ, **env}
    resolved_path = _resolve_config_path(config_path, env_vars)
    env_overrides = _detect_env_overrides(env_vars)

    error: str | None = None
    file_loaded = False
    file_data: dict[str, Any] = {}

    try:
        file_data = _read_config_file(resolved_path)
        file_loaded = resolved_path.exists()
    except ConfigError as exc:
        error = str(exc)

    context_manager = (
        patch.dict(os.environ, env_vars, clear=False) if env is not None else nullcontext()
    )

    try:
        with context_manager:
            config = RegistryConfig(**file_data)
    except ValidationError as exc:
        error = str(exc)
        config = RegistryConfig()

    load_result = ConfigLoadResult(
        path=resolved_path,
        file_loaded=file_loaded,
        env_overrides=env_overrides,
        error=error,
    )

    return config, load_result


__all__ = ["CONFIG_ENV_VAR", "ConfigLoadResult", "RegistryConfig", "load_config"]
