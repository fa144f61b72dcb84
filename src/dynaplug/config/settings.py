"""Unified settings — CLI flags, env vars, and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs  — CLI flags passed by Click
  2. Env vars     — ``DYNAPLUG_*`` prefix (``__`` separates nested keys)
  3. TOML file    — ``dynaplug.toml`` discovered via walk-up
  4. Code defaults — baked into the section models
"""

from __future__ import annotations

import logging
import os
import threading
import tomllib
from pathlib import Path
from typing import Any

from pydantic import Field, TypeAdapter, ValidationError, field_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from dynaplug.config.discovery import find_config, read_toml
from dynaplug.config.models import LoaderConfig, RegistryConfig
from dynaplug.domain.flags import FeatureFlags, normalize_feature_flags

logger = logging.getLogger(__name__)

_BOOL = TypeAdapter(bool)


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from a ``dynaplug.toml`` file."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            try:
                self._data = read_toml(toml_path)
            except tomllib.TOMLDecodeError as exc:
                import click

                msg = f"Invalid TOML in {toml_path}: {exc}"
                raise click.ClickException(msg) from exc

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        """Return ``(value, field_name, value_is_complex)``."""
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return self._data


class FeatureFlagEnvSource(PydanticBaseSettingsSource):
    """Env source that reads ``DYNAPLUG_FEATURE_FLAGS__<NAME>=true|false`` itself.

    Wraps the standard env source, which lowercases variable names, and
    replaces its ``feature_flags`` entry so flag names keep their case.
    Values are parsed as pydantic booleans; values that do not parse are
    skipped with a warning.
    """

    prefix = "DYNAPLUG_FEATURE_FLAGS__"

    def __init__(
        self, settings_cls: type[BaseSettings], env_settings: PydanticBaseSettingsSource
    ) -> None:
        super().__init__(settings_cls)
        self._env_settings = env_settings
        self._flags: dict[str, bool] = {}
        for key, raw in os.environ.items():
            if not key.upper().startswith(self.prefix) or len(key) == len(self.prefix):
                continue
            try:
                self._flags[key[len(self.prefix) :]] = _BOOL.validate_python(raw)
            except ValidationError:
                logger.warning("Ignoring feature flag %s: %r is not a boolean", key, raw)

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        """Return ``(value, field_name, value_is_complex)``."""
        if field_name == "feature_flags":
            return dict(self._flags) or None, field_name, True
        return self._env_settings.get_field_value(field, field_name)

    def __call__(self) -> dict[str, Any]:
        data = {k: v for k, v in self._env_settings().items() if k != "feature_flags"}
        if self._flags:
            data["feature_flags"] = dict(self._flags)
        return data


# TOML path handed to settings_customise_sources during construction.
_tls = threading.local()


class DynaplugSettings(BaseSettings):
    """Settings for the dynaplug CLI and the registry it builds.

    Attributes:
        config_path: The TOML file in effect, or None.
        feature_flags: Initial flag values applied to the registry.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "DYNAPLUG_",
        "env_nested_delimiter": "__",
    }

    config_path: Path | None = None

    # --- CLI flags ---
    json_output: bool = False
    verbose: bool = False
    log_json: bool = False

    # --- TOML sections ---
    registry: RegistryConfig = Field(default_factory=RegistryConfig)
    loader: LoaderConfig = Field(default_factory=LoaderConfig)
    feature_flags: FeatureFlags = Field(default_factory=dict)

    @field_validator("feature_flags", mode="before")
    @classmethod
    def _drop_non_boolean_flags(cls, value: object) -> object:
        if isinstance(value, dict):
            return normalize_feature_flags(value)
        return value

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert TOML source between env vars and defaults.

        Feature-flag env vars keep their case through FeatureFlagEnvSource.
        """
        toml_path = getattr(_tls, "toml_path", None)
        return (
            init_settings,
            FeatureFlagEnvSource(settings_cls, env_settings),
            TomlSettingsSource(settings_cls, toml_path),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        cwd: Path | None = None,
        **cli_flags: Any,
    ) -> DynaplugSettings:
        """Construct settings from a CLI invocation.

        Uses the explicit *config_path* when it names a file, otherwise
        discovers ``dynaplug.toml`` by walking up from *cwd*.
        """
        toml_path: Path | None = None
        if config_path:
            candidate = Path(config_path)
            if candidate.is_file():
                toml_path = candidate
        else:
            toml_path = find_config(cwd)

        _tls.toml_path = toml_path
        try:
            return cls(config_path=toml_path, **cli_flags)
        finally:
            _tls.toml_path = None
