"""Pydantic configuration section models with code-baked defaults.

Sparse TOML contract: defaults baked here, dynaplug.toml only contains overrides.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel, Field


class RegistryConfig(BaseModel):
    """[registry] section."""

    model_config = {"frozen": True}

    auto_enable_loaded_plugins: bool = True


class LoaderConfig(BaseModel):
    """[loader] section."""

    model_config = {"frozen": True}

    plugin_dirs: list[Path] = Field(default_factory=list)
    manifest_filename: str = "plugin-manifest.json"
