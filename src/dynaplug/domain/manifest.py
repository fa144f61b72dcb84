"""Pydantic models for plugin manifests as delivered by a loader.

The wire format is camelCase JSON (``buildHash``); both the wire keys and
the snake_case field names are accepted on input.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class ExtensionFlags(BaseModel):
    """Feature-flag gating of a single extension."""

    model_config = {"frozen": True}

    required: tuple[str, ...] = ()
    disallowed: tuple[str, ...] = ()


class ExtensionDescriptor(BaseModel):
    """One extension as declared in a plugin manifest.

    ``properties`` is an arbitrary JSON tree that may contain encoded code
    references (``{"$codeRef": "module.export"}``).
    """

    model_config = {"frozen": True}

    type: str
    properties: dict[str, Any] = Field(default_factory=dict)
    flags: ExtensionFlags | None = None


class PluginRuntimeMetadata(BaseModel):
    """Immutable snapshot of manifest fields kept for a loaded plugin."""

    model_config = {"frozen": True}

    name: str
    version: str
    dependencies: dict[str, str] = Field(default_factory=dict)


class PluginManifest(BaseModel):
    """Plugin manifest: identity, version, and declared extensions.

    Attributes:
        name: Stable identity key of the plugin.
        version: Plugin version string.
        dependencies: Plugin name -> version range (informational only).
        build_hash: Identifier of this build; keeps extension uids unique
            across reloads.
        extensions: Ordered extension declarations.
    """

    model_config = {"frozen": True, "populate_by_name": True}

    name: str
    version: str
    dependencies: dict[str, str] = Field(default_factory=dict)
    build_hash: str | None = Field(default=None, alias="buildHash")
    extensions: list[ExtensionDescriptor] = Field(default_factory=list)

    def runtime_metadata(self) -> PluginRuntimeMetadata:
        """Return the metadata snapshot stored alongside a loaded plugin."""
        return PluginRuntimeMetadata(
            name=self.name,
            version=self.version,
            dependencies=dict(self.dependencies),
        )
