"""Runtime records for plugins and their extensions.

INVARIANT: A loaded plugin's metadata and extensions never change after
construction. Enabling or disabling replaces the record with a copy that
differs only in ``enabled`` and ``disable_reason``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Literal

from pydantic import BaseModel, Field

from dynaplug.domain.manifest import ExtensionFlags, PluginRuntimeMetadata

if TYPE_CHECKING:
    from dynaplug.runtime.loader import PluginEntryModule


def make_extension_uid(plugin_name: str, index: int, build_hash: str) -> str:
    """Compose the uid of the extension at *index* in a plugin build."""
    return f"{plugin_name}[{index}]_{build_hash}"


@dataclass(frozen=True)
class Extension:
    """An extension owned by a loaded plugin.

    ``properties`` holds decoded ``CodeRef`` leaves for extensions kept by the
    registry, and plain values for extensions returned by the resolver.
    """

    type: str
    properties: dict[str, Any]
    plugin_name: str
    uid: str
    flags: ExtensionFlags | None = None


@dataclass(frozen=True)
class LoadedPlugin:
    """A plugin whose manifest was ingested successfully."""

    metadata: PluginRuntimeMetadata
    extensions: tuple[Extension, ...]
    entry_module: PluginEntryModule
    enabled: bool = False
    disable_reason: str | None = None


@dataclass(frozen=True)
class FailedPlugin:
    """A plugin whose most recent load attempt failed."""

    error_message: str
    error_cause: Any = field(default=None, compare=False)


class LoadedPluginInfo(BaseModel):
    """Plugin info entry for a loaded plugin."""

    model_config = {"frozen": True}

    status: Literal["loaded"] = "loaded"
    plugin_name: str
    metadata: PluginRuntimeMetadata
    enabled: bool
    disable_reason: str | None = None


class FailedPluginInfo(BaseModel):
    """Plugin info entry for a plugin that failed to load."""

    model_config = {"frozen": True}

    status: Literal["failed"] = "failed"
    plugin_name: str
    error_message: str
    error_cause: Any = Field(default=None, exclude=True)


PluginInfoEntry = LoadedPluginInfo | FailedPluginInfo
