"""Pluggy hook specifications for registry state-change notifications.

Each event type maps to one argument-less hook; listeners re-read the
registry state they care about when notified.
"""

from __future__ import annotations

from enum import StrEnum

import pluggy

PROJECT_NAME = "dynaplug"

hookspec = pluggy.HookspecMarker(PROJECT_NAME)
hookimpl = pluggy.HookimplMarker(PROJECT_NAME)


class PluginEventType(StrEnum):
    """Registry events, valued by the name of the hook that carries them."""

    PLUGIN_INFO_CHANGED = "on_plugin_info_changed"
    EXTENSIONS_CHANGED = "on_extensions_changed"
    FEATURE_FLAGS_CHANGED = "on_feature_flags_changed"


class RegistryHookSpec:
    """Hook specifications for registry observers."""

    @hookspec
    def on_plugin_info_changed(self) -> None:
        """Called after a plugin was loaded, failed, enabled, or disabled."""

    @hookspec
    def on_extensions_changed(self) -> None:
        """Called after the active extension list changed."""

    @hookspec
    def on_feature_flags_changed(self) -> None:
        """Called after the feature flag map changed."""
