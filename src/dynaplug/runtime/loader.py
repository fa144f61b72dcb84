"""Contracts between the registry and the loader that fetches plugins.

A loader delivers exactly one outcome per load attempt to its subscribed
listeners. Outcomes may arrive in any order and more than once for the
same plugin name; the registry treats each one as authoritative on arrival.
"""

from __future__ import annotations

import abc
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from dynaplug.domain.manifest import PluginManifest


@runtime_checkable
class PluginEntryModule(Protocol):
    """Runtime handle through which a plugin's modules are fetched by name."""

    async def get(self, module_name: str) -> Callable[[], Any]:
        """Return a factory that yields the module's exported bindings."""
        ...


@dataclass(frozen=True)
class PluginLoadSuccess:
    """A plugin was fetched and its manifest parsed."""

    plugin_name: str
    manifest: PluginManifest
    entry_module: PluginEntryModule

    success = True


@dataclass(frozen=True)
class PluginLoadFailure:
    """A load attempt failed; *plugin_name* is None when it was never known."""

    error_message: str
    plugin_name: str | None = None
    error_cause: Any = None

    success = False


PluginLoadResult = PluginLoadSuccess | PluginLoadFailure
LoadListener = Callable[[PluginLoadResult], None]


class PluginLoader(abc.ABC):
    """Base class for loaders; owns listener bookkeeping.

    Subclasses implement :meth:`load_plugin` and report every outcome via
    :meth:`_notify`.
    """

    def __init__(self) -> None:
        self._listeners: list[LoadListener] = []

    def subscribe(self, listener: LoadListener) -> Callable[[], None]:
        """Receive every load outcome. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @abc.abstractmethod
    async def load_plugin(
        self, location: str, manifest: str | PluginManifest | None = None
    ) -> None:
        """Load the plugin found at *location* and report the outcome."""

    def _notify(self, result: PluginLoadResult) -> None:
        for listener in list(self._listeners):
            listener(result)
