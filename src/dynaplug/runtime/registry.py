"""Plugin registry — load state, enablement, and active extensions.

The registry is an explicit object (no module-level singleton). A loader is
attached with :meth:`PluginRegistry.set_loader`; its outcomes are ingested
as they arrive, in whatever order and however many times they arrive.

State lives in one immutable :class:`_RegistryState` snapshot. Mutating
operations build a new snapshot under a reentrant lock and publish it with a
single assignment, so readers never lock and never observe a half-applied
transaction.

INVARIANT: A plugin name is absent, loaded, or failed; never two at once.
INVARIANT: The active extension list is recomputed from scratch on every
transaction and only swapped, never patched.
"""

from __future__ import annotations

import copy
import dataclasses
import logging
import threading
import uuid
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from dynaplug.config.models import RegistryConfig
from dynaplug.domain.extension import (
    Extension,
    FailedPlugin,
    FailedPluginInfo,
    LoadedPlugin,
    LoadedPluginInfo,
    PluginInfoEntry,
    make_extension_uid,
)
from dynaplug.domain.flags import FeatureFlags, compute_active_extensions, normalize_feature_flags
from dynaplug.domain.manifest import ExtensionDescriptor, PluginManifest
from dynaplug.errors import LoaderAlreadySetError, LoaderNotConnectedError, PluginNotLoadedError
from dynaplug.events.bus import EventBus, Listener
from dynaplug.events.hookspecs import PluginEventType
from dynaplug.runtime.coderefs import decode_code_refs, get_plugin_module
from dynaplug.runtime.loader import PluginEntryModule, PluginLoader, PluginLoadResult

logger = logging.getLogger(__name__)

PostProcessor = Callable[[list[Extension]], Sequence[Extension]]


@dataclass(frozen=True)
class _RegistryState:
    """One consistent view of everything the registry tracks."""

    loaded: Mapping[str, LoadedPlugin] = field(default_factory=dict)
    failed: Mapping[str, FailedPlugin] = field(default_factory=dict)
    extensions: tuple[Extension, ...] = ()
    feature_flags: Mapping[str, bool] = field(default_factory=dict)


class PluginRegistry:
    """Manages plugins and their extensions.

    Parameters:
        config: Registry options (``auto_enable_loaded_plugins``).
        event_bus: Bus used for notifications; a private one by default.
        feature_flags: Initial flag values. Non-boolean values are dropped.
        post_process_extensions: Optional hook applied to each plugin's
            decoded extensions before they are stored.
    """

    def __init__(
        self,
        config: RegistryConfig | None = None,
        *,
        event_bus: EventBus | None = None,
        feature_flags: Mapping[str, Any] | None = None,
        post_process_extensions: PostProcessor | None = None,
    ) -> None:
        self._config = config or RegistryConfig()
        self._events = event_bus or EventBus()
        self._post_process = post_process_extensions
        self._lock = threading.RLock()
        self._loader: PluginLoader | None = None
        self._state = _RegistryState(feature_flags=normalize_feature_flags(feature_flags or {}))

    # ------------------------------------------------------------------
    # Loader attachment
    # ------------------------------------------------------------------

    def set_loader(self, loader: PluginLoader) -> Callable[[], None]:
        """Attach *loader*; must happen before any plugin is loaded.

        Returns a function that detaches the loader again.

        Raises:
            LoaderAlreadySetError: A loader is already attached.
        """
        with self._lock:
            if self._loader is not None:
                raise LoaderAlreadySetError()
            self._loader = loader
            unsubscribe = loader.subscribe(self._handle_load_result)

        def detach() -> None:
            with self._lock:
                unsubscribe()
                if self._loader is loader:
                    self._loader = None

        return detach

    def has_loader(self) -> bool:
        """Return True if a loader is attached."""
        return self._loader is not None

    async def load_plugin(
        self, location: str, manifest: str | PluginManifest | None = None
    ) -> None:
        """Ask the attached loader to load a plugin.

        The outcome is delivered through the loader subscription. Without an
        attached loader the request is logged and dropped.
        """
        loader = self._loader
        if loader is None:
            logger.error("%s", LoaderNotConnectedError())
            return
        await loader.load_plugin(location, manifest)

    def _handle_load_result(self, result: PluginLoadResult) -> None:
        if not result.success:
            if result.error_cause is not None:
                logger.error("%s: %s", result.error_message, result.error_cause)
            else:
                logger.error("%s", result.error_message)
            if result.plugin_name:
                self.register_failed(result.plugin_name, result.error_message, result.error_cause)
            return

        self.register_loaded(result.manifest, result.entry_module)
        if self._config.auto_enable_loaded_plugins:
            self.enable_plugins([result.plugin_name])

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    @property
    def events(self) -> EventBus:
        """The bus carrying this registry's notifications."""
        return self._events

    def subscribe(
        self, event_types: Iterable[PluginEventType], listener: Listener
    ) -> Callable[[], None]:
        """Subscribe *listener* to *event_types*. Returns an unsubscribe function."""
        return self._events.subscribe(event_types, listener)

    # ------------------------------------------------------------------
    # Reads (lock-free snapshots)
    # ------------------------------------------------------------------

    def get_extensions(self) -> tuple[Extension, ...]:
        """Return the extensions currently in use."""
        return self._state.extensions

    def get_plugin_info(self) -> list[PluginInfoEntry]:
        """Return one entry per known plugin: loaded plugins first, then failed ones."""
        state = self._state
        entries: list[PluginInfoEntry] = [
            LoadedPluginInfo(
                plugin_name=name,
                metadata=plugin.metadata,
                enabled=plugin.enabled,
                disable_reason=plugin.disable_reason,
            )
            for name, plugin in state.loaded.items()
        ]
        entries.extend(
            FailedPluginInfo(
                plugin_name=name,
                error_message=plugin.error_message,
                error_cause=plugin.error_cause,
            )
            for name, plugin in state.failed.items()
        )
        return entries

    def get_feature_flags(self) -> FeatureFlags:
        """Return a copy of the current feature flags."""
        return dict(self._state.feature_flags)

    def get_feature_flag(self, name: str) -> bool:
        """Return True only if flag *name* is set to True."""
        return self._state.feature_flags.get(name) is True

    async def get_exposed_module(self, plugin_name: str, module_name: str) -> Any:
        """Load *module_name* through the entry module of a loaded plugin.

        Raises:
            PluginNotLoadedError: *plugin_name* is not loaded.
            ModuleLoadError: The module could not be obtained.
        """
        plugin = self._state.loaded.get(plugin_name)
        if plugin is None:
            raise PluginNotLoadedError(
                plugin_name,
                f"Attempt to get module '{module_name}' of plugin {plugin_name} "
                "which is not loaded yet",
            )
        return await get_plugin_module(
            module_name,
            plugin.entry_module,
            lambda message: f"{message} of plugin {plugin_name}",
        )

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    def register_loaded(
        self,
        manifest: PluginManifest | Mapping[str, Any],
        entry_module: PluginEntryModule,
    ) -> None:
        """Store a successfully loaded plugin, disabled, replacing any prior entry."""
        if not isinstance(manifest, PluginManifest):
            manifest = PluginManifest.model_validate(manifest)

        name = manifest.name
        build_hash = manifest.build_hash or str(uuid.uuid4())
        plugin = LoadedPlugin(
            metadata=manifest.runtime_metadata(),
            extensions=self._process_extensions(
                name, build_hash, manifest.extensions, entry_module
            ),
            entry_module=entry_module,
        )

        with self._lock:
            state = self._state
            reload = name in state.loaded or name in state.failed
            loaded = {**state.loaded, name: plugin}
            failed = {k: v for k, v in state.failed.items() if k != name}
            extensions_changed = self._commit(loaded=loaded, failed=failed)

            self._events.emit(PluginEventType.PLUGIN_INFO_CHANGED)
            if extensions_changed:
                self._events.emit(PluginEventType.EXTENSIONS_CHANGED)

        logger.info("Plugin %s has been %s", name, "reloaded" if reload else "loaded")

    def register_failed(
        self, plugin_name: str, error_message: str, error_cause: Any = None
    ) -> None:
        """Record a failed load of *plugin_name*, evicting any loaded entry."""
        with self._lock:
            state = self._state
            reload = plugin_name in state.loaded or plugin_name in state.failed
            loaded = {k: v for k, v in state.loaded.items() if k != plugin_name}
            failed = {**state.failed, plugin_name: FailedPlugin(error_message, error_cause)}
            extensions_changed = self._commit(loaded=loaded, failed=failed)

            self._events.emit(PluginEventType.PLUGIN_INFO_CHANGED)
            if extensions_changed:
                self._events.emit(PluginEventType.EXTENSIONS_CHANGED)

        logger.error("Plugin %s has failed to %s", plugin_name, "reload" if reload else "load")

    def set_enabled(
        self, plugin_names: Iterable[str], enabled: bool, reason: str | None = None
    ) -> bool:
        """Enable or disable loaded plugins.

        Unknown names are skipped with a warning. *reason* is recorded as the
        disable reason and cleared on enable. Notifications are batched: at
        most one of each event type per call. ``PLUGIN_INFO_CHANGED`` is
        emitted whenever a plugin flipped; ``EXTENSIONS_CHANGED`` only when
        the active extension set differs afterwards, so toggling a plugin
        with no active extensions reports plugin info alone.

        Returns True if at least one plugin changed state.
        """
        action = "enable" if enabled else "disable"
        with self._lock:
            loaded = dict(self._state.loaded)
            changed = False
            for name in plugin_names:
                plugin = loaded.get(name)
                if plugin is None:
                    logger.warning(
                        "%s",
                        PluginNotLoadedError(
                            name, f"Attempt to {action} plugin {name} which is not loaded yet"
                        ),
                    )
                    continue
                if plugin.enabled == enabled:
                    continue
                loaded[name] = dataclasses.replace(
                    plugin, enabled=enabled, disable_reason=None if enabled else reason
                )
                changed = True
                logger.info("Plugin %s will be %sd", name, action)

            if not changed:
                return False

            if self._commit(loaded=loaded):
                self._events.emit(PluginEventType.EXTENSIONS_CHANGED)
            self._events.emit(PluginEventType.PLUGIN_INFO_CHANGED)
            return True

    def enable_plugins(self, plugin_names: Iterable[str]) -> bool:
        """Enable the given plugins."""
        return self.set_enabled(plugin_names, True)

    def disable_plugins(self, plugin_names: Iterable[str], reason: str | None = None) -> bool:
        """Disable the given plugins, remembering *reason*."""
        return self.set_enabled(plugin_names, False, reason)

    def set_feature_flags(self, patch: Mapping[str, Any]) -> bool:
        """Merge the boolean entries of *patch* into the current flags.

        Returns True if the flag map changed.
        """
        with self._lock:
            previous = self._state.feature_flags
            flags = {**previous, **normalize_feature_flags(patch)}
            if flags == previous:
                return False

            if self._commit(feature_flags=flags):
                self._events.emit(PluginEventType.EXTENSIONS_CHANGED)
            self._events.emit(PluginEventType.FEATURE_FLAGS_CHANGED)
            return True

    # ------------------------------------------------------------------
    # Internal
    # ------------------------------------------------------------------

    def _commit(
        self,
        *,
        loaded: Mapping[str, LoadedPlugin] | None = None,
        failed: Mapping[str, FailedPlugin] | None = None,
        feature_flags: Mapping[str, bool] | None = None,
    ) -> bool:
        """Publish a new snapshot with recomputed extensions.

        Must be called with the lock held. Returns True if the active
        extension list differs from the previous one.
        """
        previous = self._state
        loaded = previous.loaded if loaded is None else loaded
        flags = previous.feature_flags if feature_flags is None else feature_flags
        extensions = compute_active_extensions(loaded.values(), flags)
        self._state = _RegistryState(
            loaded=loaded,
            failed=previous.failed if failed is None else failed,
            extensions=extensions,
            feature_flags=flags,
        )
        return extensions != previous.extensions

    def _process_extensions(
        self,
        plugin_name: str,
        build_hash: str,
        descriptors: Sequence[ExtensionDescriptor],
        entry_module: PluginEntryModule,
    ) -> tuple[Extension, ...]:
        extensions = [
            decode_code_refs(
                Extension(
                    type=descriptor.type,
                    properties=copy.deepcopy(descriptor.properties),
                    flags=descriptor.flags,
                    plugin_name=plugin_name,
                    uid=make_extension_uid(plugin_name, index, build_hash),
                ),
                entry_module,
            )
            for index, descriptor in enumerate(descriptors)
        ]
        if self._post_process is not None:
            return tuple(self._post_process(extensions))
        return tuple(extensions)
