"""Typed pub/sub for registry notifications, dispatched through pluggy.

Two kinds of subscribers share one pluggy ``PluginManager``:

- callables registered with :meth:`EventBus.subscribe` for a set of event
  types (wrapped in a small adapter object), and
- observer objects carrying ``@hookimpl``-decorated methods, registered with
  :meth:`EventBus.register_observer`.

Every implementation is called separately so one failing listener cannot
prevent the others from being notified.

INVARIANT: Listener failures are warnings, never errors.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable

import pluggy

from dynaplug.events.hookspecs import PROJECT_NAME, PluginEventType, RegistryHookSpec, hookimpl

logger = logging.getLogger(__name__)

Listener = Callable[[], None]


def _noop() -> None:
    pass


class _Subscription:
    """Adapter exposing a plain callable as hook implementations."""

    def __init__(self, event_types: frozenset[PluginEventType], listener: Listener) -> None:
        self.event_types = event_types
        self.listener = listener

    def _notify(self, event_type: PluginEventType) -> None:
        if event_type in self.event_types:
            self.listener()

    @hookimpl
    def on_plugin_info_changed(self) -> None:
        self._notify(PluginEventType.PLUGIN_INFO_CHANGED)

    @hookimpl
    def on_extensions_changed(self) -> None:
        self._notify(PluginEventType.EXTENSIONS_CHANGED)

    @hookimpl
    def on_feature_flags_changed(self) -> None:
        self._notify(PluginEventType.FEATURE_FLAGS_CHANGED)


class EventBus:
    """Dispatches registry events to subscribed listeners and observers."""

    def __init__(self) -> None:
        self._pm = pluggy.PluginManager(PROJECT_NAME)
        self._pm.add_hookspecs(RegistryHookSpec)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def subscribe(
        self, event_types: Iterable[PluginEventType], listener: Listener
    ) -> Callable[[], None]:
        """Call *listener* whenever one of *event_types* is emitted.

        Returns a function that removes the subscription. Calling it more
        than once has no further effect.
        """
        types = frozenset(PluginEventType(t) for t in event_types)
        if not types:
            logger.warning("subscribe called with empty event types")
            return _noop

        subscription = _Subscription(types, listener)
        self._pm.register(subscription)

        def unsubscribe() -> None:
            if self._pm.is_registered(subscription):
                self._pm.unregister(subscription)

        return unsubscribe

    def register_observer(self, observer: object, name: str | None = None) -> None:
        """Register an object whose ``@hookimpl`` methods handle events.

        Without *name*, pluggy derives a unique one, so several instances of
        one class can observe the same bus.
        """
        registered = self._pm.register(observer, name=name)
        logger.debug("Registered observer: %s", registered)

    def unregister_observer(self, observer: object) -> None:
        """Remove a previously registered observer."""
        self._pm.unregister(observer)

    def emit(self, event_type: PluginEventType) -> None:
        """Notify every listener of *event_type*.

        Implementations run in registration order.
        Exceptions are logged and swallowed per listener.
        """
        hook_caller: pluggy.HookCaller = getattr(self._pm.hook, event_type.value)
        for impl in hook_caller.get_hookimpls():
            try:
                impl.function()
            except Exception:
                logger.warning(
                    "Listener %s failed on %s",
                    impl.plugin_name,
                    event_type.name,
                    exc_info=True,
                )

    def listener_count(self) -> int:
        """Return the number of registered subscriptions and observers."""
        return len(self._pm.get_plugins())
