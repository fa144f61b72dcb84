"""State-change notifications via pluggy.

INVARIANT: Listener failures are warnings, never errors.
"""

from dynaplug.events.bus import EventBus
from dynaplug.events.hookspecs import PluginEventType, hookimpl

__all__ = ["EventBus", "PluginEventType", "hookimpl"]
