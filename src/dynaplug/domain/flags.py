"""Feature-flag gating of extensions.

An extension is active when every ``required`` flag is explicitly ``True``
and every ``disallowed`` flag is ``False`` or unset. A required flag that is
missing from the flag map does not count as satisfied.

INVARIANT: The active extension set is a pure function of the loaded
plugins and the current flags. It is always rebuilt, never patched.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from dynaplug.domain.extension import Extension, LoadedPlugin

FeatureFlags = dict[str, bool]


def normalize_feature_flags(patch: Mapping[str, Any]) -> FeatureFlags:
    """Keep only the boolean-valued entries of *patch*."""
    return {name: value for name, value in patch.items() if isinstance(value, bool)}


def is_extension_active(extension: Extension, flags: Mapping[str, bool]) -> bool:
    """Return True if *extension* is in use under *flags*."""
    gating = extension.flags
    if gating is None:
        return True
    if not all(flags.get(name) is True for name in gating.required):
        return False
    return all(flags.get(name, False) is False for name in gating.disallowed)


def compute_active_extensions(
    plugins: Iterable[LoadedPlugin], flags: Mapping[str, bool]
) -> tuple[Extension, ...]:
    """Concatenate the active extensions of every enabled plugin, in plugin order."""
    return tuple(
        extension
        for plugin in plugins
        if plugin.enabled
        for extension in plugin.extensions
        if is_extension_active(extension, flags)
    )
