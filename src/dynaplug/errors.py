"""Exception taxonomy for the plugin runtime.

Loader-reported plugin failures are never raised: they are recorded by the
registry and surfaced through plugin info. Everything below is raised (or
logged) by the registry and the code-reference machinery.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from dynaplug.domain.extension import Extension


class DynaplugError(Exception):
    """Base class for all dynaplug errors."""


class LoaderNotConnectedError(DynaplugError):
    """A loading operation was requested before a loader was attached."""

    def __init__(
        self, message: str = "PluginLoader must be set before loading any plugins"
    ) -> None:
        super().__init__(message)


class LoaderAlreadySetError(DynaplugError):
    """The registry is already attached to a loader."""

    def __init__(self, message: str = "PluginLoader is already set") -> None:
        super().__init__(message)


class PluginNotLoadedError(DynaplugError):
    """An operation referenced a plugin name that is not currently loaded."""

    def __init__(self, plugin_name: str, message: str | None = None) -> None:
        self.plugin_name = plugin_name
        super().__init__(message or f"Plugin {plugin_name} is not loaded")


class CodeRefError(DynaplugError):
    """Base class for failures raised when invoking a single code reference."""


class MalformedCodeRefError(CodeRefError):
    """The ``$codeRef`` string does not match ``moduleName(.exportName)?``."""


class ModuleLoadError(CodeRefError):
    """The referenced module could not be obtained from the entry module."""


class MissingExportError(CodeRefError):
    """The module loaded but does not provide the requested export."""


class CodeRefResolutionError(DynaplugError):
    """Aggregate failure of resolving the code references of one extension.

    Attributes:
        extension: The (decoded) extension whose references were resolved.
        causes: Every individual failure, in no particular order.
    """

    def __init__(self, extension: Extension, causes: list[Any]) -> None:
        self.extension = extension
        self.causes = list(causes)
        super().__init__(
            f"Failed to resolve {len(self.causes)} code reference(s) "
            f"in extension {extension.uid}"
        )
