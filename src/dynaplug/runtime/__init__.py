"""Plugin runtime: the registry, code references, and loaders."""

from dynaplug.runtime.coderefs import CodeRef, decode_code_refs, get_plugin_module
from dynaplug.runtime.loader import (
    PluginEntryModule,
    PluginLoader,
    PluginLoadFailure,
    PluginLoadSuccess,
)
from dynaplug.runtime.registry import PluginRegistry
from dynaplug.runtime.resolver import resolve_code_refs, resolve_extensions

__all__ = [
    "CodeRef",
    "PluginEntryModule",
    "PluginLoadFailure",
    "PluginLoadSuccess",
    "PluginLoader",
    "PluginRegistry",
    "decode_code_refs",
    "get_plugin_module",
    "resolve_code_refs",
    "resolve_extensions",
]
