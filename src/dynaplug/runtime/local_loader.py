"""Loader for plugins laid out as directories on the local filesystem.

A plugin directory holds a ``plugin-manifest.json`` and one Python file (or
package directory) per exposed module::

    my-plugin/
        plugin-manifest.json
        handlers.py          -> {"$codeRef": "handlers.on_event"}
        widgets/__init__.py  -> {"$codeRef": "widgets"}  (export "default")

Modules are imported with ``importlib`` on first request, under a private
name unique to each load so that a reload never reuses stale code.
"""

from __future__ import annotations

import asyncio
import importlib.util
import json
import logging
import re
import sys
import threading
import uuid
from collections.abc import Callable, Iterable
from pathlib import Path
from types import ModuleType
from typing import Any

from dynaplug.domain.manifest import PluginManifest
from dynaplug.runtime.loader import PluginLoader, PluginLoadFailure, PluginLoadSuccess

DEFAULT_MANIFEST_FILENAME = "plugin-manifest.json"

logger = logging.getLogger(__name__)


def _module_prefix(plugin_name: str) -> str:
    slug = re.sub(r"\W", "_", plugin_name)
    return f"dynaplug_plugin_{slug}_{uuid.uuid4().hex[:8]}"


class LocalEntryModule:
    """Entry module serving the Python modules of one plugin directory.

    Imports run in a worker thread so a slow module body does not block the
    event loop. A lock per module name keeps concurrent requests for one
    module down to a single import.
    """

    def __init__(self, plugin_name: str, root: Path) -> None:
        self.plugin_name = plugin_name
        self.root = root
        self._prefix = _module_prefix(plugin_name)
        self._modules: dict[str, ModuleType] = {}
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    async def get(self, module_name: str) -> Callable[[], ModuleType]:
        """Import *module_name* once and return a factory for it."""
        module = self._modules.get(module_name)
        if module is None:
            module = await asyncio.to_thread(self._import_once, module_name)
        return lambda: module

    def _import_once(self, module_name: str) -> ModuleType:
        with self._locks_guard:
            lock = self._locks.setdefault(module_name, threading.Lock())
        with lock:
            module = self._modules.get(module_name)
            if module is None:
                module = self._import(module_name)
                self._modules[module_name] = module
            return module

    def _import(self, module_name: str) -> ModuleType:
        if not module_name.isidentifier():
            msg = f"Invalid module name {module_name!r}"
            raise ImportError(msg)

        file_path = self.root / f"{module_name}.py"
        package_dir = self.root / module_name
        search_locations: list[str] | None = None
        if not file_path.is_file():
            file_path = package_dir / "__init__.py"
            search_locations = [str(package_dir)]
        if not file_path.is_file():
            msg = f"No module {module_name!r} in {self.root}"
            raise ModuleNotFoundError(msg)

        qualified_name = f"{self._prefix}_{module_name}"
        spec = importlib.util.spec_from_file_location(
            qualified_name, file_path, submodule_search_locations=search_locations
        )
        if spec is None or spec.loader is None:
            msg = f"Could not create module spec for {file_path}"
            raise ImportError(msg)

        module = importlib.util.module_from_spec(spec)
        sys.modules[qualified_name] = module
        try:
            spec.loader.exec_module(module)
        except BaseException:
            # Clean up partial module registration
            sys.modules.pop(qualified_name, None)
            raise
        logger.debug("Imported module %s of plugin %s", module_name, self.plugin_name)
        return module


class LocalPluginLoader(PluginLoader):
    """Loads plugin directories and reports each outcome to subscribers.

    Parameters:
        manifest_filename: Manifest file looked up inside each plugin directory.
    """

    def __init__(self, manifest_filename: str = DEFAULT_MANIFEST_FILENAME) -> None:
        super().__init__()
        self.manifest_filename = manifest_filename

    async def load_plugin(
        self, location: str, manifest: str | PluginManifest | None = None
    ) -> None:
        """Load the plugin directory at *location*.

        *manifest* may be a ready manifest object or a manifest filename
        relative to *location*. Unreadable or invalid manifests produce a
        failure outcome, naming the plugin when the manifest revealed it.
        """
        root = Path(location)
        data: Any = None
        try:
            if isinstance(manifest, PluginManifest):
                resolved = manifest
            else:
                path = root / (manifest or self.manifest_filename)
                raw = await asyncio.to_thread(path.read_text, encoding="utf-8")
                data = json.loads(raw)
                resolved = PluginManifest.model_validate(data)
        except (OSError, ValueError) as exc:
            self._notify(
                PluginLoadFailure(
                    error_message=f"Failed to load plugin manifest from {root}",
                    plugin_name=_declared_name(data),
                    error_cause=exc,
                )
            )
            return

        self._notify(
            PluginLoadSuccess(
                plugin_name=resolved.name,
                manifest=resolved,
                entry_module=LocalEntryModule(resolved.name, root),
            )
        )


def _declared_name(data: Any) -> str | None:
    if isinstance(data, dict) and isinstance(data.get("name"), str):
        return data["name"]
    return None


def find_plugin_roots(
    paths: Iterable[Path], manifest_filename: str = DEFAULT_MANIFEST_FILENAME
) -> list[Path]:
    """Expand *paths* into plugin directories.

    A path holding a manifest is a plugin itself; otherwise each immediate
    subdirectory holding a manifest is one. Missing paths are skipped with a
    warning.
    """
    roots: list[Path] = []
    for path in paths:
        if not path.is_dir():
            logger.warning("Plugin path %s is not a directory", path)
            continue
        if (path / manifest_filename).is_file():
            roots.append(path)
            continue
        roots.extend(
            child
            for child in sorted(path.iterdir())
            if child.is_dir() and (child / manifest_filename).is_file()
        )
    return roots
