"""Shared pytest fixtures and test helpers for dynaplug tests."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from dynaplug.events.hookspecs import PluginEventType
from dynaplug.runtime.registry import PluginRegistry


class StubEntryModule:
    """In-memory entry module: module name -> exported bindings.

    Unknown module names make ``get`` raise, as a real loader would.
    """

    def __init__(self, modules: dict[str, Any] | None = None) -> None:
        self.modules = modules or {}
        self.requested: list[str] = []

    async def get(self, module_name: str) -> Callable[[], Any]:
        self.requested.append(module_name)
        if module_name not in self.modules:
            msg = f"unknown module {module_name}"
            raise KeyError(msg)
        module = self.modules[module_name]
        return lambda: module


class EventRecorder:
    """Collects registry events in emission order."""

    def __init__(self, registry: PluginRegistry) -> None:
        self.events: list[PluginEventType] = []
        for event_type in PluginEventType:
            registry.subscribe([event_type], lambda t=event_type: self.events.append(t))

    def count(self, event_type: PluginEventType) -> int:
        return self.events.count(event_type)

    def clear(self) -> None:
        self.events.clear()


def make_manifest(
    name: str,
    extensions: list[dict[str, Any]] | None = None,
    *,
    version: str = "1.0.0",
    build_hash: str | None = "build-1",
) -> dict[str, Any]:
    """Build a wire-format manifest dict."""
    manifest: dict[str, Any] = {
        "name": name,
        "version": version,
        "extensions": extensions if extensions is not None else [],
    }
    if build_hash is not None:
        manifest["buildHash"] = build_hash
    return manifest


def write_plugin(
    root: Path,
    name: str,
    extensions: list[dict[str, Any]],
    modules: dict[str, str] | None = None,
) -> Path:
    """Create a plugin directory with a manifest and Python module sources."""
    plugin_dir = root / name
    plugin_dir.mkdir(parents=True)
    (plugin_dir / "plugin-manifest.json").write_text(
        json.dumps(make_manifest(name, extensions)), encoding="utf-8"
    )
    for module_name, source in (modules or {}).items():
        (plugin_dir / f"{module_name}.py").write_text(source, encoding="utf-8")
    return plugin_dir


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def registry() -> PluginRegistry:
    """Registry without a loader and without auto-enable side effects."""
    return PluginRegistry()


@pytest.fixture
def recorder(registry: PluginRegistry) -> EventRecorder:
    """Event recorder subscribed to every event type of ``registry``."""
    return EventRecorder(registry)


@pytest.fixture
def entry_module() -> StubEntryModule:
    """Entry module exposing ``mod`` with ``Foo = 42`` and a default export."""
    return StubEntryModule({"mod": {"Foo": 42, "default": "mod-default"}})


@pytest.fixture
def plugins_root(tmp_path: Path) -> Path:
    """Directory with two plugin folders: ``greeter`` (valid) and ``broken`` (bad ref)."""
    root = tmp_path / "plugins"
    write_plugin(
        root,
        "greeter",
        [
            {"type": "app.greeting", "properties": {"greet": {"$codeRef": "hello.greet"}}},
            {
                "type": "app.beta-banner",
                "properties": {"text": "beta"},
                "flags": {"required": ["BETA"]},
            },
        ],
        {"hello": "def greet(name):\n    return f'hello {name}'\n"},
    )
    write_plugin(
        root,
        "broken",
        [{"type": "app.widget", "properties": {"render": {"$codeRef": "missing.render"}}}],
    )
    return root


@pytest.fixture
def _isolated_cwd(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Run in an empty directory so no dynaplug.toml is discovered."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("DYNAPLUG_CONFIG", raising=False)


@pytest.fixture(autouse=True)
def _restore_logging() -> Iterator[None]:
    """Undo the root handler swap done by ``configure_logging`` in CLI tests."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    package = logging.getLogger("dynaplug")
    package_level = package.level
    yield
    root.handlers = handlers
    root.setLevel(level)
    package.setLevel(package_level)
