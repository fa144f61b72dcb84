"""Command: load plugins and list plugin state and active extensions."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING

import click

from dynaplug.commands._base import DynaplugCommand, plugin_loading_options

if TYPE_CHECKING:
    from dynaplug.commands._context import AppContext
    from dynaplug.services.result import ServiceResult


@click.command(
    "list",
    cls=DynaplugCommand,
    examples="""\
  dynaplug list ./plugins
  dynaplug list ./plugins/my-plugin --flag BETA=true
  dynaplug --json list""",
)
@plugin_loading_options
@click.pass_obj
def list_cmd(app: AppContext, plugin_dirs: tuple[Path, ...], flags: dict[str, bool]) -> None:
    """Load plugin directories and show plugins and active extensions."""
    from dynaplug.services.inspect import InspectService

    svc = InspectService(app.build_registry())

    async def run() -> ServiceResult:
        await svc.load(
            app.plugin_paths(plugin_dirs),
            manifest_filename=app.settings.loader.manifest_filename,
            feature_flags=flags,
        )
        return svc.list_plugins()

    app.emit(asyncio.run(run()))
