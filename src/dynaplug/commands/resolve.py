"""Command: resolve the code references of every active extension."""

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
    cls=DynaplugCommand,
    examples="""\
  dynaplug resolve ./plugins
  dynaplug resolve ./plugins --flag LEGACY=false
  dynaplug --json resolve ./plugins/my-plugin""",
)
@plugin_loading_options
@click.pass_obj
def resolve(app: AppContext, plugin_dirs: tuple[Path, ...], flags: dict[str, bool]) -> None:
    """Load plugin directories and resolve every active extension's code references."""
    from dynaplug.services.inspect import InspectService

    svc = InspectService(app.build_registry())

    async def run() -> ServiceResult:
        await svc.load(
            app.plugin_paths(plugin_dirs),
            manifest_filename=app.settings.loader.manifest_filename,
            feature_flags=flags,
        )
        return await svc.resolve()

    app.emit(asyncio.run(run()))
