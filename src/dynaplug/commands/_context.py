"""AppContext — shared Click context for all commands.

Created once by the root CLI group and handed to subcommands via
``@click.pass_obj``. It is the composition root: commands get a freshly
built registry, wired to a local loader, from :meth:`AppContext.build_registry`.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

import click

from dynaplug.output.formatters import format_result

if TYPE_CHECKING:
    from dynaplug.config.settings import DynaplugSettings
    from dynaplug.runtime.registry import PluginRegistry
    from dynaplug.services.result import ServiceResult


class AppContext:
    """Shared context flowing through Click's command hierarchy."""

    def __init__(self, settings: DynaplugSettings) -> None:
        self.settings = settings

        from dynaplug.config.logging import configure_logging

        configure_logging(verbose=settings.verbose, log_json=settings.log_json)

    def build_registry(self) -> PluginRegistry:
        """Create a registry seeded with the configured flags and a local loader."""
        from dynaplug.runtime.local_loader import LocalPluginLoader
        from dynaplug.runtime.registry import PluginRegistry

        registry = PluginRegistry(
            self.settings.registry,
            feature_flags=self.settings.feature_flags,
        )
        registry.set_loader(LocalPluginLoader(self.settings.loader.manifest_filename))
        return registry

    def plugin_paths(self, cli_paths: Sequence[Path]) -> list[Path]:
        """Paths given on the command line, else the configured plugin dirs."""
        if cli_paths:
            return list(cli_paths)
        return list(self.settings.loader.plugin_dirs)

    def emit(self, result: ServiceResult) -> None:
        """Format and output a ServiceResult with correct exit semantics.

        * Success: writes to stdout; warnings go to stderr in text mode.
        * Failure: writes to stderr, exits with code 1.
        """
        output = format_result(
            result, json_output=self.settings.json_output, verbose=self.settings.verbose
        )
        if result.ok:
            click.echo(output)
            if not self.settings.json_output:
                for warning in result.warnings:
                    click.echo(f"WARNING: {warning}", err=True)
        else:
            click.echo(output, err=True)
            raise SystemExit(1)
