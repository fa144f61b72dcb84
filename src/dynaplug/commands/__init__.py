"""Subcommand modules for dynaplug.

Provides register_commands() which uses deferred imports to keep
``dynaplug --help`` fast.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click


def register_commands(cli: click.Group) -> None:
    """Register all standalone commands on the root CLI group."""
    from dynaplug.commands.list_cmd import list_cmd
    from dynaplug.commands.resolve import resolve

    cli.add_command(list_cmd)
    cli.add_command(resolve)
