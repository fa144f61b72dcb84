"""Click building blocks shared by dynaplug commands.

``DynaplugCommand`` accepts an ``examples`` parameter: when ``--examples``
is passed, the command prints usage examples and exits. The plugin-loading
commands share the ``PLUGIN_DIR`` argument and the ``--flag`` option.
"""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path
from typing import Any

import click

_TRUE_WORDS = frozenset({"true", "1", "yes", "on"})
_FALSE_WORDS = frozenset({"false", "0", "no", "off"})


def _add_examples_option(cmd: click.Command, examples: str) -> None:
    """Attach an eager ``--examples`` flag to a Click command."""

    def show_examples(ctx: click.Context, _param: click.Parameter, value: bool) -> None:
        if not value:
            return
        click.echo(f"Examples for '{ctx.command_path}':\n")
        click.echo(examples)
        ctx.exit(0)

    cmd.params.append(
        click.Option(
            ["--examples"],
            is_flag=True,
            expose_value=False,
            is_eager=True,
            callback=show_examples,
            help="Show usage examples.",
        )
    )


class DynaplugCommand(click.Command):
    """Click Command subclass that supports an ``--examples`` flag."""

    def __init__(self, *args: Any, examples: str | None = None, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.examples = examples
        if examples:
            _add_examples_option(self, examples)


def _parse_flags(
    _ctx: click.Context, _param: click.Parameter, values: tuple[str, ...]
) -> dict[str, bool]:
    """Turn repeated ``NAME=VALUE`` options into a flag mapping."""
    flags: dict[str, bool] = {}
    for raw in values:
        name, sep, value = raw.partition("=")
        word = value.strip().lower()
        if not sep or not name.strip() or word not in _TRUE_WORDS | _FALSE_WORDS:
            msg = f"expected NAME=true|false, got {raw!r}"
            raise click.BadParameter(msg)
        flags[name.strip()] = word in _TRUE_WORDS
    return flags


def plugin_loading_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Add the ``PLUGIN_DIR...`` argument and the ``--flag`` option."""
    func = click.option(
        "--flag",
        "flags",
        multiple=True,
        callback=_parse_flags,
        metavar="NAME=BOOL",
        help="Set a feature flag (repeatable).",
    )(func)
    return click.argument(
        "plugin_dirs",
        nargs=-1,
        type=click.Path(file_okay=False, path_type=Path),
    )(func)
