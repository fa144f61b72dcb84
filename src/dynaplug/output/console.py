"""Rich Console factory and theme for dynaplug output.

Consoles render into a StringIO buffer so renderers return plain strings.
In non-TTY environments (tests, pipes) Rich disables color codes.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

DYNAPLUG_THEME = Theme(
    {
        "dp.ok": "bold green",
        "dp.error": "bold red",
        "dp.warning": "bold yellow",
        "dp.op": "bold cyan",
        "dp.key": "dim",
        "dp.uid": "bold blue",
        "dp.status.loaded": "green",
        "dp.status.failed": "red",
        "dp.enabled": "green",
        "dp.disabled": "dim",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer."""
    return Console(
        file=StringIO(),
        theme=DYNAPLUG_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()
