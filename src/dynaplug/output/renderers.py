"""Operation-specific Rich renderers for ServiceResult.

Renderers are dispatched by ``result.op`` in :func:`render_result`.
Unknown ops fall through to a generic key-value renderer.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from rich.table import Table
from rich.text import Text

from dynaplug.output.console import create_console, get_output

if TYPE_CHECKING:
    from rich.console import Console

    from dynaplug.services.result import ServiceResult


# ── Public API ────────────────────────────────────────────────────────


def render_result(result: ServiceResult, *, verbose: bool = False) -> str:
    """Render a ServiceResult to a styled string via Rich."""
    console = create_console()

    if result.ok:
        renderer = _OP_RENDERERS.get(result.op, _render_generic)
        renderer(result, console, verbose=verbose)
    else:
        _render_error(result, console, verbose=verbose)

    return get_output(console).rstrip("\n")


# ── Helpers ───────────────────────────────────────────────────────────


def _status_line(console: Console, result: ServiceResult) -> None:
    console.print(Text.assemble(("OK", "dp.ok"), (f"  {result.op}", "dp.op")))


def _flags_text(item: dict[str, Any]) -> str:
    parts = [f"+{name}" for name in item.get("required_flags", [])]
    parts.extend(f"-{name}" for name in item.get("disallowed_flags", []))
    return " ".join(parts)


def _plugin_table(plugins: list[dict[str, Any]]) -> Table:
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("Plugin", no_wrap=True)
    table.add_column("Status")
    table.add_column("Version")
    table.add_column("Enabled")
    table.add_column("Note")

    for plugin in plugins:
        status = plugin.get("status", "")
        if status == "loaded":
            enabled = bool(plugin.get("enabled"))
            table.add_row(
                Text(str(plugin.get("plugin_name", ""))),
                Text(status, style="dp.status.loaded"),
                str(plugin.get("metadata", {}).get("version", "")),
                Text("yes" if enabled else "no", style="dp.enabled" if enabled else "dp.disabled"),
                Text(str(plugin.get("disable_reason") or "")),
            )
        else:
            table.add_row(
                Text(str(plugin.get("plugin_name", ""))),
                Text(status, style="dp.status.failed"),
                "",
                "",
                Text(str(plugin.get("error_message", ""))),
            )
    return table


def _extension_table(extensions: list[dict[str, Any]]) -> Table:
    table = Table(show_header=True, show_lines=False, pad_edge=False, expand=False)
    table.add_column("UID", style="dp.uid", no_wrap=True)
    table.add_column("Type")
    table.add_column("Code refs", justify="right")
    table.add_column("Flags")
    for item in extensions:
        table.add_row(
            Text(str(item.get("uid", ""))),
            str(item.get("type", "")),
            str(item.get("code_refs", 0)),
            _flags_text(item),
        )
    return table


# ── Error renderer ────────────────────────────────────────────────────


def _render_error(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    console.print(Text.assemble(("ERROR", "dp.error"), (f"  {result.op}", "dp.op"), f" — {msg}"))

    for failure in err.failures if err else []:
        console.print(Text(f"  {failure.uid}", style="dp.uid"))
        for cause in failure.causes:
            console.print(Text(f"    {cause}"))

    if verbose and err:
        console.print(Text(f"  code: {err.code}", style="dim"))


# ── Operation renderers ───────────────────────────────────────────────


def _render_list(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    plugins = result.data.get("plugins", [])
    extensions = result.data.get("extensions", [])

    console.print(Text(f"  plugins: {len(plugins)}", style="dp.key"))
    if plugins:
        console.print(_plugin_table(plugins))
    console.print(Text(f"  active extensions: {len(extensions)}", style="dp.key"))
    if extensions:
        console.print(_extension_table(extensions))

    flags = result.data.get("feature_flags", {})
    if verbose and flags:
        console.print(Text("  feature flags:", style="dp.key"))
        for name, value in sorted(flags.items()):
            console.print(f"    {name} = {str(value).lower()}")


def _render_resolve(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    resolved = result.data.get("resolved", [])
    console.print(Text(f"  resolved extensions: {len(resolved)}", style="dp.key"))
    for item in resolved:
        refs = item.get("code_refs", 0)
        console.print(Text(f"    {item.get('uid', '')}", style="dp.uid"), f"({refs} code refs)")


def _render_generic(result: ServiceResult, console: Console, *, verbose: bool = False) -> None:
    _status_line(console, result)
    for key, value in result.data.items():
        console.print(Text.assemble((f"  {key}: ", "dp.key"), str(value)))


_OP_RENDERERS: dict[str, Any] = {
    "list": _render_list,
    "resolve": _render_resolve,
}
