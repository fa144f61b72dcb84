"""Encoding and decoding of references to plugin-owned code.

Wire format: ``{"$codeRef": "<moduleName>[.<exportName>]"}``; a missing
export name means ``"default"``. When a plugin is ingested, every encoded
reference in its extension properties is replaced by a :class:`CodeRef`.
Invoking a ``CodeRef`` loads the module through the plugin's entry module
and returns the export.

INVARIANT: Once decoded, a property tree never contains encoded references.
Malformed reference strings are only reported when the ``CodeRef`` runs.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from dynaplug.domain.tree import visit_tree
from dynaplug.errors import MalformedCodeRefError, MissingExportError, ModuleLoadError

if TYPE_CHECKING:
    from dynaplug.domain.extension import Extension
    from dynaplug.runtime.loader import PluginEntryModule

CODE_REF_KEY = "$codeRef"
DEFAULT_EXPORT = "default"

CODE_REF_PATTERN = re.compile(r"^([^.\s]+)(?:\.([^.\s]+))?$")

MessageFormatter = Callable[[str], str]

_MISSING = object()


def _identity(message: str) -> str:
    return message


def is_encoded_code_ref(obj: Any) -> bool:
    """Return True if *obj* is a single-key ``{"$codeRef": str}`` dict."""
    return (
        isinstance(obj, dict)
        and list(obj) == [CODE_REF_KEY]
        and isinstance(obj[CODE_REF_KEY], str)
    )


def parse_encoded_code_ref(ref: str) -> tuple[str, str] | None:
    """Split *ref* into ``(module_name, export_name)``.

    Returns None if *ref* does not match ``moduleName(.exportName)?``.
    """
    match = CODE_REF_PATTERN.match(ref)
    if match is None:
        return None
    return match.group(1), match.group(2) or DEFAULT_EXPORT


async def get_plugin_module(
    module_name: str,
    entry_module: PluginEntryModule,
    format_message: MessageFormatter = _identity,
) -> Any:
    """Load *module_name* through *entry_module* and return its bindings.

    Raises:
        ModuleLoadError: The entry module failed to provide the module.
    """
    try:
        factory = await entry_module.get(module_name)
        return factory()
    except Exception as exc:
        raise ModuleLoadError(format_message(f"Failed to load module '{module_name}'")) from exc


def _lookup_export(module: Any, export_name: str) -> Any:
    if isinstance(module, Mapping):
        return module.get(export_name, _MISSING)
    return getattr(module, export_name, _MISSING)


@dataclass(frozen=True)
class CodeRef:
    """Lazy reference to an export of a plugin module.

    Attributes:
        ref: The raw ``$codeRef`` string, possibly malformed.
        entry_module: Entry module of the owning plugin.
        label: Human-readable name, e.g. ``$codeRef_my-plugin[utils.handler]``.
    """

    ref: str
    entry_module: PluginEntryModule = field(repr=False)
    label: str = ""
    format_message: MessageFormatter = field(default=_identity, repr=False, compare=False)

    async def __call__(self) -> Any:
        """Load the referenced module and return the export.

        Raises:
            MalformedCodeRefError: ``ref`` does not match the grammar.
            ModuleLoadError: The module could not be obtained.
            MissingExportError: The module lacks the export.
        """
        parsed = parse_encoded_code_ref(self.ref)
        if parsed is None:
            raise MalformedCodeRefError(
                self.format_message(f"Malformed code reference '{self.ref}'")
            )

        module_name, export_name = parsed
        module = await get_plugin_module(module_name, self.entry_module, self.format_message)

        value = _lookup_export(module, export_name)
        if value is _MISSING:
            raise MissingExportError(
                self.format_message(f"Missing module export '{module_name}.{export_name}'")
            )
        return value

    def __deepcopy__(self, memo: dict[int, Any]) -> CodeRef:
        # Immutable, and the entry module may hold uncopyable module objects.
        return self


def is_code_ref(obj: Any) -> bool:
    """Return True if *obj* is a decoded :class:`CodeRef`."""
    return isinstance(obj, CodeRef)


def decode_code_refs(extension: Extension, entry_module: PluginEntryModule) -> Extension:
    """Replace every encoded reference in ``extension.properties`` with a CodeRef.

    The property tree is modified in place; the same extension is returned.
    """

    def format_message(message: str) -> str:
        return f"{message} in extension {extension.uid}"

    def decode(encoded: dict[str, str], key: Any, container: Any) -> None:
        ref = encoded[CODE_REF_KEY]
        container[key] = CodeRef(
            ref=ref,
            entry_module=entry_module,
            label=f"$codeRef_{extension.plugin_name}[{ref}]",
            format_message=format_message,
        )

    visit_tree(extension.properties, is_encoded_code_ref, decode)
    return extension
