"""InspectService — load plugin directories into a registry and report on them.

The service receives its registry from the caller (the CLI builds one per
invocation) and never touches global state.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from pathlib import Path
from typing import TYPE_CHECKING, Any

from dynaplug.domain.extension import FailedPluginInfo
from dynaplug.errors import CodeRefResolutionError
from dynaplug.runtime.local_loader import find_plugin_roots
from dynaplug.runtime.resolver import count_code_refs, resolve_extensions
from dynaplug.services.result import ExtensionFailure, ServiceError, ServiceResult

if TYPE_CHECKING:
    from dynaplug.domain.extension import Extension
    from dynaplug.runtime.registry import PluginRegistry

logger = logging.getLogger(__name__)


def _extension_row(extension: Extension) -> dict[str, Any]:
    gating = extension.flags
    return {
        "uid": extension.uid,
        "type": extension.type,
        "plugin_name": extension.plugin_name,
        "code_refs": count_code_refs(extension),
        "required_flags": list(gating.required) if gating else [],
        "disallowed_flags": list(gating.disallowed) if gating else [],
    }


def _describe_cause(cause: BaseException) -> str:
    return f"{type(cause).__name__}: {cause}"


class InspectService:
    """Operations backing the ``list`` and ``resolve`` commands."""

    def __init__(self, registry: PluginRegistry) -> None:
        self._registry = registry

    async def load(
        self,
        paths: Iterable[Path],
        *,
        manifest_filename: str,
        feature_flags: Mapping[str, Any] | None = None,
    ) -> int:
        """Load every plugin directory found under *paths*, then apply flags.

        Returns the number of plugin directories handed to the loader.
        """
        roots = find_plugin_roots(paths, manifest_filename)
        for root in roots:
            await self._registry.load_plugin(str(root))
        if feature_flags:
            self._registry.set_feature_flags(feature_flags)
        logger.debug("Loaded %d plugin director(ies)", len(roots))
        return len(roots)

    def list_plugins(self) -> ServiceResult:
        """Report plugin info, active extensions, and flags."""
        info = self._registry.get_plugin_info()
        warnings = [
            f"Plugin {entry.plugin_name} failed: {entry.error_message}"
            for entry in info
            if isinstance(entry, FailedPluginInfo)
        ]
        return ServiceResult(
            ok=True,
            op="list",
            data={
                "plugins": [entry.model_dump(mode="json") for entry in info],
                "extensions": [_extension_row(e) for e in self._registry.get_extensions()],
                "feature_flags": self._registry.get_feature_flags(),
            },
            warnings=warnings,
        )

    async def resolve(self) -> ServiceResult:
        """Resolve the code references of every active extension.

        Fails when any extension has a reference that does not resolve;
        the payload still lists every extension that did.
        """
        extensions = self._registry.get_extensions()
        outcomes = await resolve_extensions(extensions)

        resolved: list[dict[str, Any]] = []
        failed: list[ExtensionFailure] = []
        for extension, outcome in zip(extensions, outcomes, strict=True):
            if isinstance(outcome, CodeRefResolutionError):
                failed.append(
                    ExtensionFailure(
                        uid=extension.uid,
                        causes=[_describe_cause(cause) for cause in outcome.causes],
                    )
                )
            else:
                resolved.append({"uid": extension.uid, "code_refs": count_code_refs(extension)})

        data = {
            "resolved": resolved,
            "failed": [failure.model_dump(mode="json") for failure in failed],
        }
        if failed:
            return ServiceResult(
                ok=False,
                op="resolve",
                data=data,
                error=ServiceError(
                    code="CODE_REF_RESOLUTION_FAILED",
                    message=f"{len(failed)} extension(s) have unresolvable code references",
                    failures=failed,
                ),
            )
        return ServiceResult(ok=True, op="resolve", data=data)
