"""Resolution of decoded code references into concrete values.

Resolution is a fan-out/fan-in: every ``CodeRef`` of an extension is invoked
concurrently and all of them settle before the outcome is decided. A single
failure fails the whole extension, but never cancels the other invocations.
"""

from __future__ import annotations

import asyncio
import copy
import dataclasses
import logging
from collections.abc import Iterable

from dynaplug.domain.extension import Extension
from dynaplug.domain.tree import collect_leaves
from dynaplug.errors import CodeRefResolutionError
from dynaplug.runtime.coderefs import CodeRef, is_code_ref

logger = logging.getLogger(__name__)


async def resolve_code_refs(extension: Extension) -> Extension:
    """Return a copy of *extension* with every CodeRef replaced by its value.

    *extension* itself is left untouched, so it can be resolved again later.

    Raises:
        CodeRefResolutionError: At least one reference failed. ``causes``
            holds every individual failure.
    """
    properties = copy.deepcopy(extension.properties)
    leaves = collect_leaves(properties, is_code_ref)

    code_refs: list[CodeRef] = [code_ref for code_ref, _key, _container in leaves]
    outcomes = await asyncio.gather(
        *(code_ref() for code_ref in code_refs), return_exceptions=True
    )

    causes: list[BaseException] = []
    for (_code_ref, key, container), outcome in zip(leaves, outcomes, strict=True):
        if isinstance(outcome, BaseException):
            if not isinstance(outcome, Exception):
                raise outcome
            causes.append(outcome)
            container[key] = None
        else:
            container[key] = outcome

    if causes:
        logger.debug("Extension %s: %d code reference(s) failed", extension.uid, len(causes))
        raise CodeRefResolutionError(extension, causes)

    return dataclasses.replace(extension, properties=properties)


async def resolve_extensions(
    extensions: Iterable[Extension],
) -> list[Extension | CodeRefResolutionError]:
    """Resolve several extensions concurrently.

    Returns one item per input, in input order: the resolved extension, or
    the :class:`CodeRefResolutionError` raised for it.
    """

    async def settle(extension: Extension) -> Extension | CodeRefResolutionError:
        try:
            return await resolve_code_refs(extension)
        except CodeRefResolutionError as exc:
            return exc

    return list(await asyncio.gather(*(settle(extension) for extension in extensions)))

def count_code_refs(extension: Extension) -> int:
    """Return the number of unresolved CodeRefs in *extension*."""
    return len(collect_leaves(extension.properties, is_code_ref))
