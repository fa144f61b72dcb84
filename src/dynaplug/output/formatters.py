"""Output mode selection: Rich text for humans, JSON for machines (--json)."""

from __future__ import annotations

from typing import TYPE_CHECKING

from dynaplug.output.renderers import render_result

if TYPE_CHECKING:
    from dynaplug.services.result import ServiceResult


def format_result(
    result: ServiceResult, *, json_output: bool = False, verbose: bool = False
) -> str:
    """Format a ServiceResult for display.

    Args:
        result: The service result to format.
        json_output: Return the JSON serialization instead of Rich text.
        verbose: Include feature flags and error codes in human output.
    """
    if json_output:
        return result.model_dump_json(indent=2)
    return render_result(result, verbose=verbose)
