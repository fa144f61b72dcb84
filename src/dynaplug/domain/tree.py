"""Generic visitor over extension property trees.

A property tree is a closed variant of scalars, lists, and dicts (the shape
of decoded JSON). Visiting never descends into a node that matched the
predicate, so an ``{"$codeRef": ...}`` dict is handled as a single leaf.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

Container = dict[str, Any] | list[Any]
VisitFn = Callable[[Any, Any, Container], None]


def visit_tree(tree: Any, predicate: Callable[[Any], bool], visit: VisitFn) -> None:
    """Walk *tree* depth-first and call ``visit(value, key, container)`` on matches.

    *key* is the dict key or list index under which *value* lives in
    *container*, so callers may replace the value in place. The root itself
    is never passed to *visit*.
    """
    if isinstance(tree, dict):
        items: list[tuple[Any, Any]] = list(tree.items())
    elif isinstance(tree, list):
        items = list(enumerate(tree))
    else:
        return

    for key, value in items:
        if predicate(value):
            visit(value, key, tree)
        else:
            visit_tree(value, predicate, visit)


def collect_leaves(
    tree: Any, predicate: Callable[[Any], bool]
) -> list[tuple[Any, Any, Container]]:
    """Return ``(value, key, container)`` for every node of *tree* matching *predicate*."""
    found: list[tuple[Any, Any, Container]] = []

    def _record(value: Any, key: Any, container: Container) -> None:
        found.append((value, key, container))

    visit_tree(tree, predicate, _record)
    return found
