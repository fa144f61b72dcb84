"""Tests for the property-tree visitor."""

from __future__ import annotations

from typing import Any

from dynaplug.domain.tree import collect_leaves, visit_tree


def _is_marker(value: Any) -> bool:
    return isinstance(value, dict) and "marker" in value


class TestVisitTree:
    def test_replaces_nested_matches_in_place(self) -> None:
        tree: dict[str, Any] = {
            "a": {"marker": 1},
            "b": [{"marker": 2}, "plain", {"c": {"marker": 3}}],
        }

        def replace(value: Any, key: Any, container: Any) -> None:
            container[key] = value["marker"] * 10

        visit_tree(tree, _is_marker, replace)
        assert tree == {"a": 10, "b": [20, "plain", {"c": 30}]}

    def test_does_not_descend_into_matches(self) -> None:
        tree = {"outer": {"marker": {"marker": "inner"}}}
        seen = collect_leaves(tree, _is_marker)
        assert len(seen) == 1
        assert seen[0][1] == "outer"

    def test_root_is_never_visited(self) -> None:
        tree = {"marker": True}
        assert collect_leaves(tree, _is_marker) == []

    def test_scalars_are_ignored(self) -> None:
        assert collect_leaves(42, _is_marker) == []
        assert collect_leaves("text", _is_marker) == []

    def test_collect_reports_container_and_key(self) -> None:
        leaf = {"marker": 1}
        tree = {"items": ["x", leaf]}
        [(value, key, container)] = collect_leaves(tree, _is_marker)
        assert value is leaf
        assert key == 1
        assert container is tree["items"]
