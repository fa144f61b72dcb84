"""Tests for feature-flag gating of extensions."""

from __future__ import annotations

import pytest

from dynaplug.domain.extension import Extension, LoadedPlugin
from dynaplug.domain.flags import (
    compute_active_extensions,
    is_extension_active,
    normalize_feature_flags,
)
from dynaplug.domain.manifest import ExtensionFlags, PluginRuntimeMetadata


def _extension(uid: str, flags: ExtensionFlags | None = None) -> Extension:
    return Extension(type="test.ext", properties={}, plugin_name="p", uid=uid, flags=flags)


def _plugin(name: str, *extensions: Extension, enabled: bool = True) -> LoadedPlugin:
    return LoadedPlugin(
        metadata=PluginRuntimeMetadata(name=name, version="1.0.0"),
        extensions=extensions,
        entry_module=object(),  # type: ignore[arg-type]
        enabled=enabled,
    )


class TestIsExtensionActive:
    GATED = _extension("gated", ExtensionFlags(required=("A",), disallowed=("B",)))

    @pytest.mark.parametrize(
        ("flags", "expected"),
        [
            ({"A": True, "B": False}, True),
            ({"A": True, "B": True}, False),
            ({}, False),
            ({"A": True}, True),
            ({"A": False, "B": False}, False),
        ],
    )
    def test_required_and_disallowed(self, flags: dict[str, bool], expected: bool) -> None:
        assert is_extension_active(self.GATED, flags) is expected

    def test_ungated_extension_is_always_active(self) -> None:
        assert is_extension_active(_extension("free"), {}) is True
        assert is_extension_active(_extension("free"), {"A": False}) is True

    def test_empty_flag_lists_are_neutral(self) -> None:
        ext = _extension("empty", ExtensionFlags())
        assert is_extension_active(ext, {"X": True}) is True


class TestComputeActiveExtensions:
    def test_preserves_plugin_order_and_skips_disabled(self) -> None:
        a1, a2 = _extension("a1"), _extension("a2")
        b1 = _extension("b1")
        c1 = _extension("c1")
        plugins = [_plugin("a", a1, a2), _plugin("b", b1, enabled=False), _plugin("c", c1)]
        assert compute_active_extensions(plugins, {}) == (a1, a2, c1)

    def test_filters_by_flags(self) -> None:
        beta = _extension("beta", ExtensionFlags(required=("BETA",)))
        plain = _extension("plain")
        plugins = [_plugin("a", beta, plain)]
        assert compute_active_extensions(plugins, {}) == (plain,)
        assert compute_active_extensions(plugins, {"BETA": True}) == (beta, plain)


class TestNormalizeFeatureFlags:
    def test_drops_non_boolean_values(self) -> None:
        patch = {"A": True, "B": "yes", "C": 1, "D": False, "E": None}
        assert normalize_feature_flags(patch) == {"A": True, "D": False}
