"""Tests for resolving decoded code references."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest

from dynaplug.domain.extension import Extension
from dynaplug.errors import CodeRefResolutionError, MissingExportError, ModuleLoadError
from dynaplug.runtime.coderefs import decode_code_refs, is_code_ref
from dynaplug.runtime.resolver import count_code_refs, resolve_code_refs, resolve_extensions
from tests.conftest import StubEntryModule


def _decoded(
    properties: dict[str, Any], entry: StubEntryModule, uid: str = "p1[0]_h"
) -> Extension:
    ext = Extension(type="test.ext", properties=properties, plugin_name="p1", uid=uid)
    return decode_code_refs(ext, entry)


class TestResolveCodeRefs:
    @pytest.mark.asyncio
    async def test_resolves_to_export_value(self, entry_module: StubEntryModule) -> None:
        ext = _decoded({"x": {"$codeRef": "mod.Foo"}}, entry_module)
        resolved = await resolve_code_refs(ext)
        assert resolved.properties == {"x": 42}

    @pytest.mark.asyncio
    async def test_preserves_identity_fields(self, entry_module: StubEntryModule) -> None:
        ext = _decoded({"x": {"$codeRef": "mod"}, "y": [1, 2]}, entry_module)
        resolved = await resolve_code_refs(ext)
        assert resolved.uid == ext.uid
        assert resolved.type == ext.type
        assert resolved.plugin_name == ext.plugin_name
        assert resolved.properties == {"x": "mod-default", "y": [1, 2]}

    @pytest.mark.asyncio
    async def test_source_is_untouched_and_reresolvable(
        self, entry_module: StubEntryModule
    ) -> None:
        ext = _decoded({"nested": {"x": {"$codeRef": "mod.Foo"}}}, entry_module)

        first = await resolve_code_refs(ext)
        assert is_code_ref(ext.properties["nested"]["x"])

        second = await resolve_code_refs(ext)
        assert first.properties == second.properties == {"nested": {"x": 42}}
        assert first.properties is not second.properties

    @pytest.mark.asyncio
    async def test_no_code_refs(self, entry_module: StubEntryModule) -> None:
        ext = _decoded({"label": "x"}, entry_module)
        resolved = await resolve_code_refs(ext)
        assert resolved.properties == {"label": "x"}

    @pytest.mark.asyncio
    async def test_fail_soft_single_cause(self, entry_module: StubEntryModule) -> None:
        ext = _decoded(
            {"ok": {"$codeRef": "mod.Foo"}, "bad": {"$codeRef": "mod.Bar"}}, entry_module
        )
        with pytest.raises(CodeRefResolutionError) as info:
            await resolve_code_refs(ext)

        error = info.value
        assert error.extension is ext
        assert len(error.causes) == 1
        assert isinstance(error.causes[0], MissingExportError)
        assert "p1[0]_h" in str(error)

    @pytest.mark.asyncio
    async def test_collects_every_cause(self, entry_module: StubEntryModule) -> None:
        ext = _decoded(
            {
                "a": {"$codeRef": "mod.Bar"},
                "b": {"$codeRef": "nope.Foo"},
                "c": {"$codeRef": "a.b.c"},
            },
            entry_module,
        )
        with pytest.raises(CodeRefResolutionError) as info:
            await resolve_code_refs(ext)
        assert len(info.value.causes) == 3
        assert any(isinstance(cause, ModuleLoadError) for cause in info.value.causes)

    @pytest.mark.asyncio
    async def test_failure_does_not_cancel_other_refs(self) -> None:
        finished: list[str] = []

        class SlowEntry:
            async def get(self, module_name: str) -> Any:
                if module_name == "bad":
                    raise RuntimeError("boom")
                await asyncio.sleep(0.01)
                finished.append(module_name)
                return lambda: {"default": module_name}

        ext = _decoded(
            {"a": {"$codeRef": "bad"}, "b": {"$codeRef": "slow1"}, "c": {"$codeRef": "slow2"}},
            SlowEntry(),  # type: ignore[arg-type]
        )
        with pytest.raises(CodeRefResolutionError):
            await resolve_code_refs(ext)
        assert sorted(finished) == ["slow1", "slow2"]


class TestResolveExtensions:
    @pytest.mark.asyncio
    async def test_one_outcome_per_extension_in_order(
        self, entry_module: StubEntryModule
    ) -> None:
        bad = _decoded({"x": {"$codeRef": "mod.Missing"}}, entry_module, uid="p1[0]_h")
        good = _decoded({"x": {"$codeRef": "mod.Foo"}}, entry_module, uid="p1[1]_h")

        outcomes = await resolve_extensions([bad, good])

        assert len(outcomes) == 2
        assert isinstance(outcomes[0], CodeRefResolutionError)
        assert outcomes[0].extension is bad
        assert isinstance(outcomes[1], Extension)
        assert outcomes[1].properties == {"x": 42}

    @pytest.mark.asyncio
    async def test_empty(self) -> None:
        assert await resolve_extensions([]) == []


def test_count_code_refs(entry_module: StubEntryModule) -> None:
    ext = _decoded(
        {"a": {"$codeRef": "mod"}, "b": [{"$codeRef": "mod.Foo"}, {"c": 1}]}, entry_module
    )
    assert count_code_refs(ext) == 2
