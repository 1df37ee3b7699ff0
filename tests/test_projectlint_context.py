# SPDX-License-Identifier: MIT
"""Tests for projectlint.context: RuleContext and build_context."""

from __future__ import annotations

from pathlib import Path

import pytest

from projectlint.context import RuleContext, build_context

# --- build_context tests ---


class TestBuildContext:
    def test_project_root_becomes_path(self, tmp_path: Path) -> None:
        ctx = build_context({"project_root": str(tmp_path)}, rule="readme")
        assert ctx.project_root == tmp_path
        assert ctx.rule == "readme"
        assert dict(ctx.options) == {}
        assert dict(ctx.dependencies) == {}

    def test_extra_keys(self, tmp_path: Path) -> None:
        ctx = build_context({"project_root": tmp_path, "ci": True}, rule="readme")
        assert dict(ctx.extra) == {"ci": True}

    def test_options_and_dependencies_are_copied(self, tmp_path: Path) -> None:
        options = {"exclude": ["vendor"]}
        deps = {"license": "MIT"}
        ctx = build_context(
            {"project_root": tmp_path}, rule="readme", options=options, dependencies=deps
        )
        options["exclude"] = []
        deps.clear()
        assert ctx.options["exclude"] == ["vendor"]
        assert ctx.dependency("license") == "MIT"

    def test_missing_project_root(self) -> None:
        with pytest.raises(KeyError):
            build_context({}, rule="readme")


# --- RuleContext tests ---


class TestRuleContext:
    @pytest.fixture()
    def ctx(self, tmp_path: Path) -> RuleContext:
        (tmp_path / "docs").mkdir()
        (tmp_path / "docs" / "index.md").write_text("# Docs\n", encoding="utf-8")
        return build_context(
            {"project_root": tmp_path}, rule="docs", dependencies={"readme": "# Title"}
        )

    def test_path(self, ctx: RuleContext, tmp_path: Path) -> None:
        assert ctx.path("docs", "index.md") == tmp_path / "docs" / "index.md"

    def test_exists(self, ctx: RuleContext) -> None:
        assert ctx.exists("docs", "index.md")
        assert not ctx.exists("CHANGELOG.md")

    def test_dependency(self, ctx: RuleContext) -> None:
        assert ctx.dependency("readme") == "# Title"

    def test_unknown_dependency(self, ctx: RuleContext) -> None:
        with pytest.raises(KeyError, match="no settled dependency 'license'"):
            ctx.dependency("license")

    def test_read_only(self, ctx: RuleContext) -> None:
        with pytest.raises(TypeError):
            ctx.dependencies["license"] = "MIT"  # type: ignore[index]
