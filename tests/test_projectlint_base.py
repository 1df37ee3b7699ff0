# SPDX-License-Identifier: MIT
"""Tests for projectlint.base: level table, rule coercion, report helpers."""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from hypothesis import given
from hypothesis import strategies as st

from projectlint.base import (
    LEVELS,
    ConfigurationError,
    Failure,
    LintReport,
    ProjectRootResult,
    Rule,
    RuleExecutionResult,
    RuleStatus,
    Severity,
    coerce_rule,
    is_control,
    is_failing,
    level_of,
    register_level,
)


@pytest.fixture
def restore_levels() -> Iterator[None]:
    saved = dict(LEVELS)
    yield
    LEVELS.clear()
    LEVELS.update(saved)


def _noop(ctx, config, fetched):  # noqa: ANN001, ANN202
    return None


# --- Level table ---

_DOCUMENTED = {
    "warn": 1,
    "warning": 1,
    "error": 2,
    "critical": 3,
    "ignore": -1,
    "skipIf": -2,
    "skip": -3,
    "disabled": -4,
}


class TestLevelTable:
    @pytest.mark.parametrize(("name", "value"), sorted(_DOCUMENTED.items()))
    def test_documented_values(self, name: str, value: int) -> None:
        assert level_of(name) == value

    def test_severity_enum_matches_table(self) -> None:
        assert Severity.WARN == LEVELS["warn"] == LEVELS["warning"]
        assert Severity.SKIP_IF == LEVELS["skipIf"]
        assert Severity.DISABLED == -4

    def test_numeric_passes_through(self) -> None:
        assert level_of(7) == 7
        assert level_of(-2) == -2

    def test_names_are_case_sensitive(self) -> None:
        with pytest.raises(ConfigurationError, match="Unknown level"):
            level_of("Warn")
        with pytest.raises(ConfigurationError, match="Unknown level"):
            level_of("skipif")

    def test_bool_is_not_a_level(self) -> None:
        with pytest.raises(ConfigurationError):
            level_of(True)

    def test_failing_and_control(self) -> None:
        assert is_failing(1) and is_failing(3)
        assert not is_failing(0) and not is_failing(-1) and not is_failing(None)
        assert is_control(0) and is_control(-4)
        assert not is_control(2) and not is_control(None)

    @given(name=st.text(min_size=0, max_size=20).filter(lambda s: s not in LEVELS))
    def test_unknown_names_raise(self, name: str) -> None:
        with pytest.raises(ConfigurationError):
            level_of(name)


class TestRegisterLevel:
    def test_register_new_level(self, restore_levels: None) -> None:
        register_level("blocker", 5)
        assert level_of("blocker") == 5

    def test_reregister_same_value_is_fine(self, restore_levels: None) -> None:
        register_level("warn", 1)
        assert level_of("warn") == 1

    def test_rebinding_existing_name_raises(self, restore_levels: None) -> None:
        with pytest.raises(ConfigurationError, match="already defined"):
            register_level("error", 9)

    def test_non_integer_value_raises(self, restore_levels: None) -> None:
        with pytest.raises(ConfigurationError, match="must be an integer"):
            register_level("blocker", "5")  # type: ignore[arg-type]


# --- Failure ---


class TestFailure:
    def test_payload_and_message(self) -> None:
        f = Failure({"line": 3})
        assert f.payload == {"line": 3}
        assert "line" in str(f)

    def test_explicit_message(self) -> None:
        f = Failure([1, 2], "too long")
        assert str(f) == "too long"
        assert f.payload == [1, 2]

    def test_empty(self) -> None:
        f = Failure()
        assert f.payload is None
        assert str(f) == ""


# --- Rule coercion ---


class TestCoerceRule:
    def test_from_mapping(self) -> None:
        rule = coerce_rule("columns", {"evaluate": _noop, "dependsOn": ["readme"]})
        assert rule == Rule(name="columns", evaluate=_noop, depends_on=("readme",))

    def test_snake_case_depends_on(self) -> None:
        rule = coerce_rule("columns", {"evaluate": _noop, "depends_on": "readme"})
        assert rule.depends_on == ("readme",)

    def test_from_object(self) -> None:
        class ColumnsRule:
            evaluate = staticmethod(_noop)
            depends_on = ("readme", "license")

        rule = coerce_rule("columns", ColumnsRule())
        assert rule.evaluate is _noop
        assert rule.fetch is None
        assert rule.depends_on == ("readme", "license")

    def test_rule_instance_renamed(self) -> None:
        original = Rule(name="old", evaluate=_noop)
        assert coerce_rule("old", original) is original
        assert coerce_rule("new", original).name == "new"

    def test_missing_evaluate_raises(self) -> None:
        with pytest.raises(ConfigurationError, match="'evaluate' function not defined"):
            coerce_rule("dumb", {})


# --- Report helpers ---


def _report(*results: RuleExecutionResult, error: BaseException | None = None) -> LintReport:
    project = ProjectRootResult(root="/p", rules={r.name: r for r in results}, error=error)
    return LintReport(roots={"/p": project})


class TestLintReport:
    def test_mapping_access(self) -> None:
        result = RuleExecutionResult(name="a", status=RuleStatus.PASSED)
        report = _report(result)
        assert list(report) == ["/p"]
        assert report["/p"]["a"] is result
        assert len(report["/p"]) == 1

    def test_flatten(self) -> None:
        a = RuleExecutionResult(name="a", status=RuleStatus.PASSED)
        b = RuleExecutionResult(name="b", status=RuleStatus.FAILED, level=1)
        assert _report(a, b).flatten() == [("/p", a), ("/p", b)]

    def test_max_level_ignores_control_levels(self) -> None:
        report = _report(
            RuleExecutionResult(name="a", status=RuleStatus.FAILED, level=-1),
            RuleExecutionResult(name="b", status=RuleStatus.FAILED, level=2),
        )
        assert report.max_level() == 2
        assert _report().max_level() is None

    def test_check_gate_threshold(self) -> None:
        warn = _report(RuleExecutionResult(name="a", status=RuleStatus.FAILED, level=1))
        assert warn.check_gate() is False
        assert warn.check_gate(fail_on=Severity.WARN) is True

        error = _report(RuleExecutionResult(name="a", status=RuleStatus.FAILED, level=2))
        assert error.check_gate() is True
        assert error.check_gate(fail_on=Severity.CRITICAL) is False

    def test_check_gate_on_crashes(self) -> None:
        crashed = _report(
            RuleExecutionResult(name="a", status=RuleStatus.ERRORED, error=RuntimeError())
        )
        assert crashed.check_gate(fail_on=Severity.CRITICAL) is True
        assert _report(error=RuntimeError()).check_gate() is True

    def test_check_gate_ignored_failure(self) -> None:
        ignored = _report(RuleExecutionResult(name="a", status=RuleStatus.FAILED, level=-1))
        assert ignored.check_gate(fail_on=Severity.WARN) is False
