# SPDX-License-Identifier: MIT
"""Severity levels, rule definitions, and result records for the lint engine."""

from __future__ import annotations

from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from enum import IntEnum, StrEnum
from typing import Any


class ConfigurationError(ValueError):
    """Raised synchronously for invalid rules, configs, or options."""


class Failure(Exception):
    """A rule check that did not pass at some level.

    Rule code may raise it directly, or return a truthy payload which the
    engine wraps into one.
    """

    def __init__(self, payload: Any = None, message: str | None = None) -> None:
        self.payload = payload
        if message is None:
            message = "" if payload is None else str(payload)
        super().__init__(message)


class Severity(IntEnum):
    """Built-in levels. Positive values fail a rule, the rest steer dependents."""

    WARN = 1
    ERROR = 2
    CRITICAL = 3

    IGNORE = -1
    SKIP_IF = -2
    SKIP = -3
    DISABLED = -4


LEVELS: dict[str, int] = {
    "warn": Severity.WARN,
    "warning": Severity.WARN,
    "error": Severity.ERROR,
    "critical": Severity.CRITICAL,
    "ignore": Severity.IGNORE,
    "skipIf": Severity.SKIP_IF,
    "skip": Severity.SKIP,
    "disabled": Severity.DISABLED,
}


def register_level(name: str, value: int) -> None:
    """Add a custom level name to the table."""
    if isinstance(value, bool) or not isinstance(value, int):
        msg = f"Level value for {name!r} must be an integer, got {type(value).__name__}"
        raise ConfigurationError(msg)
    current = LEVELS.get(name)
    if current is not None and current != value:
        msg = f"Level {name!r} is already defined as {current}"
        raise ConfigurationError(msg)
    LEVELS[name] = value


def level_of(key: str | int) -> int:
    """Resolve a level name (or pass a numeric level through)."""
    if isinstance(key, bool):
        msg = f"Unknown level {key!r}"
        raise ConfigurationError(msg)
    if isinstance(key, int):
        return key
    level = LEVELS.get(key) if isinstance(key, str) else None
    if level is None:
        msg = f"Unknown level {key!r}. Valid levels: {sorted(LEVELS)}"
        raise ConfigurationError(msg)
    return int(level)


def is_failing(level: int | None) -> bool:
    return level is not None and level > 0


def is_control(level: int | None) -> bool:
    return level is not None and level <= 0


# --- Rule definitions ---


@dataclass(frozen=True)
class Rule:
    """A named check, with optional fetch and fix steps.

    ``evaluate(ctx, config, fetched)`` inspects the fetched facts against a
    level's config. ``fetch(ctx)`` gathers those facts once per execution.
    ``fix(ctx, config, fetched, failure)`` corrects the worst violation.
    Any of them may be sync or async.
    """

    name: str
    evaluate: Callable[..., Any]
    fetch: Callable[..., Any] | None = None
    fix: Callable[..., Any] | None = None
    depends_on: tuple[str, ...] = ()


def coerce_rule(name: str, definition: Any) -> Rule:
    """Build a Rule from a Rule, a mapping, or an object with rule attributes."""
    if isinstance(definition, Rule):
        return definition if definition.name == name else _replace_name(definition, name)

    if isinstance(definition, Mapping):
        get = definition.get
        depends_on = get("depends_on", get("dependsOn"))
    else:
        def get(key: str, default: Any = None) -> Any:
            return getattr(definition, key, default)

        depends_on = get("depends_on", get("dependsOn"))

    evaluate = get("evaluate")
    if evaluate is None:
        msg = f"'evaluate' function not defined for rule {name!r}"
        raise ConfigurationError(msg)

    if depends_on is None:
        depends_on = ()
    elif isinstance(depends_on, str):
        depends_on = (depends_on,)

    return Rule(
        name=name,
        evaluate=evaluate,
        fetch=get("fetch"),
        fix=get("fix"),
        depends_on=tuple(depends_on),
    )


def _replace_name(rule: Rule, name: str) -> Rule:
    return Rule(
        name=name,
        evaluate=rule.evaluate,
        fetch=rule.fetch,
        fix=rule.fix,
        depends_on=rule.depends_on,
    )


# --- Results ---


class RuleStatus(StrEnum):
    PASSED = "passed"
    FAILED = "failed"
    ERRORED = "errored"
    SKIPPED = "skipped"
    DISABLED = "disabled"


@dataclass(frozen=True)
class RuleExecutionResult:
    """Terminal report for one rule in one project root."""

    name: str
    status: RuleStatus
    depends_on: tuple[str, ...] = ()
    level: int | None = None
    failure: BaseException | None = None
    fix: Callable[[], Any] | None = None
    fix_result: Any = None
    fixed: bool = False
    result: Any = None
    error: BaseException | None = None
    blocked_by: str | None = None


@dataclass(frozen=True)
class ProjectRootResult(Mapping[str, RuleExecutionResult]):
    """Results of every rule for one project root.

    ``error`` is set only when the whole root crashed before its rules
    could settle.
    """

    root: str
    rules: Mapping[str, RuleExecutionResult] = field(default_factory=dict)
    error: BaseException | None = None

    def __getitem__(self, name: str) -> RuleExecutionResult:
        return self.rules[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self.rules)

    def __len__(self) -> int:
        return len(self.rules)


@dataclass(frozen=True)
class LintReport(Mapping[str, ProjectRootResult]):
    """Project root -> ProjectRootResult, in the order roots were requested."""

    roots: Mapping[str, ProjectRootResult] = field(default_factory=dict)

    def __getitem__(self, root: str) -> ProjectRootResult:
        return self.roots[root]

    def __iter__(self) -> Iterator[str]:
        return iter(self.roots)

    def __len__(self) -> int:
        return len(self.roots)

    def flatten(self) -> list[tuple[str, RuleExecutionResult]]:
        """Return (project_root, result) pairs for every rule of every root."""
        return [
            (root, result)
            for root, project in self.roots.items()
            for result in project.rules.values()
        ]

    def max_level(self) -> int | None:
        """Return the worst failing level recorded anywhere, or None."""
        levels = [r.level for _, r in self.flatten() if is_failing(r.level)]
        return max(levels, default=None)

    def check_gate(self, fail_on: int = Severity.ERROR) -> bool:
        """Return True if any failure reaches ``fail_on`` or anything crashed."""
        if any(project.error is not None for project in self.roots.values()):
            return True
        for _, result in self.flatten():
            if result.status is RuleStatus.ERRORED:
                return True
            if is_failing(result.level) and result.level >= fail_on:
                return True
        return False
