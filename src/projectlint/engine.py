# SPDX-License-Identifier: MIT
"""Lint engine: validates rules and configs, then fans them out across project roots."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from projectlint import tasks as task_graph
from projectlint.base import (
    ConfigurationError,
    LintReport,
    ProjectRootResult,
    Rule,
    RuleExecutionResult,
    RuleStatus,
    coerce_rule,
)
from projectlint.config import (
    LintOptions,
    RuleConfig,
    build_options,
    normalize_configs,
    resolve_project_roots,
)
from projectlint.evaluator import Evaluation, RuleEvaluator, RuleExecutionError

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class LintPlan:
    """Everything validated up front: rules, normalized configs, options, roots."""

    rules: Mapping[str, Rule]
    configs: Mapping[str, RuleConfig]
    options: LintOptions
    roots: tuple[str, ...]


def normalize_rules(rules: Mapping[str, Any] | Sequence[Any] | None) -> dict[str, Rule]:
    """Coerce the rules argument (mapping or ``[name, definition]`` pairs) into Rules."""
    if not rules:
        msg = "`rules` argument must be set"
        raise ConfigurationError(msg)

    if isinstance(rules, Mapping):
        items = list(rules.items())
    else:
        items = []
        for entry in rules:
            if isinstance(entry, Rule):
                items.append((entry.name, entry))
            elif isinstance(entry, list | tuple) and len(entry) == 2:
                items.append((entry[0], entry[1]))
            else:
                msg = f"Rule entries must be (name, definition) pairs, got {entry!r}"
                raise ConfigurationError(msg)

    return {name: coerce_rule(name, definition) for name, definition in items}


def prepare(
    rules: Mapping[str, Any] | Sequence[Any] | None,
    configs: Mapping[str, Any] | Sequence[Any] | None = None,
    options: LintOptions | Mapping[str, Any] | None = None,
    **overrides: Any,
) -> LintPlan:
    """Validate all inputs synchronously.

    Raises:
        ConfigurationError: For anything wrong with rules, configs or options.
    """
    rule_map = normalize_rules(rules)
    lint_options = build_options(options, **overrides)

    if configs is None and lint_options.config_loader is not None:
        configs = lint_options.config_loader()
    if configs is None:
        msg = "`configs` argument must be set"
        raise ConfigurationError(msg)

    normalized = normalize_configs(configs)

    unknown = sorted(set(normalized) - set(rule_map))
    if unknown:
        msg = f"Configs reference unknown rules: {unknown}"
        raise ConfigurationError(msg)
    if not normalized:
        msg = "No `rules` are configured"
        raise ConfigurationError(msg)

    # Only configured rules run; their dependencies must be configured too.
    active = {name: rule for name, rule in rule_map.items() if name in normalized}
    task_graph.validate_graph({name: rule.depends_on for name, rule in active.items()})

    return LintPlan(
        rules=active,
        configs=normalized,
        options=lint_options,
        roots=tuple(resolve_project_roots(lint_options.project_root)),
    )


def _reshape(name: str, rule: Rule, outcome: Evaluation | BaseException) -> RuleExecutionResult:
    if isinstance(outcome, RuleExecutionError):
        return RuleExecutionResult(
            name=name,
            status=RuleStatus.ERRORED,
            depends_on=rule.depends_on,
            level=outcome.level,
            failure=outcome.failure,
            result=outcome.result,
            error=outcome.error,
        )
    if isinstance(outcome, BaseException):
        return RuleExecutionResult(
            name=name,
            status=RuleStatus.ERRORED,
            depends_on=rule.depends_on,
            error=outcome,
        )
    return RuleExecutionResult(
        name=name,
        status=outcome.status,
        depends_on=rule.depends_on,
        level=outcome.level,
        failure=outcome.failure,
        fix=outcome.fix,
        fix_result=outcome.fix_result,
        fixed=outcome.fixed,
        result=outcome.result,
        blocked_by=outcome.blocked_by,
    )


async def run_project_root(plan: LintPlan, root: str) -> ProjectRootResult:
    """Evaluate every configured rule against one project root."""
    specs = {
        name: task_graph.TaskSpec(
            func=RuleEvaluator(
                rule,
                plan.configs[name],
                error_level=plan.options.error_level,
                auto_fix=plan.options.fix,
            ).execute,
            depends_on=rule.depends_on,
        )
        for name, rule in plan.rules.items()
    }

    log.info("Linting %s (%d rules)", root, len(specs))
    pending = task_graph.execute(specs, plan.configs, context={"project_root": root})
    settled = await asyncio.gather(*pending.values(), return_exceptions=True)

    results = {
        name: _reshape(name, plan.rules[name], outcome)
        for name, outcome in zip(pending, settled, strict=True)
    }
    return ProjectRootResult(root=root, rules=results)


async def run(plan: LintPlan) -> LintReport:
    """Run a validated plan against all of its roots concurrently."""
    settled = await asyncio.gather(
        *(run_project_root(plan, root) for root in plan.roots),
        return_exceptions=True,
    )

    roots: dict[str, ProjectRootResult] = {}
    for root, outcome in zip(plan.roots, settled, strict=True):
        if isinstance(outcome, BaseException):
            log.warning("Project root %s crashed: %r", root, outcome)
            roots[root] = ProjectRootResult(root=root, error=outcome)
        else:
            roots[root] = outcome
    return LintReport(roots=roots)


def lint(
    rules: Mapping[str, Any] | Sequence[Any] | None,
    configs: Mapping[str, Any] | Sequence[Any] | None = None,
    options: LintOptions | Mapping[str, Any] | None = None,
    **overrides: Any,
) -> Awaitable[LintReport]:
    """Validate inputs now and return an awaitable report.

    Configuration errors raise immediately, before anything is awaited.
    Per-rule failures and crashes never raise; they land in the report.
    """
    plan = prepare(rules, configs, options, **overrides)
    return run(plan)


def lint_sync(
    rules: Mapping[str, Any] | Sequence[Any] | None,
    configs: Mapping[str, Any] | Sequence[Any] | None = None,
    options: LintOptions | Mapping[str, Any] | None = None,
    **overrides: Any,
) -> LintReport:
    """Convenience: run :func:`lint` on a fresh event loop."""
    return asyncio.run(run(prepare(rules, configs, options, **overrides)))
