# SPDX-License-Identifier: MIT
"""Dependency-ordered task execution with control-level semantics.

``execute`` schedules one asyncio task per rule. A task waits for its
dependencies to settle, then either runs the rule or settles it as
skipped/disabled depending on the control levels involved:

- ``disabled``: the rule never runs and its dependents settle as failed.
  Dependents of those are skipped.
- ``skip``: the rule never runs and its dependents are skipped.
- ``skipIf``: the rule runs; if it fails, its dependents are skipped.
- ``ignore``: the rule runs; its failure never affects dependents.
- otherwise dependents are skipped only when the rule fails at ``critical``
  or above.

A dependency that crashed makes the dependent crash with
:class:`DependencyError`.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from dataclasses import dataclass
from graphlib import CycleError, TopologicalSorter
from typing import Any

from projectlint.base import ConfigurationError, Failure, RuleStatus, Severity
from projectlint.config import RuleConfig
from projectlint.context import RuleContext, build_context
from projectlint.evaluator import Evaluation

log = logging.getLogger(__name__)


class DependencyError(Exception):
    """A rule could not run because one of its dependencies crashed."""

    def __init__(self, rule: str, dependency: str) -> None:
        self.rule = rule
        self.dependency = dependency
        super().__init__(f"Rule {rule!r} depends on {dependency!r}, which crashed")


@dataclass(frozen=True)
class TaskSpec:
    """One schedulable rule: its execution function and prerequisites."""

    func: Callable[[RuleContext], Awaitable[Evaluation]]
    depends_on: tuple[str, ...] = ()


def validate_graph(graph: Mapping[str, Sequence[str]]) -> list[str]:
    """Check dependencies exist and are acyclic; return a topological order.

    Raises:
        ConfigurationError: On unknown dependencies or cycles.
    """
    for name, depends_on in graph.items():
        for dep in depends_on:
            if dep not in graph:
                msg = f"Rule {name!r} depends on unknown or unconfigured rule {dep!r}"
                raise ConfigurationError(msg)

    sorter = TopologicalSorter(graph)
    try:
        return list(sorter.static_order())
    except CycleError as exc:
        cycle = " -> ".join(exc.args[1]) if len(exc.args) > 1 else "?"
        msg = f"Dependency cycle between rules: {cycle}"
        raise ConfigurationError(msg) from exc


def blocks_dependents(config: RuleConfig | None, evaluation: Evaluation) -> bool:
    """Whether a settled rule prevents its dependents from running."""
    if evaluation.status in (RuleStatus.SKIPPED, RuleStatus.DISABLED):
        return True
    # Never ran because of its own dependencies.
    if evaluation.blocked_by is not None:
        return True
    control = config.control_level if config is not None else None
    if control == Severity.IGNORE:
        return False
    if control == Severity.SKIP_IF:
        return evaluation.status is RuleStatus.FAILED
    return evaluation.level is not None and evaluation.level >= Severity.CRITICAL


async def _run(
    name: str,
    spec: TaskSpec,
    configs: Mapping[str, RuleConfig],
    dependencies: Mapping[str, asyncio.Task[Evaluation]],
    context: Mapping[str, Any],
) -> Evaluation:
    config = configs.get(name)
    control = config.control_level if config is not None else None

    if control == Severity.DISABLED:
        log.debug("Rule %s: disabled", name)
        return Evaluation(status=RuleStatus.DISABLED, level=control)
    if control == Severity.SKIP:
        log.debug("Rule %s: skipped", name)
        return Evaluation(status=RuleStatus.SKIPPED, level=control)

    settled = await asyncio.gather(*dependencies.values(), return_exceptions=True)

    values: dict[str, Any] = {}
    for dep, outcome in zip(dependencies, settled, strict=True):
        if isinstance(outcome, BaseException):
            raise DependencyError(name, dep) from outcome
        if outcome.status is RuleStatus.DISABLED:
            log.debug("Rule %s: failed, dependency %s is disabled", name, dep)
            failure = Failure(dep, f"Dependency {dep!r} is disabled")
            return Evaluation(status=RuleStatus.FAILED, failure=failure, blocked_by=dep)
        if blocks_dependents(configs.get(dep), outcome):
            log.debug("Rule %s: skipped, blocked by %s", name, dep)
            return Evaluation(status=RuleStatus.SKIPPED, blocked_by=dep)
        values[dep] = outcome.result

    ctx = build_context(
        context,
        rule=name,
        options=config.options if config is not None else None,
        dependencies=values,
    )
    return await spec.func(ctx)


def execute(
    tasks: Mapping[str, TaskSpec],
    configs: Mapping[str, RuleConfig],
    *,
    context: Mapping[str, Any],
) -> dict[str, asyncio.Task[Evaluation]]:
    """Schedule every rule and return its pending task, keyed by rule name.

    Must be called from a running event loop. Each rule's ``func`` runs at
    most once, after all of its dependencies have settled.
    """
    order = validate_graph({name: spec.depends_on for name, spec in tasks.items()})
    loop = asyncio.get_running_loop()

    pending: dict[str, asyncio.Task[Evaluation]] = {}
    for name in order:
        spec = tasks[name]
        dependencies = {dep: pending[dep] for dep in spec.depends_on}
        pending[name] = loop.create_task(
            _run(name, spec, configs, dependencies, context),
            name=f"projectlint:{name}",
        )

    return {name: pending[name] for name in tasks}
