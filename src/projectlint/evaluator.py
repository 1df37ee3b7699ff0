# SPDX-License-Identifier: MIT
"""Cascading rule evaluation: one check per severity level, worst failure wins.

Levels are visited from least to most severe. Every failing level overwrites
the recorded failure, so the one left at the end is the most severe level
actually violated, and a single fix can target it.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from projectlint.base import ConfigurationError, Failure, Rule, RuleStatus
from projectlint.config import RuleConfig
from projectlint.context import RuleContext

log = logging.getLogger(__name__)

ERROR_LEVELS: dict[str, type[BaseException]] = {
    "failure": Failure,
    "error": Exception,
}


class RuleExecutionError(Exception):
    """A rule crashed: fetch, evaluate or fix raised a non-recoverable error.

    Carries whatever the cascade had recorded before the abort. The original
    exception is available as ``error`` and ``__cause__``.
    """

    def __init__(
        self,
        rule: str,
        error: BaseException,
        *,
        level: int | None = None,
        failure: BaseException | None = None,
        result: Any = None,
    ) -> None:
        self.rule = rule
        self.error = error
        self.level = level
        self.failure = failure
        self.result = result
        super().__init__(f"Rule {rule!r} crashed: {type(error).__name__}: {error}")


# --- Outcome classification ---


@dataclass(frozen=True)
class Passed:
    pass


@dataclass(frozen=True)
class Failed:
    failure: BaseException


@dataclass(frozen=True)
class Crashed:
    error: BaseException


Outcome = Passed | Failed | Crashed


def classify_exception(exc: BaseException, catchable: type[BaseException] = Failure) -> Outcome:
    """Recoverable if ``exc`` is of the catchable type, fatal otherwise."""
    if isinstance(exc, catchable):
        return Failed(exc)
    return Crashed(exc)


def classify_value(value: Any, catchable: type[BaseException] = Failure) -> Outcome:
    """Classify what ``evaluate`` returned.

    Falsy values pass. Exception instances are treated as if raised. Any
    other truthy value is a failure payload.
    """
    if isinstance(value, BaseException):
        return classify_exception(value, catchable)
    if not value:
        return Passed()
    return Failed(Failure(value))


async def _call(func: Callable[..., Any], *args: Any) -> Any:
    value = func(*args)
    if inspect.isawaitable(value):
        value = await value
    return value


# --- Evaluation record ---


@dataclass(frozen=True)
class Evaluation:
    """What one execution of a rule produced.

    ``result`` is the fetched value that dependents consume, whether or not
    the rule failed.
    """

    status: RuleStatus = RuleStatus.PASSED
    result: Any = None
    level: int | None = None
    failure: BaseException | None = None
    fix: Callable[[], Awaitable[Any]] | None = None
    fix_result: Any = None
    fixed: bool = False
    blocked_by: str | None = None


class RuleEvaluator:
    """Binds a rule to its normalized levels and runs the cascade."""

    def __init__(
        self,
        rule: Rule,
        config: RuleConfig,
        *,
        error_level: str = "failure",
        auto_fix: bool = False,
    ) -> None:
        if error_level not in ERROR_LEVELS:
            msg = f"Unknown errorLevel {error_level!r}"
            raise ConfigurationError(msg)
        self.rule = rule
        self.config = config
        self.catchable = ERROR_LEVELS[error_level]
        self.auto_fix = auto_fix

    async def execute(self, ctx: RuleContext) -> Evaluation:
        """Run fetch once, then evaluate every level in ascending order.

        Raises:
            RuleExecutionError: If fetch, evaluate or an automatic fix raised
                something that is not a recoverable failure.
        """
        rule = self.rule
        fetched: Any = None

        if rule.fetch is not None:
            try:
                fetched = await _call(rule.fetch, ctx)
            except Exception as exc:
                log.warning("Rule %s: fetch crashed in %s: %r", rule.name, ctx.project_root, exc)
                raise RuleExecutionError(rule.name, exc) from exc

        level: int | None = None
        failure: BaseException | None = None
        fix_config: Any = None

        for entry in self.config.levels:
            try:
                outcome = await self._evaluate(ctx, entry.config, fetched)
            except Exception as exc:
                outcome = classify_exception(exc, self.catchable)

            if isinstance(outcome, Crashed):
                log.warning(
                    "Rule %s: evaluate crashed at level %s in %s: %r",
                    rule.name,
                    entry.level,
                    ctx.project_root,
                    outcome.error,
                )
                raise RuleExecutionError(
                    rule.name, outcome.error, level=level, failure=failure, result=fetched
                ) from outcome.error

            if isinstance(outcome, Failed):
                log.debug("Rule %s: failed at level %s", rule.name, entry.level)
                level = entry.level
                failure = outcome.failure
                fix_config = entry.config
            else:
                log.debug("Rule %s: passed level %s", rule.name, entry.level)

        if failure is None:
            return Evaluation(status=RuleStatus.PASSED, result=fetched)

        fix = None
        fix_result: Any = None
        fixed = False
        if rule.fix is not None:
            fix = _fix_thunk(rule.fix, ctx, fix_config, fetched, failure)
            if self.auto_fix:
                log.info("Rule %s: fixing at level %s in %s", rule.name, level, ctx.project_root)
                try:
                    fix_result = await fix()
                except Exception as exc:
                    raise RuleExecutionError(
                        rule.name, exc, level=level, failure=failure, result=fetched
                    ) from exc
                fixed = True

        return Evaluation(
            status=RuleStatus.FAILED,
            result=fetched,
            level=level,
            failure=failure,
            fix=fix,
            fix_result=fix_result,
            fixed=fixed,
        )

    async def _evaluate(self, ctx: RuleContext, config: Any, fetched: Any) -> Outcome:
        """Run ``evaluate`` for one level.

        A sync return value is classified. An awaitable is awaited and only
        its exception counts; whatever it resolves to is ignored.
        """
        value = self.rule.evaluate(ctx, config, fetched)
        if inspect.isawaitable(value):
            await value
            return Passed()
        return classify_value(value, self.catchable)


def _fix_thunk(
    fix: Callable[..., Any], ctx: RuleContext, config: Any, fetched: Any, failure: BaseException
) -> Callable[[], Awaitable[Any]]:
    async def run_fix() -> Any:
        return await _call(fix, ctx, config, fetched, failure)

    return run_fix
