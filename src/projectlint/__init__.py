# SPDX-License-Identifier: MIT
"""projectlint: cascading, severity-ordered rule evaluation across project roots."""

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
    level_of,
    register_level,
)
from projectlint.config import (
    LevelConfig,
    LintOptions,
    RuleConfig,
    load_options,
    normalize_config,
    normalize_configs,
)
from projectlint.context import RuleContext
from projectlint.engine import lint, lint_sync
from projectlint.evaluator import Evaluation, RuleEvaluator, RuleExecutionError
from projectlint.tasks import DependencyError

__all__ = [
    "LEVELS",
    "ConfigurationError",
    "DependencyError",
    "Evaluation",
    "Failure",
    "LevelConfig",
    "LintOptions",
    "LintReport",
    "ProjectRootResult",
    "Rule",
    "RuleConfig",
    "RuleContext",
    "RuleEvaluator",
    "RuleExecutionError",
    "RuleExecutionResult",
    "RuleStatus",
    "Severity",
    "level_of",
    "lint",
    "lint_sync",
    "load_options",
    "normalize_config",
    "normalize_configs",
    "register_level",
]
