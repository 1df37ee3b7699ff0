# SPDX-License-Identifier: MIT
"""Rule context: what a rule sees about the project it is checking."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any


@dataclass(frozen=True)
class RuleContext:
    """Context passed to fetch, evaluate and fix for one rule in one root."""

    project_root: Path
    rule: str
    options: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    dependencies: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    extra: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def path(self, *parts: str) -> Path:
        """Return a path inside the project root."""
        return self.project_root.joinpath(*parts)

    def exists(self, *parts: str) -> bool:
        return self.path(*parts).exists()

    def dependency(self, name: str) -> Any:
        """Return the value produced by a declared dependency."""
        try:
            return self.dependencies[name]
        except KeyError:
            msg = f"Rule {self.rule!r} has no settled dependency {name!r}"
            raise KeyError(msg) from None


def build_context(
    base: Mapping[str, Any],
    *,
    rule: str,
    options: Mapping[str, Any] | None = None,
    dependencies: Mapping[str, Any] | None = None,
) -> RuleContext:
    """Create a RuleContext from the executor's shared context mapping.

    ``base`` must carry ``project_root``; any other keys land in ``extra``.
    """
    extra = {key: value for key, value in base.items() if key != "project_root"}
    return RuleContext(
        project_root=Path(base["project_root"]),
        rule=rule,
        options=MappingProxyType(dict(options or {})),
        dependencies=MappingProxyType(dict(dependencies or {})),
        extra=MappingProxyType(extra),
    )
