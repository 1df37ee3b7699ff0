# SPDX-License-Identifier: MIT
"""Rule config normalization and engine options.

A rule's raw config may be a level name, a level number, a ``[level,
config]`` pair, a list of such pairs, a ``{level: config}`` mapping, or a
YAML flow string encoding any of those. Every shape normalizes to the same
ascending tuple of :class:`LevelConfig` entries.
"""

from __future__ import annotations

import os
from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from operator import attrgetter
from types import MappingProxyType
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from projectlint.base import LEVELS, ConfigurationError, level_of

RULES_KEY = "rules"

ENV_ERROR_LEVEL = "PROJECTLINT_ERROR_LEVEL"
ENV_FIX = "PROJECTLINT_FIX"
ENV_PROJECT_ROOT = "PROJECTLINT_PROJECT_ROOT"

_TRUTHY = frozenset({"1", "true", "yes", "on"})
_FALSY = frozenset({"0", "false", "no", "off", ""})


@dataclass(frozen=True)
class LevelConfig:
    """One severity level of a rule and the thresholds checked at it."""

    level: int
    config: Any = None

    def __iter__(self) -> Iterator[Any]:
        yield self.level
        yield self.config


@dataclass(frozen=True)
class RuleConfig:
    """Normalized config: levels sorted ascending, plus auxiliary options."""

    levels: tuple[LevelConfig, ...]
    options: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def __iter__(self) -> Iterator[LevelConfig]:
        return iter(self.levels)

    def __len__(self) -> int:
        return len(self.levels)

    @property
    def control_level(self) -> int | None:
        """Lowest configured level when it is a control level, else None."""
        lowest = self.levels[0].level
        return lowest if lowest <= 0 else None


# --- Textual grammar ---


def parse_config_text(text: str) -> Any:
    """Parse the YAML flow form of a rule config (``"[warn, {columns: 80}]"``)."""
    stripped = text.strip()
    if stripped in LEVELS:
        return stripped
    try:
        return yaml.safe_load(stripped)
    except (yaml.YAMLError, ValueError) as exc:
        msg = f"Malformed rule config {text!r}: {exc}"
        raise ConfigurationError(msg) from exc


def parse_config_entry(entry: Any) -> tuple[str, Any]:
    """Parse one entry of the array form of ``configs`` into ``(rule, raw)``.

    Strings such as ``"lint"`` or ``"lint, [warn, {columns: 80}]"`` are read
    as a YAML flow sequence.
    """
    if isinstance(entry, str):
        if not entry.strip():
            msg = "Config entry must not be empty"
            raise ConfigurationError(msg)
        try:
            entry = yaml.safe_load(f"[{entry}]")
        except (yaml.YAMLError, ValueError) as exc:
            msg = f"Malformed config entry {entry!r}: {exc}"
            raise ConfigurationError(msg) from exc

    if not isinstance(entry, list | tuple) or len(entry) not in (1, 2):
        msg = f"Config entry must be a (rule, config) pair, got {entry!r}"
        raise ConfigurationError(msg)

    name = entry[0]
    if not isinstance(name, str):
        msg = f"Config entry rule name must be a string, got {name!r}"
        raise ConfigurationError(msg)
    return name, entry[1] if len(entry) == 2 else None


# --- Shape parsing ---


def _pair(value: Any) -> tuple[Any, Any]:
    if not isinstance(value, list | tuple):
        msg = f"Level entry must be a [level, config] pair, got {value!r}"
        raise ConfigurationError(msg)
    if len(value) == 1:
        return value[0], None
    if len(value) == 2:
        return value[0], value[1]
    msg = f"Level entry must have 1 or 2 elements, got {len(value)}: {value!r}"
    raise ConfigurationError(msg)


def _entries_from_sequence(value: Sequence[Any]) -> list[tuple[Any, Any]]:
    if not value:
        return []
    if isinstance(value[0], list | tuple):
        return [_pair(item) for item in value]
    return [_pair(value)]


def _entries_from_mapping(value: Mapping[Any, Any]) -> list[tuple[Any, Any]]:
    return list(value.items())


def _coerce_entries(value: Any) -> list[tuple[Any, Any]]:
    if isinstance(value, bool):
        msg = f"Unsupported rule config {value!r}"
        raise ConfigurationError(msg)
    if isinstance(value, int | str):
        return [(value, None)]
    if isinstance(value, Mapping):
        return _entries_from_mapping(value)
    if isinstance(value, list | tuple):
        return _entries_from_sequence(value)
    msg = f"Unsupported rule config type: {type(value).__name__}"
    raise ConfigurationError(msg)


def _unwrap(value: Any) -> tuple[Any, dict[str, Any]]:
    """Split a ``{"rules": ..., **options}`` wrapper into levels and options."""
    if isinstance(value, str):
        value = parse_config_text(value)
    if not isinstance(value, Mapping) or RULES_KEY not in value:
        return value, {}

    options = {key: item for key, item in value.items() if key != RULES_KEY}
    levels = value[RULES_KEY]
    if levels is None:
        msg = "`rules` value must be set"
        raise ConfigurationError(msg)
    if isinstance(levels, str):
        levels = parse_config_text(levels)
    return levels, options


def normalize_config(raw: Any) -> RuleConfig:
    """Normalize a raw rule config into levels sorted from least to most severe.

    Raises:
        ConfigurationError: If the value is missing, empty, malformed, or
            names an unknown level.
    """
    if raw is None:
        msg = "`value` argument must be set"
        raise ConfigurationError(msg)

    value, options = _unwrap(raw)
    if value is None:
        msg = "`value` argument must not be empty"
        raise ConfigurationError(msg)

    entries = _coerce_entries(value)
    if not entries:
        msg = "`value` argument must not be empty"
        raise ConfigurationError(msg)

    levels = [LevelConfig(level=level_of(key), config=config) for key, config in entries]
    levels.sort(key=attrgetter("level"))

    return RuleConfig(levels=tuple(levels), options=MappingProxyType(options))


def normalize_configs(configs: Mapping[str, Any] | Sequence[Any]) -> dict[str, RuleConfig]:
    """Normalize every rule's raw config, keyed by rule name."""
    if isinstance(configs, Mapping):
        items = list(configs.items())
    elif isinstance(configs, list | tuple):
        items = [parse_config_entry(entry) for entry in configs]
    else:
        msg = f"`configs` must be a mapping or a list of entries, got {type(configs).__name__}"
        raise ConfigurationError(msg)

    normalized: dict[str, RuleConfig] = {}
    for name, raw in items:
        try:
            normalized[name] = normalize_config(raw)
        except ConfigurationError as exc:
            msg = f"Invalid config for rule {name!r}: {exc}"
            raise ConfigurationError(msg) from exc
    return normalized


# --- Engine options ---


class LintOptions(BaseModel):
    """Options recognized by :func:`projectlint.engine.lint`."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    error_level: Literal["failure", "error"] = Field(default="failure", alias="errorLevel")
    project_root: tuple[str, ...] = Field(default=(), alias="projectRoot")
    fix: bool = False
    config_loader: Callable[[], Any] | None = Field(default=None, alias="configLoader")

    @field_validator("project_root", mode="before")
    @classmethod
    def _coerce_roots(cls, value: Any) -> Any:
        if value is None:
            return ()
        if isinstance(value, str | os.PathLike):
            return (os.fspath(value),)
        if not isinstance(value, Iterable) or isinstance(value, bytes | Mapping):
            msg = f"project root must be a path or a list of paths, got {type(value).__name__}"
            raise ValueError(msg)
        roots = tuple(value)
        for root in roots:
            if not isinstance(root, str | os.PathLike):
                msg = f"project root must be a path, got {type(root).__name__}"
                raise ValueError(msg)
        return tuple(os.fspath(root) for root in roots)


def _safe_error_summary(e: ValidationError) -> str:
    """Render field paths and error type codes from a ValidationError."""
    parts: list[str] = []
    for err in e.errors():
        loc = ".".join(str(loc) for loc in err["loc"])
        parts.append(f"{loc}: {err['type']}")
    return "; ".join(parts)


def _by_alias(data: Mapping[str, Any]) -> dict[str, Any]:
    """Rewrite field names to their aliases so mixed spellings merge."""
    aliases = {name: info.alias or name for name, info in LintOptions.model_fields.items()}
    return {aliases.get(key, key): value for key, value in data.items()}


def build_options(
    options: LintOptions | Mapping[str, Any] | None = None, **overrides: Any
) -> LintOptions:
    """Validate user options into a :class:`LintOptions`."""
    if isinstance(options, LintOptions):
        if not overrides:
            return options
        data = options.model_dump(by_alias=True)
    else:
        data = _by_alias(options or {})
    data.update(_by_alias(overrides))
    try:
        return LintOptions.model_validate(data)
    except ValidationError as exc:
        msg = f"Invalid options: {_safe_error_summary(exc)}"
        raise ConfigurationError(msg) from exc


def _env_flag(name: str) -> bool | None:
    raw = os.environ.get(name)
    if raw is None:
        return None
    value = raw.strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    msg = f"Invalid boolean for {name}: {raw!r}"
    raise ConfigurationError(msg)


def load_options(
    *,
    error_level: str | None = None,
    project_root: str | Sequence[str] | None = None,
    fix: bool | None = None,
    config_loader: Callable[[], Any] | None = None,
) -> LintOptions:
    """Load options with explicit argument > env > default priority.

    Raises:
        ConfigurationError: If a value is not recognized.
    """
    data: dict[str, Any] = {}

    level = error_level or os.environ.get(ENV_ERROR_LEVEL)
    if level:
        data["error_level"] = level

    if project_root is None:
        env_roots = os.environ.get(ENV_PROJECT_ROOT)
        if env_roots:
            project_root = [p for p in env_roots.split(os.pathsep) if p]
    if project_root is not None:
        data["project_root"] = project_root

    if fix is None:
        fix = _env_flag(ENV_FIX)
    if fix is not None:
        data["fix"] = fix

    if config_loader is not None:
        data["config_loader"] = config_loader

    return build_options(data)


def resolve_project_roots(roots: Sequence[str] | str | None) -> list[str]:
    """Absolute, deduplicated project roots in first-seen order (default: CWD)."""
    if not roots:
        return [os.getcwd()]
    if isinstance(roots, str):
        roots = [roots]
    return list(dict.fromkeys(os.path.abspath(root) for root in roots))
