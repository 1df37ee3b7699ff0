# SPDX-License-Identifier: MIT
"""Property-based tests for config normalization.

Uses hypothesis to check that normalization never crashes with anything but
ConfigurationError, and that the output order depends only on the levels.
"""

from __future__ import annotations

import os
import string

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from projectlint.base import LEVELS, ConfigurationError
from projectlint.config import normalize_config, parse_config_entry

# CI runs 2k examples; set FUZZ_SLOW=1 for 20k (local deep run)
_MAX_EXAMPLES = 20_000 if os.environ.get("FUZZ_SLOW") else 2_000

_LEVEL_KEY = st.one_of(
    st.sampled_from(sorted(LEVELS)),
    st.integers(min_value=-10, max_value=10),
)

_PAYLOAD = st.one_of(
    st.none(),
    st.integers(),
    st.dictionaries(st.sampled_from(["columns", "max", "min"]), st.integers(), max_size=3),
)

_ENTRIES = st.lists(st.tuples(_LEVEL_KEY, _PAYLOAD), min_size=1, max_size=8)


def _levels(entries: list[tuple[object, object]]) -> list[int]:
    return [entry.level for entry in normalize_config([list(e) for e in entries])]


@given(entries=_ENTRIES, data=st.data())
@settings(max_examples=_MAX_EXAMPLES)
def test_fuzz_order_independent(entries: list[tuple[object, object]], data: st.DataObject) -> None:
    """Shuffling the input never changes the sorted levels."""
    shuffled = data.draw(st.permutations(entries))
    assert _levels(shuffled) == _levels(entries)


@given(entries=_ENTRIES)
@settings(max_examples=_MAX_EXAMPLES)
def test_fuzz_output_ascending(entries: list[tuple[object, object]]) -> None:
    levels = _levels(entries)
    assert levels == sorted(levels)
    assert len(levels) == len(entries)


@given(entries=_ENTRIES)
@settings(max_examples=_MAX_EXAMPLES)
def test_fuzz_equal_levels_keep_input_order(entries: list[tuple[object, object]]) -> None:
    """Entries sharing a level keep their relative input order."""
    tagged = [(key, index) for index, (key, _) in enumerate(entries)]
    result = normalize_config([list(e) for e in tagged])
    for a, b in zip(result.levels, result.levels[1:]):
        if a.level == b.level:
            assert a.config < b.config


@given(text=st.text(alphabet=string.printable, max_size=80))
@settings(max_examples=_MAX_EXAMPLES)
def test_fuzz_text_never_crashes(text: str) -> None:
    """Arbitrary text either normalizes or raises ConfigurationError."""
    try:
        result = normalize_config(text)
    except ConfigurationError:
        return
    assert len(result.levels) >= 1
    assert [e.level for e in result] == sorted(e.level for e in result)


@given(text=st.text(alphabet=string.printable, max_size=80))
@settings(max_examples=_MAX_EXAMPLES)
def test_fuzz_config_entry_never_crashes(text: str) -> None:
    try:
        name, _ = parse_config_entry(text)
    except ConfigurationError:
        return
    assert isinstance(name, str)


@pytest.mark.parametrize("name", sorted(LEVELS))
def test_every_level_name_normalizes(name: str) -> None:
    assert normalize_config(name).levels[0].level == LEVELS[name]
