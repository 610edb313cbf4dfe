"""Path pattern normalization.

A pattern is one of:
    Literal(source)   regular-expression source string
    Compiled(regex)   precompiled ``re.Pattern``
    OneOf(patterns)   sequence of the above, matched with OR

Patterns are compiled once, at registration, into a tuple of ``re.Pattern``.
String sources are never anchored implicitly.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Union

PatternItem = Union[str, re.Pattern[str]]
PatternSpec = Union[PatternItem, Sequence[PatternItem]]


def flatten(pattern: PatternSpec) -> list[PatternItem]:
    """Expand a single pattern or a sequence of patterns into a list.

    Args:
        pattern: Pattern or sequence of patterns

    Returns:
        List of raw patterns, in their original order
    """
    if isinstance(pattern, (str, re.Pattern)):
        return [pattern]
    return list(pattern)


def compile_pattern(pattern: PatternItem) -> re.Pattern[str]:
    """Compile a single pattern.

    Raises:
        re.error: If a string source is not a valid regular expression
        TypeError: If the pattern is neither a string nor a compiled regex
    """
    if isinstance(pattern, re.Pattern):
        return pattern
    if isinstance(pattern, str):
        return re.compile(pattern)
    raise TypeError(f"Unsupported pattern type: {type(pattern).__name__}")


def compile_patterns(pattern: PatternSpec) -> tuple[re.Pattern[str], ...]:
    """Normalize a pattern spec into compiled regular expressions.

    Args:
        pattern: Pattern or sequence of patterns

    Returns:
        Tuple of compiled patterns

    Raises:
        re.error: If any string source fails to compile
    """
    return tuple(compile_pattern(p) for p in flatten(pattern))


def describe(pattern: PatternItem) -> str:
    """Render a raw pattern for display."""
    if isinstance(pattern, re.Pattern):
        return f"/{pattern.pattern}/"
    return pattern
