"""Request matching predicates.

Pure functions with no shared state:

    matches(req, cfg) = matches_pattern(req, cfg.pattern) and matches_conditions(req, cfg.conditions)

Path patterns are searched (not anchored) against the request path. Condition
values are compared exactly (str) or searched (compiled regex). A missing or
empty actual value never matches.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from reqhook.pipeline.context import RequestView, as_request_view
from reqhook.pipeline.patterns import PatternSpec, compile_patterns

if TYPE_CHECKING:
    from reqhook.pipeline.interceptor import Conditions, InterceptorConfig, RegisteredInterceptor, ValueMatcher


def _search_any(path: str, patterns: Iterable[re.Pattern[str]]) -> bool:
    return any(p.search(path) is not None for p in patterns)


def matches_pattern(request: Any, pattern: PatternSpec) -> bool:
    """Check if the request path matches any of the given patterns.

    Args:
        request: Request view or request-like object
        pattern: Pattern or sequence of patterns (raw or compiled)

    Returns:
        True if at least one pattern is found in the path

    Raises:
        re.error: If a string pattern is not a valid regular expression
    """
    view = as_request_view(request)
    return _search_any(view.path, compile_patterns(pattern))


def matches_record(actual: Mapping[str, str], expected: Mapping[str, ValueMatcher]) -> bool:
    """Check that every expected key is present and its value matches.

    Args:
        actual: Values from the request
        expected: Key to exact string or compiled regex

    Returns:
        True if all expected keys match
    """
    for key, matcher in expected.items():
        value = actual.get(key)
        if not value:
            return False
        if isinstance(matcher, re.Pattern):
            if matcher.search(value) is None:
                return False
        elif matcher != value:
            return False
    return True


def matches_conditions(request: Any, conditions: Conditions | None) -> bool:
    """Check header, query and cookie conditions.

    Header names compare case-insensitively. Absent categories are
    vacuously satisfied.

    Args:
        request: Request view or request-like object
        conditions: Conditions to satisfy, or None

    Returns:
        True if every present category is satisfied
    """
    if conditions is None:
        return True

    view = as_request_view(request)

    if conditions.headers is not None:
        expected = {k.lower(): v for k, v in conditions.headers.items()}
        if not matches_record(view.headers, expected):
            return False

    if conditions.query is not None and not matches_record(view.query, conditions.query):
        return False

    if conditions.cookies is not None and not matches_record(view.cookies, conditions.cookies):
        return False

    return True


def matches(request: Any, target: InterceptorConfig | RegisteredInterceptor) -> bool:
    """Check pattern and conditions together.

    Accepts either a bare config (patterns compiled on the fly) or a
    registered interceptor (patterns precompiled at registration).

    Args:
        request: Request view or request-like object
        target: Interceptor config or registered interceptor

    Returns:
        True if the request satisfies both pattern and conditions
    """
    view: RequestView = as_request_view(request)

    compiled = getattr(target, "compiled", None)
    config = getattr(target, "config", target)

    if compiled is not None:
        path_ok = _search_any(view.path, compiled)
    else:
        path_ok = matches_pattern(view, config.pattern)

    return path_ok and matches_conditions(view, config.conditions)
