"""Interceptor configuration and decorator.

Defines the InterceptorConfig/RegisteredInterceptor types and the
@interceptor decorator for registering handlers with the process registry.
"""

from __future__ import annotations

import dataclasses
import re
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Union

from reqhook.pipeline.patterns import PatternItem, PatternSpec, compile_patterns, flatten

if TYPE_CHECKING:
    from reqhook.pipeline.registry import InterceptorRegistry


# Type aliases
ValueMatcher = Union[str, re.Pattern[str]]
HandlerFn = Callable[[Any, Any], Union[Any, Awaitable[Any]]]


@dataclass(frozen=True)
class Conditions:
    """Per-request predicates required in addition to the path pattern.

    Each mapping is optional. A string matcher requires exact equality, a
    compiled regex is searched within the value.

    Attributes:
        headers: Header name to matcher
        query: Query parameter key to matcher
        cookies: Cookie name to matcher
    """

    headers: Mapping[str, ValueMatcher] | None = None
    query: Mapping[str, ValueMatcher] | None = None
    cookies: Mapping[str, ValueMatcher] | None = None

    @classmethod
    def coerce(cls, value: Conditions | Mapping[str, Any] | None) -> Conditions | None:
        """Build Conditions from a plain mapping (or pass through)."""
        if value is None or isinstance(value, Conditions):
            return value
        unknown = set(value) - {"headers", "query", "cookies"}
        if unknown:
            raise ValueError(f"Unknown condition categories: {sorted(unknown)}")
        return cls(
            headers=value.get("headers"),
            query=value.get("query"),
            cookies=value.get("cookies"),
        )


@dataclass(frozen=True)
class InterceptorConfig:
    """Identity and applicability of an interceptor.

    Attributes:
        id: Unique key within the registry
        pattern: Path pattern(s), matched with OR
        priority: Dispatch order key, lower runs earlier (None means 0)
        conditions: Optional header/query/cookie predicates
    """

    id: str
    pattern: PatternSpec
    priority: int | None = None
    conditions: Conditions | None = None

    def __post_init__(self) -> None:
        if isinstance(self.conditions, Mapping):
            object.__setattr__(self, "conditions", Conditions.coerce(self.conditions))

    @classmethod
    def coerce(cls, value: InterceptorConfig | Mapping[str, Any]) -> InterceptorConfig:
        """Build an InterceptorConfig from a plain mapping (or pass through)."""
        if isinstance(value, InterceptorConfig):
            return value
        return cls(
            id=value["id"],
            pattern=value["pattern"],
            priority=value.get("priority"),
            conditions=Conditions.coerce(value.get("conditions")),
        )

    def normalized(self) -> InterceptorConfig:
        """Return a copy with priority defaulted to 0."""
        return dataclasses.replace(self, priority=self.priority or 0)

    @property
    def patterns(self) -> list[PatternItem]:
        """Raw patterns as a flat list."""
        return flatten(self.pattern)


@dataclass
class RegisteredInterceptor:
    """Interceptor as stored in the registry.

    Attributes:
        config: Normalized configuration (priority always set)
        handler: Sync or async callable of (request, context)
        compiled: Compiled path patterns
    """

    config: InterceptorConfig
    handler: HandlerFn
    compiled: tuple[re.Pattern[str], ...] = field(default=(), repr=False)

    @classmethod
    def create(cls, config: InterceptorConfig, handler: HandlerFn) -> RegisteredInterceptor:
        """Normalize config and compile its patterns.

        Raises:
            re.error: If a pattern source is malformed
        """
        normalized = config.normalized()
        return cls(config=normalized, handler=handler, compiled=compile_patterns(normalized.pattern))

    @property
    def id(self) -> str:
        return self.config.id

    @property
    def priority(self) -> int:
        return self.config.priority or 0


def interceptor(
    *,
    id: str | None = None,
    pattern: PatternSpec,
    priority: int | None = None,
    conditions: Conditions | Mapping[str, Any] | None = None,
    registry: InterceptorRegistry | None = None,
) -> Callable[[HandlerFn], HandlerFn]:
    """Decorator to register a function as an interceptor.

    Args:
        id: Interceptor id (defaults to the function name)
        pattern: Path pattern(s)
        priority: Dispatch order key
        conditions: Header/query/cookie predicates
        registry: Target registry (defaults to the process registry)

    Returns:
        Decorator function

    Example:
        @interceptor(pattern=r"^/admin", priority=1, conditions={"cookies": {"session": re.compile("^valid-")}})
        async def require_session(request, context=None):
            ...
    """

    def decorator(fn: HandlerFn) -> HandlerFn:
        config = InterceptorConfig(
            id=id or fn.__name__,
            pattern=pattern,
            priority=priority,
            conditions=Conditions.coerce(conditions),
        )
        target = registry
        if target is None:
            from reqhook.pipeline.registry import get_registry

            target = get_registry()
        target.register(config, fn)

        fn._interceptor_config = config  # type: ignore[attr-defined]
        return fn

    return decorator
