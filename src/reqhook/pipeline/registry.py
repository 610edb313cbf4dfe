"""Interceptor registry and dispatcher.

Holds interceptors keyed by id and runs them in priority order against each
request. The first handler that responds stops the pipeline.
"""

from __future__ import annotations

import builtins
import inspect
import logging
import threading
from collections.abc import Iterator, Mapping
from typing import Any

from reqhook.pipeline.context import as_request_view
from reqhook.pipeline.interceptor import HandlerFn, InterceptorConfig, RegisteredInterceptor
from reqhook.pipeline.matcher import matches
from reqhook.pipeline.patterns import PatternItem
from reqhook.pipeline.result import Continue, Respond, Result, to_result

logger = logging.getLogger(__name__)

# Process-global slot the registry is pinned to outside production
GLOBAL_SLOT = "__reqhook_interceptor_registry__"


class InterceptorRegistry:
    """Ordered, id-keyed collection of interceptors.

    Registration normally happens at startup. Writes are serialized with a
    lock; each dispatch works on a snapshot of the entries, so concurrent
    readers see every entry either before or after a registration.
    """

    def __init__(self) -> None:
        self._interceptors: dict[str, RegisteredInterceptor] = {}
        self._lock = threading.Lock()

    def register(
        self,
        config: InterceptorConfig | Mapping[str, Any],
        handler: HandlerFn,
    ) -> InterceptorRegistry:
        """Register an interceptor, replacing any entry with the same id.

        The stored config is a copy with priority defaulted to 0; the
        caller's config is left untouched.

        Args:
            config: Interceptor configuration (or an equivalent mapping)
            handler: Sync or async callable of (request, context)

        Returns:
            This registry, for chaining

        Raises:
            re.error: If a pattern source is malformed
        """
        entry = RegisteredInterceptor.create(InterceptorConfig.coerce(config), handler)

        with self._lock:
            if entry.id in self._interceptors:
                logger.warning("Interceptor '%s' already registered, overwriting", entry.id)
            self._interceptors[entry.id] = entry

        logger.debug("Registered interceptor '%s' (priority %d)", entry.id, entry.priority)
        return self

    use = register

    def get(self, interceptor_id: str) -> RegisteredInterceptor | None:
        """Get a registered interceptor by id."""
        return self._interceptors.get(interceptor_id)

    def __contains__(self, interceptor_id: object) -> bool:
        return interceptor_id in self._interceptors

    def __len__(self) -> int:
        return len(self._interceptors)

    def __iter__(self) -> Iterator[RegisteredInterceptor]:
        return iter(self._snapshot())

    def _snapshot(self) -> list[RegisteredInterceptor]:
        with self._lock:
            return list(self._interceptors.values())

    def list_patterns(self) -> list[PatternItem]:
        """Flatten every interceptor's patterns, in registration order.

        Returns:
            Raw patterns (strings and compiled regexes)
        """
        return [p for entry in self._snapshot() for p in entry.config.patterns]

    get_matchers = list_patterns

    def sorted_interceptors(self) -> list[RegisteredInterceptor]:
        """Get interceptors in dispatch order.

        Returns:
            Interceptors by ascending priority, registration order on ties
        """
        return sorted(self._snapshot(), key=lambda entry: entry.priority)

    def explain(self, request: Any) -> list[RegisteredInterceptor]:
        """Get the interceptors matching a request, without running them.

        Args:
            request: Request view, URL string, or host request

        Returns:
            Matching interceptors in dispatch order
        """
        view = as_request_view(request)
        return [entry for entry in self.sorted_interceptors() if matches(view, entry)]

    async def dispatch(self, request: Any, context: Any = None) -> Result:
        """Run matching interceptors until one responds.

        Handler exceptions propagate; later interceptors are skipped.

        Args:
            request: Host request (passed to handlers unchanged)
            context: Optional execution context passed to handlers

        Returns:
            Respond from the first responding handler, otherwise Continue
        """
        view = as_request_view(request)

        for entry in self.sorted_interceptors():
            if not matches(view, entry):
                logger.debug("Interceptor '%s' skipped (no match)", entry.id)
                continue

            logger.debug("Executing interceptor '%s'", entry.id)
            value = entry.handler(request, context)
            if inspect.isawaitable(value):
                value = await value

            result = to_result(value)
            if isinstance(result, Respond):
                logger.debug("Interceptor '%s' responded, stopping pipeline", entry.id)
                return result

        return Continue

    async def handle(self, request: Any, context: Any = None) -> Any:
        """Run the pipeline and unwrap the response.

        Args:
            request: Host request (passed to handlers unchanged)
            context: Optional execution context passed to handlers

        Returns:
            The responding handler's response, or None on fallthrough
        """
        result = await self.dispatch(request, context)
        if isinstance(result, Respond):
            return result.response
        return None

    def clear(self) -> None:
        """Remove all interceptors (for testing)."""
        with self._lock:
            self._interceptors.clear()


# Global registry instance
_registry_instance: InterceptorRegistry | None = None
_registry_lock = threading.Lock()


def _pinning_enabled() -> bool:
    from reqhook.config import get_config

    return get_config().environment != "production"


def get_registry() -> InterceptorRegistry:
    """Get the process-wide registry, creating it on first access.

    A fresh registry is populated with the interceptors declared in
    reqhook.yaml. Outside production the instance is also pinned to a
    builtins slot so that reloading this module reuses it (without
    re-registering) instead of starting empty.
    """
    global _registry_instance

    if _registry_instance is None:
        with _registry_lock:
            # Double-check locking pattern
            if _registry_instance is None:
                pinned = getattr(builtins, GLOBAL_SLOT, None)
                if pinned is not None:
                    logger.debug("Reusing pinned interceptor registry")
                    _registry_instance = pinned
                else:
                    _registry_instance = InterceptorRegistry()
                    _configure_logging()
                    _load_configured_interceptors(_registry_instance)
                if _pinning_enabled():
                    setattr(builtins, GLOBAL_SLOT, _registry_instance)

    return _registry_instance


def _load_configured_interceptors(registry: InterceptorRegistry) -> None:
    from reqhook.config import get_config

    loaded = get_config().load_interceptors(registry)
    if loaded:
        logger.info("Loaded %d interceptor(s) from configuration", loaded)


def _configure_logging() -> None:
    from reqhook.config import get_config

    if get_config().debug:
        reqhook_logger = logging.getLogger("reqhook")
        reqhook_logger.setLevel(logging.DEBUG)
        if not reqhook_logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter("%(name)s:%(levelname)s: %(message)s"))
            reqhook_logger.addHandler(handler)


def set_registry(registry: InterceptorRegistry) -> None:
    """Set the global registry instance (for testing)."""
    global _registry_instance
    _registry_instance = registry


def clear_registry() -> None:
    """Drop the global registry instance and its pinned slot (for testing)."""
    global _registry_instance
    _registry_instance = None
    if hasattr(builtins, GLOBAL_SLOT):
        delattr(builtins, GLOBAL_SLOT)


async def interceptor_middleware(request: Any, context: Any = None) -> Any:
    """Dispatch a request through the process-wide registry."""
    return await get_registry().handle(request, context)
