"""Starlette/FastAPI middleware running the interceptor pipeline."""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from typing import Any

from fastapi import Request, Response
from starlette.background import BackgroundTasks
from starlette.middleware.base import BaseHTTPMiddleware

from reqhook.pipeline.patterns import compile_patterns
from reqhook.pipeline.registry import InterceptorRegistry, get_registry

logger = logging.getLogger(__name__)


class InterceptorMiddleware(BaseHTTPMiddleware):
    """Dispatch each request through an interceptor registry.

    A responding interceptor's response is returned as-is; otherwise the
    request continues to the application. Handlers receive a
    ``BackgroundTasks`` instance as their context, whose tasks run after
    whichever response is sent.
    """

    def __init__(
        self,
        app: Any,
        registry: InterceptorRegistry | None = None,
        gate: bool | None = None,
    ) -> None:
        """Initialize the middleware.

        Args:
            app: ASGI application
            registry: Registry to dispatch through (defaults to the process registry)
            gate: Skip dispatch for paths matching no registered pattern
                  (defaults to the gate_by_patterns setting)
        """
        super().__init__(app)
        self._registry = registry
        if gate is None:
            from reqhook.config import get_config

            gate = get_config().gate_by_patterns
        self.gate = gate

    @property
    def registry(self) -> InterceptorRegistry:
        return self._registry if self._registry is not None else get_registry()

    def _gate_patterns(self) -> tuple[re.Pattern[str], ...]:
        return compile_patterns(self.registry.list_patterns())

    def should_dispatch(self, path: str) -> bool:
        """Check if a path reaches the pipeline at all."""
        if not self.gate:
            return True
        return any(p.search(path) is not None for p in self._gate_patterns())

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Run interceptors, then fall through to the application."""
        if not self.should_dispatch(request.url.path):
            return await call_next(request)

        tasks = BackgroundTasks()
        response = await self.registry.handle(request, tasks)

        if response is None:
            response = await call_next(request)
        else:
            logger.debug("Request %s answered by interceptor", request.url.path)

        if tasks.tasks:
            _attach_background(response, tasks)
        return response


def _attach_background(response: Response, tasks: BackgroundTasks) -> None:
    """Run queued tasks after the response, keeping any it already has."""
    if response.background is not None:
        tasks.tasks.insert(0, response.background)
    response.background = tasks
