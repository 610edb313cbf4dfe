"""reqhook - priority-ordered request interceptors for ASGI applications."""

from reqhook.pipeline import (
    Conditions,
    Continue,
    InterceptorConfig,
    InterceptorRegistry,
    Respond,
    get_registry,
    interceptor,
    interceptor_middleware,
)

__all__ = [
    "Conditions",
    "Continue",
    "InterceptorConfig",
    "InterceptorRegistry",
    "Respond",
    "get_registry",
    "interceptor",
    "interceptor_middleware",
]
