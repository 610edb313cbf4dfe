"""Request interception pipeline.

Interceptors are registered under unique ids and dispatched in priority
order. Each one is a pair (match, handler):

    match(req)   = pattern(req.path) and conditions(req.headers, req.query, req.cookies)
    handler(req) = Continue | Respond(response)

    handle(req) = first Respond among matching interceptors, else fallthrough
"""

from reqhook.pipeline.context import RequestView, as_request_view
from reqhook.pipeline.interceptor import Conditions, InterceptorConfig, RegisteredInterceptor, interceptor
from reqhook.pipeline.matcher import matches, matches_conditions, matches_pattern, matches_record
from reqhook.pipeline.registry import (
    InterceptorRegistry,
    clear_registry,
    get_registry,
    interceptor_middleware,
    set_registry,
)
from reqhook.pipeline.result import Continue, Respond, Result

__all__ = [
    "RequestView",
    "as_request_view",
    "Conditions",
    "InterceptorConfig",
    "RegisteredInterceptor",
    "interceptor",
    "matches",
    "matches_pattern",
    "matches_conditions",
    "matches_record",
    "InterceptorRegistry",
    "get_registry",
    "set_registry",
    "clear_registry",
    "interceptor_middleware",
    "Continue",
    "Respond",
    "Result",
]
