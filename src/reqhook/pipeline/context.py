"""Request view used by the matcher.

Provides a host-independent snapshot of the request fields interceptors
match on: path, headers, query parameters and cookies.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import parse_qsl, urlsplit

from starlette.requests import cookie_parser


def _last_wins(pairs: Iterable[tuple[str, str]]) -> dict[str, str]:
    """Collapse name/value pairs into a dict, keeping the last value per name."""
    return {str(k): str(v) for k, v in pairs}


def _pairs(source: Any) -> Iterable[tuple[str, str]]:
    """Enumerate name/value pairs from a mapping or multi-dict."""
    if source is None:
        return ()
    multi_items = getattr(source, "multi_items", None)
    if callable(multi_items):
        return multi_items()
    if isinstance(source, Mapping) or hasattr(source, "items"):
        return source.items()
    return source


@dataclass
class RequestView:
    """Matchable fields of an incoming request.

    Attributes:
        path: URL path, without query string
        headers: Header values keyed by lowercased name
        query: Query parameter values keyed by name (last value wins)
        cookies: Cookie values keyed by name
    """

    path: str = "/"
    headers: dict[str, str] = field(default_factory=dict)
    query: dict[str, str] = field(default_factory=dict)
    cookies: dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        self.headers = {k.lower(): v for k, v in self.headers.items()}

    @classmethod
    def from_url(
        cls,
        url: str,
        headers: Mapping[str, str] | None = None,
        cookies: Mapping[str, str] | None = None,
    ) -> RequestView:
        """Create a view from a URL or path string.

        Cookies are taken from the ``cookies`` argument, or parsed from a
        ``cookie`` header when no mapping is given.

        Args:
            url: Absolute URL or path, optionally with a query string
            headers: Request headers
            cookies: Request cookies

        Returns:
            RequestView instance
        """
        parts = urlsplit(url)
        header_map = _last_wins(_pairs(headers))
        header_map = {k.lower(): v for k, v in header_map.items()}

        if cookies is None and "cookie" in header_map:
            cookie_map = cookie_parser(header_map["cookie"])
        else:
            cookie_map = _last_wins(_pairs(cookies))

        return cls(
            path=parts.path or "/",
            headers=header_map,
            query=_last_wins(parse_qsl(parts.query, keep_blank_values=True)),
            cookies=cookie_map,
        )

    @classmethod
    def from_host_request(cls, request: Any) -> RequestView:
        """Create a view from a host framework request.

        Works with Starlette/FastAPI ``Request`` objects and anything else
        exposing ``url.path``, ``headers``, ``query_params`` and ``cookies``.

        Args:
            request: Host request object

        Returns:
            RequestView instance
        """
        return cls(
            path=request.url.path,
            headers=_last_wins(_pairs(request.headers)),
            query=_last_wins(_pairs(request.query_params)),
            cookies=_last_wins(_pairs(request.cookies)),
        )


def as_request_view(request: Any) -> RequestView:
    """Coerce a request-like value into a RequestView.

    Args:
        request: RequestView, URL string, or host request object

    Returns:
        RequestView for matching

    Raises:
        TypeError: If the value exposes no URL path
    """
    if isinstance(request, RequestView):
        return request
    if isinstance(request, str):
        return RequestView.from_url(request)
    if hasattr(request, "url") and hasattr(getattr(request, "url"), "path"):
        return RequestView.from_host_request(request)
    raise TypeError(f"Cannot build a request view from {type(request).__name__}")
