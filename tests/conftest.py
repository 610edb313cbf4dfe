"""Shared fixtures for reqhook tests."""

import pytest

from reqhook.config import ReqhookConfig, clear_config_instance, set_config_instance
from reqhook.pipeline import InterceptorRegistry, RequestView
from reqhook.pipeline.registry import clear_registry


@pytest.fixture(autouse=True)
def cleanup():
    """Use default config and a fresh process registry for every test."""
    set_config_instance(ReqhookConfig(environment="development"))
    clear_registry()
    yield
    clear_registry()
    clear_config_instance()


@pytest.fixture
def registry() -> InterceptorRegistry:
    """Create an empty, standalone registry."""
    return InterceptorRegistry()


@pytest.fixture
def make_request():
    """Build a RequestView from a URL plus optional headers and cookies."""

    def _make(url: str = "/", headers: dict | None = None, cookies: dict | None = None) -> RequestView:
        return RequestView.from_url(url, headers=headers, cookies=cookies or {})

    return _make
