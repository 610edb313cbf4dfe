"""Configuration management for reqhook.

Configuration Discovery Precedence (Highest to Lowest Priority):
===============================================================

1. **REQHOOK_CONFIG_DIR Environment Variable** (Highest Priority)
   - Looks for: `${REQHOOK_CONFIG_DIR}/reqhook.yaml`
   - Use case: Deployments, testing, custom layouts

2. **Current Working Directory**
   - Looks for: `./reqhook.yaml`
   - Use case: Running next to the application

3. **~/.reqhook Directory** (Fallback)
   - Looks for: `~/.reqhook/reqhook.yaml`

The first existing `reqhook.yaml` found in this order is used.
If none is found, default configuration is applied. Scalar settings can also
be given as `REQHOOK_*` environment variables (e.g. `REQHOOK_DEBUG=1`).

Example reqhook.yaml:
--------
reqhook:
  environment: production
  interceptors:
    - id: admin-auth
      pattern: "^/admin"
      priority: 1
      handler: myapp.interceptors.require_admin
      conditions:
        cookies:
          session: {regex: "^valid-"}
    - id: legacy-redirect
      pattern: ["^/old", "^/legacy"]
      handler: myapp.interceptors.redirect
      params:
        location: /new
"""

import functools
import importlib
import logging
import os
import re
import threading
from pathlib import Path
from typing import TYPE_CHECKING, Any

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from reqhook.pipeline.interceptor import Conditions, InterceptorConfig, ValueMatcher

if TYPE_CHECKING:
    from reqhook.pipeline.registry import InterceptorRegistry

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "reqhook.yaml"


class RegexMatcher(BaseModel):
    """Regular-expression value matcher (searched within the value)."""

    regex: str
    """Regular expression source"""

    ignore_case: bool = False
    """Compile with re.IGNORECASE"""

    def compile(self) -> re.Pattern[str]:
        return re.compile(self.regex, re.IGNORECASE if self.ignore_case else 0)


MatcherEntry = str | RegexMatcher


class ConditionsEntry(BaseModel):
    """Header/query/cookie conditions as written in YAML."""

    headers: dict[str, MatcherEntry] | None = None
    query: dict[str, MatcherEntry] | None = None
    cookies: dict[str, MatcherEntry] | None = None

    def to_conditions(self) -> Conditions:
        def convert(entries: dict[str, MatcherEntry] | None) -> dict[str, ValueMatcher] | None:
            if entries is None:
                return None
            return {k: v.compile() if isinstance(v, RegexMatcher) else v for k, v in entries.items()}

        return Conditions(
            headers=convert(self.headers),
            query=convert(self.query),
            cookies=convert(self.cookies),
        )


class InterceptorEntry(BaseModel):
    """A declaratively configured interceptor."""

    id: str
    """Unique interceptor id"""

    pattern: str | list[str]
    """Path pattern source(s)"""

    handler: str
    """Import path to the handler (module.attr or module:attr)"""

    priority: int | None = None
    """Dispatch order key (lower runs earlier)"""

    conditions: ConditionsEntry | None = None
    """Optional header/query/cookie conditions"""

    params: dict[str, Any] = Field(default_factory=dict)
    """Keyword arguments bound into the handler"""

    def to_config(self) -> InterceptorConfig:
        return InterceptorConfig(
            id=self.id,
            pattern=self.pattern,
            priority=self.priority,
            conditions=self.conditions.to_conditions() if self.conditions else None,
        )

    def load_handler(self) -> Any:
        """Import the handler and bind params.

        Raises:
            ImportError: If the module cannot be imported
            AttributeError: If the module has no such attribute
        """
        sep = ":" if ":" in self.handler else "."
        module_path, attr = self.handler.rsplit(sep, 1)
        module = importlib.import_module(module_path)
        handler = getattr(module, attr)
        if self.params:
            handler = functools.partial(handler, **self.params)
        return handler


class ReqhookConfig(BaseSettings):
    """Main configuration for reqhook that reads from reqhook.yaml."""

    model_config = SettingsConfigDict(
        env_prefix="REQHOOK_",
        case_sensitive=False,
        extra="ignore",
    )

    # Core settings
    debug: bool = False
    # Anything other than "production" pins the registry for hot reloads
    environment: str = "development"

    # Middleware only dispatches paths matching an exported pattern
    gate_by_patterns: bool = True

    # Declaratively configured interceptors
    interceptors: list[InterceptorEntry] = Field(default_factory=list)

    # Path the configuration was loaded from
    config_path: Path | None = None

    def load_interceptors(self, registry: "InterceptorRegistry") -> int:
        """Register every configured interceptor.

        Entries whose handler cannot be imported are logged and skipped.

        Args:
            registry: Registry to register into

        Returns:
            Number of interceptors registered
        """
        loaded = 0
        for entry in self.interceptors:
            try:
                handler = entry.load_handler()
            except (ImportError, AttributeError, ValueError) as e:
                logger.error("Failed to load interceptor '%s' handler %s: %s", entry.id, entry.handler, e)
                continue

            registry.register(entry.to_config(), handler)
            loaded += 1
            logger.debug("Loaded interceptor '%s' from %s", entry.id, entry.handler)
        return loaded

    @classmethod
    def from_yaml(cls, yaml_path: Path, **kwargs: Any) -> "ReqhookConfig":
        """Load configuration from a reqhook.yaml file.

        Args:
            yaml_path: Path to the reqhook.yaml file
            **kwargs: Overrides applied on top of the file

        Returns:
            ReqhookConfig instance
        """
        data: dict[str, Any] = {}
        if yaml_path.exists():
            with yaml_path.open() as f:
                raw = yaml.safe_load(f) or {}
            data = raw.get("reqhook", {}) or {}

        data.update(kwargs)
        return cls(config_path=yaml_path, **data)


def discover_config_path() -> Path | None:
    """Find reqhook.yaml using the discovery precedence."""
    env_config_dir = os.environ.get("REQHOOK_CONFIG_DIR")
    if env_config_dir:
        path = Path(env_config_dir) / CONFIG_FILENAME
        logger.info("Using config directory from environment: %s", env_config_dir)
        return path if path.exists() else None

    for candidate in (Path.cwd() / CONFIG_FILENAME, Path.home() / ".reqhook" / CONFIG_FILENAME):
        if candidate.exists():
            return candidate
    return None


# Global configuration instance
_config_instance: ReqhookConfig | None = None
_config_lock = threading.Lock()


def get_config() -> ReqhookConfig:
    """Get the configuration instance."""
    global _config_instance

    if _config_instance is None:
        with _config_lock:
            # Double-check locking pattern
            if _config_instance is None:
                config_path = discover_config_path()
                if config_path:
                    logger.info("Loading reqhook config from: %s", config_path)
                    _config_instance = ReqhookConfig.from_yaml(config_path)
                else:
                    logger.debug("No reqhook.yaml found, using defaults")
                    _config_instance = ReqhookConfig()

    return _config_instance


def set_config_instance(config: ReqhookConfig) -> None:
    """Set the global configuration instance (for testing)."""
    global _config_instance
    _config_instance = config


def clear_config_instance() -> None:
    """Clear the global configuration instance (for testing)."""
    global _config_instance
    _config_instance = None
