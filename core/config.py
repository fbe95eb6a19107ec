"""
core/config.py -- Centralized application configuration via pydantic-settings.

All environment variable reads for MediaVault happen here. No module should
call os.getenv() or os.environ.get() directly. The API lifespan calls
get_settings() once and stores the result on app.state.settings; every
component that needs configuration receives it from there.

Design patterns used:
  Singleton via lru_cache: get_settings() instantiates Settings once at first
      call and returns the cached instance on every subsequent call.

  BaseSettings (pydantic-settings): Reads values from environment variables
      and an optional .env file automatically. Field names map to env var names
      (e.g. secret_key -> SECRET_KEY, connection_string -> CONNECTION_STRING).

  @model_validator(mode="after"): Cross-field validation of SECRET_KEY once
      every field has been resolved.

SECRET_KEY policy:
  A missing key does NOT stop the server. The auth gate checks for it on every
  auth and protected route and answers 500 when it is absent, so the rest of
  the service (health checks) stays reachable while the operator fixes the
  deployment. In DEBUG mode an ephemeral key is generated instead.
  A key that is present but shorter than 32 characters is rejected outright.

Layer rule: core/ is the kernel. This module may not import from api/,
auth/, or media/.
"""

import logging
import secrets
from functools import lru_cache

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger("mediavault.config")

_MIN_SECRET_LENGTH = 32


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file.

    All fields have defaults so Settings() can be instantiated in test
    environments without a real .env file.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ------------------------------------------------------------------
    # Core
    # ------------------------------------------------------------------

    debug: bool = False
    # Empty string is the sentinel for "not configured".
    secret_key: str = ""

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    connection_string: str = "sqlite:///mediavault.db"

    # ------------------------------------------------------------------
    # Server
    # ------------------------------------------------------------------

    host: str = "127.0.0.1"
    port: int = 5000
    cors_origins: list[str] = ["http://localhost:3000"]

    # ------------------------------------------------------------------
    # Sessions
    # ------------------------------------------------------------------

    token_ttl_hours: int = 24
    token_purge_interval_seconds: int = 3600

    # ------------------------------------------------------------------
    # Rate limiting
    # ------------------------------------------------------------------

    rate_limit_enabled: bool = True
    login_rate_limit: str = "10/minute"

    # ------------------------------------------------------------------
    # Validators
    # ------------------------------------------------------------------

    @model_validator(mode="after")
    def validate_secret_key(self) -> "Settings":
        """Apply the SECRET_KEY policy described in the module docstring."""
        if not self.secret_key:
            if self.debug:
                self.secret_key = secrets.token_hex(32)
                logger.warning(
                    "WARNING: Using auto-generated SECRET_KEY. " "Sessions will not persist across restarts."
                )
            else:
                logger.error("SECRET_KEY is not set -- auth and media routes will answer 500.")
            return self
        if len(self.secret_key) < _MIN_SECRET_LENGTH:
            raise ValueError(f"SECRET_KEY must be at least {_MIN_SECRET_LENGTH} characters.")
        return self

    @property
    def auth_configured(self) -> bool:
        return bool(self.secret_key)


@lru_cache
def get_settings() -> Settings:
    """Return the application Settings singleton.

    In tests: call get_settings.cache_clear() between test cases if you need
    to inject different environment variables.
    """
    return Settings()
