from functools import lru_cache
from threading import Lock
import structlog
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import model_validator

# Environment Constants
ENV_PRODUCTION = "production"
ENV_STAGING = "staging"
ENV_DEVELOPMENT = "development"
ENV_LOCAL = "local"


@lru_cache
def get_settings() -> "Settings":
    """Returns a singleton instance of the library settings."""
    return Settings()


_settings_reload_lock = Lock()


def reload_settings_from_environment() -> "Settings":
    """
    Atomically rebuild and replace cached settings from environment values.

    This avoids mutating the cached singleton instance in-place.
    """
    logger = structlog.get_logger()
    with _settings_reload_lock:
        logger.info("settings_reload_started")
        get_settings.cache_clear()
        refreshed = get_settings()
        logger.info("settings_reload_completed")
        return refreshed


class Settings(BaseSettings):
    """
    Configuration for pimroles.
    Uses Pydantic-Settings for environment variable parsing from .env.
    """

    APP_NAME: str = "pimroles"
    VERSION: str = "0.1.0"
    DEBUG: bool = False
    # ENVIRONMENT options: local, development, staging, production
    ENVIRONMENT: str = ENV_DEVELOPMENT
    TESTING: bool = False
    LOG_LEVEL: str = "INFO"

    # Upstream endpoints
    ARM_ENDPOINT: str = "https://management.azure.com"
    GRAPH_ENDPOINT: str = "https://graph.microsoft.com"
    ARM_SUBSCRIPTIONS_API_VERSION: str = "2022-12-01"
    ARM_MANAGEMENT_GROUPS_API_VERSION: str = "2021-04-01"
    ARM_AUTHORIZATION_API_VERSION: str = "2020-10-01"

    # HTTP behaviour of the bundled REST adapters
    HTTP_TIMEOUT_SECONDS: float = 20.0
    HTTP_MAX_RETRIES: int = 3

    @model_validator(mode="after")
    def validate_all_config(self) -> "Settings":
        if self.TESTING and self.ENVIRONMENT in {ENV_PRODUCTION, ENV_STAGING}:
            raise ValueError(
                "TESTING must be false in staging/production runtime environments."
            )
        if self.HTTP_TIMEOUT_SECONDS <= 0:
            raise ValueError("HTTP_TIMEOUT_SECONDS must be positive.")
        if self.HTTP_MAX_RETRIES < 1:
            raise ValueError("HTTP_MAX_RETRIES must be at least 1.")
        if self.TESTING:
            return self

        for name, value in (
            ("ARM_ENDPOINT", self.ARM_ENDPOINT),
            ("GRAPH_ENDPOINT", self.GRAPH_ENDPOINT),
        ):
            if not value.startswith("https://"):
                raise ValueError(f"{name} must use https (got {value!r}).")
        return self

    model_config = SettingsConfigDict(env_file=".env", env_ignore_empty=True)

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == ENV_PRODUCTION
