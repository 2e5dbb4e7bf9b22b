"""
Runtime settings loaded from environment variables.
Uses pydantic-settings so PORT=9000 etc. override the defaults.
"""

from functools import lru_cache

from pydantic_settings import BaseSettings

from utilities.constants import MAX_VIEWERS, PING_INTERVAL


class Settings(BaseSettings):
    """Relay hub settings with defaults for local exhibitions."""

    host: str = "0.0.0.0"
    port: int = 8080

    # directory holding index.html, site-a.html, site-b.html and assets
    static_dir: str = "."

    max_viewers: int = MAX_VIEWERS
    ping_interval: float = PING_INTERVAL

    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()
