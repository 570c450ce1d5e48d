"""Configuration settings for the Kakeibo server."""

from pathlib import Path
from functools import lru_cache
from pydantic_settings import BaseSettings


def _find_env_file() -> str:
    """Find .env file - check current dir, then parent (repository root)."""
    current = Path.cwd()

    if (current / ".env").exists():
        return str(current / ".env")

    # Running from server/
    if (current.parent / ".env").exists():
        return str(current.parent / ".env")

    return ".env"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Server settings
    port: int = 3456
    host: str = "0.0.0.0"
    debug: bool = False
    log_level: str = "info"
    log_json: bool = False

    # Hosted backend (table storage + auth)
    backend_url: str = ""
    backend_anon_key: str = ""
    request_timeout: float = 10.0

    # Cache TTLs (in seconds)
    default_cache_ttl: float = 300  # 5 minutes
    transactions_cache_ttl: float = 300
    categories_cache_ttl: float = 1800  # 30 minutes
    budgets_cache_ttl: float = 600
    assets_cache_ttl: float = 600
    reports_cache_ttl: float = 300
    # 0 keeps every entry until it is invalidated
    cache_max_entries: int = 0

    # Performance warning thresholds (in seconds)
    slow_query_threshold: float = 1.0
    very_slow_query_threshold: float = 3.0
    slow_network_threshold: float = 2.0
    very_slow_network_threshold: float = 5.0

    class Config:
        env_prefix = "KAKEIBO_"
        env_file = _find_env_file()
        env_file_encoding = "utf-8"
        extra = "ignore"

    @property
    def backend_configured(self) -> bool:
        """Whether the hosted backend URL and key are both set."""
        return bool(self.backend_url and self.backend_anon_key)

    @property
    def rest_url(self) -> str:
        """Base URL of the table API."""
        return f"{self.backend_url.rstrip('/')}/rest/v1"

    @property
    def auth_url(self) -> str:
        """Base URL of the auth API."""
        return f"{self.backend_url.rstrip('/')}/auth/v1"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
