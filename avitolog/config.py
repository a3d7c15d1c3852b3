"""
Crawler configuration and settings management.
"""
import os
from dataclasses import dataclass, field
from typing import List, Tuple


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


class Config:
    """Application configuration."""

    # Target site
    BASE_URL: str = os.getenv("AVITO_BASE_URL", "https://www.avito.ru")
    ALLOWED_DOMAIN: str = "avito.ru"

    # Politeness
    MIN_INTERVAL: float = _env_float("AVITO_MIN_INTERVAL", 3.0)
    JITTER: float = _env_float("AVITO_JITTER", 2.0)
    MAX_RETRIES: int = _env_int("AVITO_MAX_RETRIES", 3)
    BASE_DELAY: float = _env_float("AVITO_BASE_DELAY", 5.0)
    REQUEST_TIMEOUT: float = _env_float("AVITO_TIMEOUT", 30.0)
    CATALOG_DELAY: float = _env_float("AVITO_CATALOG_DELAY", 3.0)

    # Identity
    USER_AGENT: str = os.getenv(
        "AVITO_USER_AGENT",
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/120.0.0.0 Safari/537.36",
    )
    USER_AGENT_POOL: Tuple[str, ...] = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36",
        "Mozilla/5.0 (iPhone; CPU iPhone OS 13_2_3 like Mac OS X) AppleWebKit/605.1.15 "
        "(KHTML, like Gecko) Version/13.0.3 Mobile/15E148 Safari/604.1",
        "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/92.0.4515.107 Safari/537.36",
    )

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    @classmethod
    def validate(cls) -> None:
        """Validate configuration on startup."""
        if not cls.BASE_URL.startswith(("http://", "https://")):
            raise ValueError(f"AVITO_BASE_URL must be an absolute URL: {cls.BASE_URL}")
        if cls.MIN_INTERVAL < 0 or cls.JITTER < 0 or cls.BASE_DELAY < 0:
            raise ValueError("Delays must not be negative")
        if cls.MAX_RETRIES < 0:
            raise ValueError("AVITO_MAX_RETRIES must not be negative")
        if not cls.USER_AGENT_POOL:
            raise ValueError("User agent pool is empty")


# Global config instance
config = Config()


@dataclass
class FetchSettings:
    """Snapshot of the fetch-governance knobs used by one governor/fetcher pair."""

    base_url: str = config.BASE_URL
    allowed_domain: str = config.ALLOWED_DOMAIN
    min_interval: float = config.MIN_INTERVAL
    jitter: float = config.JITTER
    max_retries: int = config.MAX_RETRIES
    base_delay: float = config.BASE_DELAY
    request_timeout: float = config.REQUEST_TIMEOUT
    catalog_delay: float = config.CATALOG_DELAY
    user_agent: str = config.USER_AGENT
    user_agent_pool: List[str] = field(default_factory=lambda: list(config.USER_AGENT_POOL))

    @classmethod
    def from_config(cls, **overrides) -> "FetchSettings":
        """Build settings from the global config, ignoring overrides that are None."""
        values = {k: v for k, v in overrides.items() if v is not None}
        return cls(**values)
