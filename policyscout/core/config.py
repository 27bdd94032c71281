"""
Application settings loaded from environment variables.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration for the discovery service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    ALLOWED_HOSTS: List[str] = ["*"]

    # HTTP client
    SCRAPER_USER_AGENT: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )
    SCRAPER_TIMEOUT: float = 15.0
    SCRAPER_PROBE_TIMEOUT: float = 8.0
    SCRAPER_MAX_RETRIES: int = 2
    SCRAPER_MIN_REQUEST_INTERVAL: float = 1.0
    SCRAPER_BATCH_SIZE: int = 5

    # Discovery engine
    DISCOVERY_EARLY_STOP_CONFIDENCE: int = 85
    DISCOVERY_DEEP_SCAN_DEPTH: int = 2
    DISCOVERY_VERIFY_DNS: bool = True
    DISCOVERY_SPECIAL_DOMAINS_FILE: Optional[str] = None

    # Content validator
    VALIDATOR_PASS_CONFIDENCE: int = 40
    VALIDATOR_MIN_LENGTH: int = 500
    VALIDATOR_MIN_WORDS: int = 100
    VALIDATOR_MIN_KEYWORDS: int = 3
    VALIDATOR_MIN_TOPICS: int = 2
    VALIDATOR_NEGATIVE_MARGIN: int = 2


settings = Settings()
