"""Configuration using pydantic-settings.

Values come from environment variables prefixed with ``NOTION_`` (or a
``.env`` file). The client and transport never read the environment
themselves; the CLI passes these values in.
"""

from functools import lru_cache

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables.

    Environment variables:
    - NOTION_TOKEN: value of the session ``token`` cookie
    - NOTION_BASE_URL: API base URL
    - NOTION_PAGE_CHUNK_LIMIT: records requested per loadPageChunk call
    - NOTION_TIMEOUT: per-request timeout in seconds
    - NOTION_LOG_LEVEL: minimum log level for the CLI
    """

    model_config = SettingsConfigDict(
        env_prefix="NOTION_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    token: str = ""
    base_url: str = "https://www.notion.so/api/v3/"
    page_chunk_limit: int = 50
    timeout: float = 60.0
    log_level: str = "INFO"

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Endpoint names are appended directly, so keep a trailing slash."""
        if not v.endswith("/"):
            return v + "/"
        return v

    @field_validator("page_chunk_limit")
    @classmethod
    def validate_page_chunk_limit(cls, v: int) -> int:
        if v < 1:
            raise ValueError("page_chunk_limit must be positive")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a known value."""
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in allowed:
            raise ValueError(f"log_level must be one of: {allowed}")
        return v_upper


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
