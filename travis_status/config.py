"""
Application configuration management.
"""

from typing import Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


TRAVIS_ORG_API = "https://api.travis-ci.org"
TRAVIS_PRO_API = "https://api.travis-ci.com"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="TRAVIS_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    # Travis CI
    pro: bool = False
    api_base_url: Optional[str] = None  # Private instance, overrides pro/org
    request_timeout_seconds: float = 10.0

    # Credentials (token wins over user/password)
    github_oauth_token: str = ""
    github_user: str = ""
    github_password: str = ""
    github_api_url: str = "https://api.github.com"  # Token issuer for user/password login

    # Proxy, read from the conventional unprefixed variables
    https_proxy: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("HTTPS_PROXY", "https_proxy"),
    )
    http_proxy: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("HTTP_PROXY", "http_proxy"),
    )

    # Application
    workspace_root: str = "."
    log_level: str = "INFO"

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(
                "TRAVIS_LOG_LEVEL must be one of CRITICAL, ERROR, WARNING, INFO, DEBUG"
            )
        return normalized

    @field_validator("request_timeout_seconds")
    @classmethod
    def _validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("TRAVIS_REQUEST_TIMEOUT_SECONDS must be > 0")
        return value

    @property
    def api_base(self) -> str:
        """Travis API root for the configured mode."""
        if self.api_base_url:
            return self.api_base_url.rstrip("/")
        return TRAVIS_PRO_API if self.pro else TRAVIS_ORG_API

    @property
    def web_base(self) -> str:
        """Travis web UI root used for "open in browser" links."""
        return "https://travis-ci.com" if self.pro else "https://travis-ci.org"

    @property
    def proxy_url(self) -> Optional[str]:
        return self.https_proxy or self.http_proxy or None


def get_settings() -> Settings:
    """
    Load a fresh settings instance.

    Not cached: credential and mode changes in the environment or .env
    file are picked up by the next query.
    """
    return Settings()


# Global settings instance
settings = Settings()
