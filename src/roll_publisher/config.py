"""Application configuration."""

import os
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

AUTHORIZE_PATH = "/oauth/authorize"
TOKEN_PATH = "/oauth/token"
REVOKE_PATH = "/oauth/revoke"
UPLOAD_URL_PATH = "/photographs/upload-url"
PHOTOGRAPHS_PATH = "/photographs"
ROLLS_PATH = "/rolls"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    api_base_url: str = "http://api.only35.app"
    web_base_url: str = "http://only35.app"
    oauth_client_id: str = "lightroom"
    oauth_redirect_uri: str = "http://only35.app/oauth/success"
    oauth_scopes: str = "photographs:read photographs:write rolls:read rolls:write"
    http_timeout_seconds: float = 30.0
    max_retries: int = 3
    default_retry_after_seconds: float = 60.0
    max_rate_limit_waits: int | None = None
    token_expiry_buffer_seconds: int = 60
    default_token_lifetime_seconds: int = 3600
    rolls_page_size: int = 100
    preferences_path: Path = Path.home() / ".roll_publisher" / "preferences.json"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_scopes(raw: str | None) -> list[str]:
    """Split a space-delimited scope string into scope names."""
    if raw is None:
        return []
    return [scope for scope in raw.split() if scope]
