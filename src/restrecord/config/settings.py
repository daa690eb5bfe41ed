"""Transport settings using Pydantic Settings.

Usage:
    from restrecord.config import TransportSettings

    # Load from environment variables (RESTRECORD_HTTP_*)
    settings = TransportSettings()

    # Or override with explicit values
    settings = TransportSettings(base_url="https://api.example.com", timeout=5)
"""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class TransportSettings(BaseSettings):  # type: ignore[misc]
    """Configuration for the default httpx transport.

    Attributes:
        base_url: Prefix for relative request URLs.
        timeout: Request timeout in seconds.
        headers: Headers sent with every request.
        follow_redirects: Whether redirects are followed.

    Environment Variables:
        RESTRECORD_HTTP_BASE_URL
        RESTRECORD_HTTP_TIMEOUT
        RESTRECORD_HTTP_HEADERS (JSON object)
        RESTRECORD_HTTP_FOLLOW_REDIRECTS
    """

    model_config = SettingsConfigDict(
        env_prefix="RESTRECORD_HTTP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    base_url: str = ""
    timeout: float = 30.0
    headers: dict[str, str] = Field(default_factory=dict)
    follow_redirects: bool = False
