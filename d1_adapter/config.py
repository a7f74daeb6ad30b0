"""
Configuration settings for the D1 adapter.

Uses Pydantic Settings to load the Cloudflare account/database identifiers,
the API token, adapter behaviour flags and logging options from the
environment (or a local `.env` file).
"""
from __future__ import annotations

from functools import lru_cache

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Cloudflare D1
    account_id: str = Field("", alias="D1_ACCOUNT_ID")
    database_id: str = Field("", alias="D1_DATABASE_ID")
    api_token: SecretStr = Field(SecretStr(""), alias="D1_API_TOKEN")
    api_base_url: str = Field("https://api.cloudflare.com/client/v4", alias="D1_API_BASE_URL")
    http_timeout_seconds: float = Field(30.0, alias="D1_HTTP_TIMEOUT_SECONDS")

    # Adapter behaviour
    autocreate_tables: bool = Field(True, alias="D1_AUTOCREATE_TABLES")
    debug: bool = Field(False, alias="D1_DEBUG")
    raw: bool = Field(False, alias="D1_RAW")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def database_url(self) -> str:
        """Base URL of the D1 database resource; queries are posted to `<url>/query`."""
        return (
            f"{self.api_base_url.rstrip('/')}/accounts/{self.account_id}"
            f"/d1/database/{self.database_id}"
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]
