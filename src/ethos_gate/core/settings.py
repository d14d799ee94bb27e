"""Application settings and configuration.

This module defines all configuration options for the EthosGate service.
Settings are loaded from environment variables with sensible defaults; the
credential signing secret has no default and must be provided.
"""

import json
from typing import Annotated

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Settings can be overridden via environment variables or .env files.
    """

    # Application metadata
    app_name: str = Field(default="EthosGate", alias="APP_NAME")
    app_version: str = Field(default="1.0.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Access credentials
    jwt_secret: str = Field(alias="JWT_SECRET")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    access_token_ttl_seconds: int = Field(default=300, alias="ACCESS_TOKEN_TTL_SECONDS")

    # Signed challenge freshness and replay protection
    signature_max_age_seconds: int = Field(default=60, alias="SIGNATURE_MAX_AGE_SECONDS")
    nonce_ttl_seconds: int = Field(default=300, alias="NONCE_TTL_SECONDS")
    redis_url: str | None = Field(default=None, alias="REDIS_URL")

    # Upstream reputation provider
    ethos_api_urls: Annotated[list[str], NoDecode] = Field(
        default=["https://api.ethos.network/api/v2"],
        alias="ETHOS_API_URLS",
    )
    ethos_client_id: str = Field(default="ethos-reputation-gate", alias="ETHOS_CLIENT_ID")
    upstream_timeout_seconds: float = Field(default=8.0, alias="UPSTREAM_TIMEOUT_SECONDS")

    # Reputation cache
    cache_ttl_seconds: float = Field(default=300.0, alias="CACHE_TTL_SECONDS")
    cache_max_size: int = Field(default=1000, alias="CACHE_MAX_SIZE")

    # Rate limiting
    rate_limit_window_seconds: float = Field(default=60.0, alias="RATE_LIMIT_WINDOW_SECONDS")
    rate_limit_per_ip: int = Field(default=60, alias="RATE_LIMIT_PER_IP")
    rate_limit_per_address: int = Field(default=30, alias="RATE_LIMIT_PER_ADDRESS")
    rate_limit_max_entries: int = Field(default=10_000, alias="RATE_LIMIT_MAX_ENTRIES")
    rate_limit_sweep_seconds: float = Field(default=300.0, alias="RATE_LIMIT_SWEEP_SECONDS")
    rate_limit_retry_after_seconds: int = Field(
        default=60,
        alias="RATE_LIMIT_RETRY_AFTER_SECONDS",
    )

    # Background cache maintenance
    maintenance_interval_seconds: float = Field(
        default=600.0,
        alias="MAINTENANCE_INTERVAL_SECONDS",
    )

    # CORS configuration for web frontend access
    allowed_origins: Annotated[list[str], NoDecode] = Field(
        default=["http://localhost:5173", "http://localhost:3000"],
        alias="ALLOWED_ORIGINS",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @field_validator("jwt_secret")
    @classmethod
    def _require_secret(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("JWT_SECRET must be set to a non-empty value")
        return value

    @field_validator("ethos_api_urls", "allowed_origins", mode="before")
    @classmethod
    def _split_list(cls, value: object) -> object:
        """Accept a JSON list or a comma-separated string."""
        if not isinstance(value, str):
            return value
        if value.lstrip().startswith("["):
            return json.loads(value)
        return [item.strip() for item in value.split(",") if item.strip()]

    @property
    def public_config(self) -> dict[str, object]:
        """Return a sanitized snapshot of runtime configuration.

        Excludes secrets and connection strings; suitable for client UIs.
        """
        return {
            "app": {"name": self.app_name, "version": self.app_version},
            "credentials": {
                "algorithm": self.jwt_algorithm,
                "ttl_seconds": self.access_token_ttl_seconds,
            },
            "signatures": {
                "max_age_seconds": self.signature_max_age_seconds,
                "nonce_ttl_seconds": self.nonce_ttl_seconds,
                "durable_nonce_store": self.redis_url is not None,
            },
            "rate_limits": {
                "window_seconds": self.rate_limit_window_seconds,
                "per_ip": self.rate_limit_per_ip,
                "per_address": self.rate_limit_per_address,
                "retry_after_seconds": self.rate_limit_retry_after_seconds,
            },
            "cache": {
                "ttl_seconds": self.cache_ttl_seconds,
                "max_size": self.cache_max_size,
            },
        }


settings = Settings()  # type: ignore[call-arg]
