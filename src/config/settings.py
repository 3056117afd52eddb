"""Application-wide configuration loading and validation."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Centralized environment configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    environment: Literal["local", "dev", "prod"] = Field(default="local")
    log_level: str = Field(default="INFO")

    # Twilio (Voice)
    twilio_account_sid: str | None = Field(default=None)
    twilio_auth_token: str | None = Field(default=None)
    twilio_api_key: str | None = Field(default=None, description="API key SID (SK...).")
    twilio_api_secret: str | None = Field(default=None)
    twilio_twiml_app_sid: str | None = Field(
        default=None,
        description="TwiML App (AP...) whose voice URL points at /api/v1/phone/voice.",
    )
    twilio_from_number: str | None = Field(default=None, description="E.164, e.g. +1555...")
    public_base_url: str | None = Field(
        default=None,
        description="Public base URL for Twilio webhooks (e.g. https://<ngrok>.ngrok-free.app).",
    )
    access_token_ttl_seconds: int = Field(default=3600, ge=60)

    # Inbound routing
    default_client_identity: str = Field(
        default="user",
        description="Browser client identity that receives inbound calls.",
    )

    # Admission control
    rate_limit_max_attempts: int = Field(default=5, ge=1)
    rate_limit_window_seconds: float = Field(default=60.0, gt=0)
    rate_limit_stale_seconds: float = Field(default=3600.0, gt=0)
    rate_limit_sweep_interval_seconds: float = Field(default=300.0, gt=0)

    # Live call bookkeeping
    call_ttl_seconds: float = Field(
        default=4 * 3600.0,
        gt=0,
        description="Drop tracked calls that have not received a webhook for this long.",
    )
    call_sweep_interval_seconds: float = Field(default=60.0, gt=0)

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.strip().upper() or "INFO"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance."""

    return Settings()
