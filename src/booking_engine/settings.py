from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _validate_http_url(v: str) -> str:
    if not v.startswith(("http://", "https://")):
        raise ValueError("Base URL must start with http:// or https://")
    return v.rstrip("/")


class EngineSettings(BaseSettings):
    environment: str = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["text", "json"] = "text"
    # Capped at WARNING; set as a JSON list, e.g. BOOKING_QUIET_LOGGERS='["httpx"]'
    quiet_loggers: list[str] = Field(default_factory=lambda: ["httpx", "httpcore"])

    # Quiet period after the last trigger before a rate fetch is issued
    recalc_debounce_seconds: float = Field(
        default=0.3,
        ge=0.0,
        le=5.0,
        description="Debounce window (seconds) that coalesces bursts of booking edits",
    )

    model_config = SettingsConfigDict(env_prefix="BOOKING_")


class BookingAPISettings(BaseSettings):
    base_url: str = "http://localhost:8000"
    token: str = ""
    timeout: float = Field(default=15.0, gt=0.0, le=120.0)
    max_retries: int = Field(default=2, ge=0, le=10)
    retry_base_delay: float = Field(default=0.5, ge=0.0, le=5.0)

    model_config = SettingsConfigDict(env_prefix="BOOKING_API_")

    @field_validator("base_url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        return _validate_http_url(v)


class DirectionsSettings(BaseSettings):
    base_url: str = "https://maps.googleapis.com"
    api_key: str = ""
    timeout: float = Field(default=10.0, gt=0.0, le=60.0)

    model_config = SettingsConfigDict(env_prefix="DIRECTIONS_")

    @field_validator("base_url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        return _validate_http_url(v)

    @model_validator(mode="after")
    def validate_credentials_provided(self) -> "DirectionsSettings":
        if not self.api_key:
            raise ValueError("Required credential not provided: DIRECTIONS_API_KEY")
        return self


class Settings(BaseSettings):
    engine: EngineSettings = Field(default_factory=EngineSettings)
    booking_api: BookingAPISettings = Field(default_factory=BookingAPISettings)
    directions: DirectionsSettings = Field(default_factory=DirectionsSettings)

    model_config = SettingsConfigDict(
        env_nested_delimiter="__",
        case_sensitive=False,
    )


def get_settings() -> Settings:
    """Load and validate settings from environment variables."""
    return Settings()
