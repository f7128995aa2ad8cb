"""Application configuration model using pydantic-settings."""

from __future__ import annotations

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from campaign_sender.utils.validators import is_valid_url


class Config(BaseSettings):
    """Campaign configuration loaded from CAMPAIGN_* environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_prefix="CAMPAIGN_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    endpoint_url: str
    api_key: str
    extra_headers: dict[str, str] = {"Accept": "application/json"}
    template_name: str = "template_name"
    batch_size: int = 5
    concurrency_limit: int = 0
    rate_per_second: int = 0
    request_timeout: float = 30.0
    csv_delimiter: str = ","
    csv_has_header: bool = True
    log_level: str = "INFO"

    @field_validator("endpoint_url")
    @classmethod
    def validate_endpoint_url(cls, value: str) -> str:
        """Endpoint must be an absolute HTTP/HTTPS URL."""
        if not is_valid_url(value):
            msg = "endpoint_url must be an http or https URL"
            raise ValueError(msg)
        return value

    @field_validator("api_key")
    @classmethod
    def validate_api_key(cls, value: str) -> str:
        """API key must be non-empty."""
        if not value.strip():
            msg = "api_key must not be empty"
            raise ValueError(msg)
        return value

    @field_validator("batch_size")
    @classmethod
    def validate_batch_size(cls, value: int) -> int:
        """Batch size must be at least 1."""
        if value < 1:
            msg = "batch_size must be >= 1"
            raise ValueError(msg)
        return value

    @field_validator("concurrency_limit", "rate_per_second")
    @classmethod
    def validate_limits(cls, value: int) -> int:
        """Limits must be non-negative; 0 disables the limit."""
        if value < 0:
            msg = "limits must be >= 0 (0 disables the limit)"
            raise ValueError(msg)
        return value

    @field_validator("request_timeout")
    @classmethod
    def validate_request_timeout(cls, value: float) -> float:
        if value <= 0:
            msg = "request_timeout must be > 0"
            raise ValueError(msg)
        return value

    @field_validator("csv_delimiter")
    @classmethod
    def validate_csv_delimiter(cls, value: str) -> str:
        """Delimiter must be a single character."""
        if len(value) != 1:
            msg = "csv_delimiter must be a single character"
            raise ValueError(msg)
        return value

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Log level must be a valid Python logging level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_value = value.upper()
        if upper_value not in valid_levels:
            msg = f"log_level must be one of {', '.join(sorted(valid_levels))}"
            raise ValueError(msg)
        return upper_value
