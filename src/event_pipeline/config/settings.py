"""
Module: settings.py
Description: Pipeline configuration using pydantic-settings.

Configures the publisher, queue binding, consumer and backend from
environment variables with validation and defaults. Supports .env files
for local development.
"""

from typing import Optional

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # Application settings
    app_name: str = Field(default="Event Pipeline", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    log_level: str = Field(default="INFO", description="Logging level")

    # AWS settings
    aws_region: str = Field(default="us-east-1", description="AWS region")
    stage: str = Field(default="dev", description="Deployment stage")

    # Queue binding settings
    queue_url: Optional[str] = Field(
        default=None,
        description="URL of the SQS event queue"
    )
    batch_size: int = Field(
        default=10,
        ge=1,
        le=10,
        description="Maximum messages delivered to the consumer per batch"
    )
    visibility_timeout: int = Field(
        default=300,
        ge=0,
        le=43200,
        description="Seconds a dequeued message stays invisible to other consumers"
    )
    retention_period_days: int = Field(
        default=14,
        ge=1,
        le=14,
        description="Days an unacknowledged message is retained before purge"
    )
    wait_time_seconds: int = Field(
        default=0,
        ge=0,
        le=20,
        description="Long-poll wait when dequeuing from SQS"
    )

    # Publisher settings
    default_message_data: str = Field(
        default="Hello from Publisher",
        description="Message data used when the inbound body is empty"
    )

    # Backend settings
    backend_target: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("backend_target", "backend_function_name"),
        description="Backend Lambda function name or HTTP URL"
    )
    backend_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        le=30,
        description="Timeout for a single synchronous backend invocation"
    )
    backend_min_delay_ms: float = Field(
        default=500.0,
        ge=0,
        description="Lower bound of the simulated backend processing delay"
    )
    backend_max_delay_ms: float = Field(
        default=1500.0,
        ge=0,
        description="Upper bound of the simulated backend processing delay"
    )
    backend_failure_policy: str = Field(
        default="accept",
        description="Consumer handling of logical backend failures (accept|escalate)"
    )

    # Metrics settings
    metrics_namespace: str = Field(
        default="EventPipeline",
        description="CloudWatch namespace for custom metrics"
    )

    @field_validator('queue_url')
    @classmethod
    def validate_queue_url(cls, v: Optional[str]) -> Optional[str]:
        """Validate the queue URL is an HTTP(S) URL when provided."""
        if v is None or v == "":
            return None
        if not v.startswith(('http://', 'https://')):
            raise ValueError("queue_url must be a valid HTTP/HTTPS URL")
        return v

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a valid logging level."""
        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of: {', '.join(valid_levels)}")
        return v.upper()

    @field_validator('backend_failure_policy')
    @classmethod
    def validate_failure_policy(cls, v: str) -> str:
        """Validate the backend failure policy name."""
        if v.lower() not in ('accept', 'escalate'):
            raise ValueError("backend_failure_policy must be 'accept' or 'escalate'")
        return v.lower()

    @model_validator(mode='after')
    def validate_delay_range(self) -> 'Settings':
        """Ensure the simulated delay range is well-formed."""
        if self.backend_min_delay_ms > self.backend_max_delay_ms:
            raise ValueError("backend_min_delay_ms must not exceed backend_max_delay_ms")
        return self


# Global settings instance
settings = Settings()
