"""Configuration models using Pydantic."""

from typing import Literal, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """Global engine configuration settings."""

    model_config = SettingsConfigDict(
        env_prefix="LAM_",
        case_sensitive=False,
        validate_assignment=True,
    )

    # Logging configuration
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_format: Literal["json", "plain"] = Field(
        default="json",
        description="Log format (json, plain)"
    )

    # Action execution configuration
    action_execution_timeout: float = Field(
        default=30,
        ge=1,
        le=600,
        description="Maximum time a single action may run, in seconds"
    )
    ambiguous_match_policy: Literal["most_recent", "reject"] = Field(
        default="most_recent",
        description="What to do when a name lookup matches several entities"
    )

    # Undo configuration
    undo_window_seconds: int = Field(
        default=300,
        ge=5,
        le=900,
        description="How long the last run stays undoable, in seconds"
    )

    # Rate limiting
    rate_limit_runs: int = Field(
        default=30,
        ge=1,
        description="Maximum runs per minute per tenant at the HTTP surface"
    )

    # HTTP control surface
    api_host: str = Field(
        default="0.0.0.0",
        description="Interface for the HTTP control surface"
    )
    api_port: int = Field(
        default=8080,
        ge=1024,
        le=65535,
        description="Port for the HTTP control surface"
    )

    # Metrics configuration
    metrics_enabled: bool = Field(
        default=True,
        description="Enable Prometheus metrics"
    )
    metrics_port: int = Field(
        default=9090,
        ge=1024,
        le=65535,
        description="Port for Prometheus metrics server"
    )

    # Outbound gateways
    gateway_timeout: float = Field(
        default=10,
        ge=1,
        le=120,
        description="Timeout for SMS and email provider requests, in seconds"
    )
    twilio_account_sid: Optional[str] = Field(
        default=None,
        description="Twilio account SID used for outbound SMS"
    )
    twilio_auth_token: Optional[str] = Field(
        default=None,
        description="Twilio auth token"
    )
    twilio_from_number: Optional[str] = Field(
        default=None,
        description="Sender phone number in E.164 format"
    )
    twilio_base_url: str = Field(
        default="https://api.twilio.com",
        description="Twilio REST API base URL"
    )
    resend_api_key: Optional[str] = Field(
        default=None,
        description="Resend API key used for outbound email"
    )
    email_from_address: Optional[str] = Field(
        default=None,
        description="Sender address for outbound email"
    )
    resend_base_url: str = Field(
        default="https://api.resend.com",
        description="Resend REST API base URL"
    )
