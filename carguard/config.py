"""
Type-safe configuration using Pydantic Settings
Validates environment variables and provides sensible defaults
"""

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional

EMAIL_BACKENDS = ("smtp", "http", "log")


class AppConfig(BaseSettings):
    """
    Reminder service configuration with validation
    Automatically loads from environment variables and .env file
    """

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # Database settings
    database_url: str = Field(
        "sqlite:///carguard.db", description="SQLAlchemy database URL"
    )
    sql_echo: bool = Field(False, description="Log every SQL statement")

    # Reminder scheduling
    reminder_interval_seconds: int = Field(
        3600,
        ge=60,
        le=86400,
        description="Interval in seconds between reminder sweeps (default: hourly)",
    )
    reminder_startup_delay_seconds: float = Field(
        5,
        ge=0,
        le=600,
        description="Delay before the first sweep after startup",
    )
    reminder_send_delay_seconds: float = Field(
        0.5,
        ge=0,
        le=60,
        description="Pause between two emails within one sweep",
    )
    default_reminder_days: int = Field(
        30, ge=1, le=365, description="Lookahead window for newly created users"
    )

    # Email delivery
    email_backend: str = Field("log", description="smtp | http | log")
    email_from: str = Field(
        "CarGuard <reminders@carguard.local>", description="Sender address"
    )

    smtp_host: Optional[str] = Field(None, description="SMTP server host")
    smtp_port: int = Field(587, description="SMTP server port")
    smtp_username: Optional[str] = Field(None, description="SMTP login")
    smtp_password: Optional[str] = Field(None, description="SMTP password")
    smtp_use_ssl: bool = Field(
        False, description="Use implicit TLS instead of STARTTLS"
    )
    smtp_timeout: float = Field(10, gt=0, description="SMTP timeout in seconds")

    email_api_url: Optional[str] = Field(
        None, description="Transactional email HTTP endpoint"
    )
    email_api_key: Optional[str] = Field(None, description="Bearer token for the API")
    email_api_timeout: float = Field(
        10, gt=0, description="HTTP timeout in seconds"
    )

    # Logging
    log_level: str = Field("INFO", description="Root log level")

    @field_validator("email_backend")
    @classmethod
    def validate_email_backend(cls, v: str) -> str:
        """Normalise and check the email backend name"""
        v = v.strip().lower()
        if v not in EMAIL_BACKENDS:
            raise ValueError(
                f"EMAIL_BACKEND must be one of {', '.join(EMAIL_BACKENDS)} (got '{v}')"
            )
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        return v.strip().upper()

    @model_validator(mode="after")
    def validate_backend_settings(self) -> "AppConfig":
        """Make sure the selected backend has what it needs"""
        if self.email_backend == "smtp" and not self.smtp_host:
            raise ValueError("EMAIL_BACKEND=smtp requires SMTP_HOST to be set")
        if self.email_backend == "http" and not (
            self.email_api_url and self.email_api_key
        ):
            raise ValueError(
                "EMAIL_BACKEND=http requires EMAIL_API_URL and EMAIL_API_KEY"
            )
        return self


# Singleton instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """
    Get or create the global configuration instance

    Returns:
        AppConfig: Validated configuration

    Raises:
        ValidationError: If configuration is invalid
    """
    global _config
    if _config is None:
        _config = AppConfig()
    return _config


def reset_config() -> None:
    """Drop the cached configuration so the next get_config() re-reads the environment"""
    global _config
    _config = None
