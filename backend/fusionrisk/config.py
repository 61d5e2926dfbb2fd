"""
Configuration management for the Fusion Stability pipeline using Pydantic Settings.

Loads configuration from environment variables with type validation and sane defaults.
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


@dataclass(frozen=True)
class LookbackWindow:
    """How far back a handler reads the metrics table.

    max_records caps the row count (most recent first); max_age, when set,
    additionally drops records older than now - max_age.
    """

    max_records: int
    max_age: Optional[timedelta] = None


class Settings(BaseSettings):
    """Application configuration with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_env: str = Field(default="development", description="Environment: development, staging, production")
    debug: bool = Field(default=False, description="Debug mode")
    allowed_origins: str = Field(default="*", description="CORS allowed origins (comma-separated)")

    # Database
    database_url: str = Field(description="SQLAlchemy connection URL (PostgreSQL in production)")

    # Internal handler authentication
    internal_webhook_token: str = Field(default="", description="Shared secret expected in X-Internal-Token")

    # Collaborators
    functions_base_url: str = Field(
        default="http://localhost:54321/functions/v1",
        description="Base URL of the deployed handler functions",
    )
    reinforcement_sync_url: str = Field(
        default="",
        description="Reinforcement sync endpoint (defaults to <functions_base_url>/cffe-reinforcement-sync)",
    )
    collaborator_transport: str = Field(
        default="inprocess",
        description="How the Risk Engine and Calibration Loop reach upstream handlers: inprocess or http",
    )
    http_timeout_seconds: float = Field(default=10.0, description="Timeout for outbound HTTP calls")

    # Lookback windows
    baseline_max_records: int = Field(default=500, description="Records read by the baseline analyzer")
    forecast_max_records: int = Field(default=500, description="Records read by the forecaster")
    calibration_max_records: int = Field(default=100, description="Records read by the calibration loop")
    lookback_max_age_hours: Optional[int] = Field(default=None, description="Optional age bound for all lookbacks")

    # Logging
    log_level: str = Field(default="INFO", description="Log level: DEBUG, INFO, WARNING, ERROR")
    log_format: str = Field(default="json", description="Log format: json or text")
    log_file: str = Field(default="logs/fusionrisk.log", description="Log file path (empty to disable)")

    # Error monitoring
    sentry_dsn: str = Field(default="", description="Sentry DSN (empty to disable)")

    @field_validator("allowed_origins")
    @classmethod
    def parse_allowed_origins(cls, v: str) -> List[str]:
        """Parse comma-separated allowed origins into a list."""
        return [origin.strip() for origin in v.split(",")]

    @field_validator("collaborator_transport")
    @classmethod
    def validate_transport(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("inprocess", "http"):
            raise ValueError("collaborator_transport must be 'inprocess' or 'http'")
        return v

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.app_env == "production"

    @property
    def is_development(self) -> bool:
        """Check if running in development environment."""
        return self.app_env == "development"

    @property
    def sync_endpoint(self) -> str:
        """Resolved reinforcement sync URL."""
        if self.reinforcement_sync_url:
            return self.reinforcement_sync_url
        return f"{self.functions_base_url.rstrip('/')}/cffe-reinforcement-sync"

    def _lookback(self, max_records: int) -> LookbackWindow:
        max_age = None
        if self.lookback_max_age_hours:
            max_age = timedelta(hours=self.lookback_max_age_hours)
        return LookbackWindow(max_records=max_records, max_age=max_age)

    @property
    def baseline_lookback(self) -> LookbackWindow:
        return self._lookback(self.baseline_max_records)

    @property
    def forecast_lookback(self) -> LookbackWindow:
        return self._lookback(self.forecast_max_records)

    @property
    def calibration_lookback(self) -> LookbackWindow:
        return self._lookback(self.calibration_max_records)


# Global settings instance
settings = Settings()
