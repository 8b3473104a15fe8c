"""
Settings Module
===============

Pydantic-based configuration with environment variable loading.

Version: 0.1.0
"""

from enum import Enum
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment environment."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TESTING = "testing"


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class ScoringSettings(BaseSettings):
    """Risk scoring engine configuration."""

    model_config = SettingsConfigDict(env_prefix="SCORING_")

    # Allowed deviation of a weight set from 1.0
    weight_tolerance: float = Field(default=0.01, ge=0.0, le=1.0)

    # AI answers below this confidence need manual review
    low_confidence_threshold: float = Field(default=0.6, ge=0.0, le=1.0)

    # Evidence tier multipliers
    tier_0_multiplier: float = Field(default=0.6, ge=0.0, le=1.0)
    tier_1_multiplier: float = Field(default=0.8, ge=0.0, le=1.0)
    tier_2_multiplier: float = Field(default=1.0, ge=0.0, le=1.0)

    # Categories scoring below their threshold produce a gap
    default_gap_threshold: float = Field(default=60.0, ge=0.0, le=100.0)
    gap_thresholds: dict[str, float] = Field(default_factory=dict)

    # How long a submission waits for selected document analyses
    analysis_timeout_seconds: float = Field(default=300.0, gt=0.0)

    # Alternate category rule file (defaults to the bundled rules)
    category_rules_path: Path | None = None


class CORSSettings(BaseSettings):
    """CORS configuration."""

    model_config = SettingsConfigDict(env_prefix="CORS_")

    origins: str = "http://localhost:3000,http://localhost:5173"
    allow_credentials: bool = True

    @property
    def origins_list(self) -> list[str]:
        """Parse origins string into list."""
        return [o.strip() for o in self.origins.split(",") if o.strip()]


class Settings(BaseSettings):
    """
    Main application settings.

    Loads configuration from environment variables with sensible defaults.
    Use the global `settings` singleton or call `get_settings()`.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # General
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = True
    log_level: LogLevel = LogLevel.INFO

    # Service
    service_name: str = "risk-engine"
    port: int = Field(default=8010, alias="RISK_ENGINE_PORT")

    # Scoring
    scoring: ScoringSettings = Field(default_factory=ScoringSettings)

    # Security
    cors: CORSSettings = Field(default_factory=CORSSettings)

    @field_validator("log_level", mode="before")
    @classmethod
    def uppercase_log_level(cls, v: str | LogLevel) -> LogLevel:
        """Ensure log level is uppercase."""
        if isinstance(v, str):
            return LogLevel(v.upper())
        return v

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == Environment.DEVELOPMENT

    @property
    def is_production(self) -> bool:
        """Check if running in production mode."""
        return self.environment == Environment.PRODUCTION

    @property
    def is_testing(self) -> bool:
        """Check if running in test mode."""
        return self.environment == Environment.TESTING


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Returns:
        Settings: Application settings singleton.
    """
    return Settings()
