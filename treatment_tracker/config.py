"""
Configuration management with environment variable support and validation.

Design principles:
- Environment-specific configs (dev, staging, prod)
- Validation at startup (fail fast)
- Type safety with Pydantic
- One reference time zone for every date computation
"""

import os
from functools import lru_cache
from typing import Literal, cast
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator

# Load environment variables from .env file
load_dotenv()

logger = structlog.get_logger(__name__)

Environment = Literal["development", "staging", "production"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class ClockConfig(BaseModel):
    """Reference time zone for 'today' and every calendar-date comparison."""

    timezone: str = Field(default="Asia/Seoul", description="IANA time zone name")

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"unknown time zone: {v}") from e
        return v


class DatabaseConfig(BaseModel):
    """Persistence backend selection."""

    backend: Literal["memory", "sqlalchemy"] = Field(
        default="sqlalchemy", description="Gateway implementation"
    )
    url: str = Field(
        default="sqlite+aiosqlite:///./assessments.db", description="SQLAlchemy async database URL"
    )
    echo: bool = Field(default=False, description="Log emitted SQL")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(default="INFO", description="Logging level")
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    environment: Environment = Field(default="development", description="Environment")
    debug: bool = Field(default=False, description="Enable debug mode")

    clock: ClockConfig = Field(default_factory=ClockConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


def _env_to_literal(val: str) -> Environment:
    v = val.strip().lower()
    if v in {"dev", "development"}:
        return "development"
    if v in {"stage", "staging"}:
        return "staging"
    return "production"


def _level_to_literal(val: str) -> LogLevel:
    v = val.strip().upper()
    return cast(LogLevel, v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO")


def _parse_bool(val: str | None, default: bool) -> bool:
    if val is None:
        return default
    return val.strip().lower() in {"1", "true", "yes", "on"}


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""
    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    backend = os.getenv("DATABASE_BACKEND", "sqlalchemy").strip().lower()

    return AppConfig(
        environment=environment,
        debug=debug,
        clock=ClockConfig(timezone=os.getenv("APP_TIMEZONE", "Asia/Seoul")),
        database=DatabaseConfig(
            backend="memory" if backend == "memory" else "sqlalchemy",
            url=os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./assessments.db"),
            echo=_parse_bool(os.getenv("DATABASE_ECHO"), False),
        ),
        logging=LoggingConfig(
            level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
            format="console" if debug else "json",
        ),
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()


def validate_config() -> AppConfig:
    """Validate configuration at startup."""
    try:
        config = get_config()
    except Exception as e:
        logger.error("configuration_invalid", error=str(e))
        raise

    logger.info(
        "configuration_loaded",
        environment=config.environment,
        timezone=config.clock.timezone,
        database_backend=config.database.backend,
    )
    return config
