import os
from pathlib import Path

from loguru import logger
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def get_database_url() -> str:
    """Get database URL, using absolute path for SQLite to avoid path resolution issues.

    ⚠️ WARNING: SQLite is only meant for local development and tests.
    Set DATABASE_URL to the hosted PostgreSQL instance in any shared environment.
    """
    db_url = os.getenv("DATABASE_URL", "")
    if db_url:
        logger.info(f"Using DATABASE_URL from environment: {db_url}")
        return db_url

    db_path = Path(__file__).parent.parent.parent / "gameplan.db"
    abs_path = db_path.resolve()
    db_url = f"sqlite:///{abs_path}"
    logger.warning(
        f"⚠️ Using SQLite database (LOCAL DEV ONLY): {db_url}\n"
        "⚠️ Set DATABASE_URL environment variable to use PostgreSQL."
    )
    return db_url


class Settings(BaseSettings):
    database_url: str = Field(
        default_factory=get_database_url,
        validation_alias="DATABASE_URL",
    )
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_file: str | None = Field(default=None, validation_alias="LOG_FILE")
    week_starts_on: int = Field(
        default=0,
        validation_alias="PLAN_WEEK_STARTS_ON",
        description="Weekday (0=Sunday .. 6=Saturday) that starts a week for week overrides",
    )
    recap_cycle_days: int = Field(
        default=42,
        validation_alias="PLAN_RECAP_CYCLE_DAYS",
        description="Length of the recap cycle in days (6 weeks)",
    )
    default_sport: str = Field(default="baseball", validation_alias="PLAN_DEFAULT_SPORT")
    max_range_days: int = Field(
        default=62,
        validation_alias="PLAN_MAX_RANGE_DAYS",
        description="Largest date range a single aggregation pass may cover",
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Validate that log level is one of the standard logging levels."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper_value = value.upper()
        if upper_value not in valid_levels:
            logger.warning(f"Invalid LOG_LEVEL '{value}'. Valid levels are: {', '.join(valid_levels)}. Defaulting to INFO.")
            return "INFO"
        return upper_value

    @field_validator("week_starts_on")
    @classmethod
    def validate_week_starts_on(cls, value: int) -> int:
        """Week start must be a weekday number in the 0 (Sunday) - 6 (Saturday) range."""
        if not 0 <= value <= 6:
            logger.warning(f"Invalid PLAN_WEEK_STARTS_ON '{value}'. Defaulting to 0 (Sunday).")
            return 0
        return value

    @field_validator("default_sport")
    @classmethod
    def validate_default_sport(cls, value: str) -> str:
        """Only baseball and softball are supported sports."""
        lowered = value.lower()
        if lowered not in {"baseball", "softball"}:
            logger.warning(f"Invalid PLAN_DEFAULT_SPORT '{value}'. Defaulting to baseball.")
            return "baseball"
        return lowered

    @field_validator("recap_cycle_days", "max_range_days")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("Cycle and range lengths must be positive")
        return value


settings = Settings()
