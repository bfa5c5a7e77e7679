"""
Configuration management with environment variable support and validation.

Design principles:
- Environment-specific configs (dev, staging, prod)
- Validation at startup (fail fast)
- Type safety with Pydantic
- Local-first defaults (a SQLite file next to the app)
"""

import os
from datetime import UTC, tzinfo
from functools import lru_cache
from typing import Literal, cast
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator
from rich.console import Console
from rich.table import Table

from health_tracker.domain.models import ClassificationThresholds

# Load environment variables from .env file
load_dotenv()

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
Environment = Literal["development", "staging", "production"]


class StoreConfig(BaseModel):
    """Record store configuration."""

    url: str = Field(default="sqlite:///./health_tracker.db", description="SQLAlchemy URL")
    echo: bool = Field(default=False, description="Echo SQL statements")


class DisplayConfig(BaseModel):
    """How instants are rendered and which calendar they are bucketed in."""

    date_format: str = Field(default="%m/%d/%Y", description="strftime format for dates")
    time_format: str = Field(default="%H:%M", description="strftime format for clock times")
    timezone: str | None = Field(
        default=None, description="IANA timezone name; local time when unset"
    )
    first_weekday: int = Field(
        default=6, ge=0, le=6, description="First day of week, 0=Monday .. 6=Sunday"
    )

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str | None) -> str | None:
        if v is None or v.upper() == "UTC":
            return v
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {v}") from e
        return v

    def zone(self) -> tzinfo | None:
        """Configured zone, or None for the system local zone."""
        if not self.timezone:
            return None
        if self.timezone.upper() == "UTC":
            return UTC
        return ZoneInfo(self.timezone)


class AnalyticsConfig(BaseModel):
    """Window lengths, list limits and classification bands."""

    today_point_limit: int = Field(default=10, gt=0, description="Points in the today chart")
    history_limit: int = Field(default=5, gt=0, description="Readings in the history list")
    weekly_days: int = Field(default=7, gt=0, description="Lookback of the weekly window")
    monthly_days: int = Field(default=30, gt=0, description="Lookback of the monthly window")
    bradycardia_below: int = Field(default=60, gt=0, description="Upper bound of bradycardia")
    tachycardia_above: int = Field(default=100, gt=0, description="Lower bound of tachycardia")

    @model_validator(mode="after")
    def thresholds_ordered(self) -> "AnalyticsConfig":
        if self.bradycardia_below > self.tachycardia_above:
            raise ValueError("bradycardia_below must not exceed tachycardia_above")
        return self

    @property
    def thresholds(self) -> ClassificationThresholds:
        return ClassificationThresholds(
            bradycardia_below=self.bradycardia_below,
            tachycardia_above=self.tachycardia_above,
        )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(default="INFO", description="Logging level")
    format: Literal["json", "console"] = Field(default="json", description="Logging format")


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    environment: Environment = Field(default="development", description="Environment")
    debug: bool = Field(default=False, description="Enable debug mode")

    store: StoreConfig = Field(default_factory=StoreConfig)
    display: DisplayConfig = Field(default_factory=DisplayConfig)
    analytics: AnalyticsConfig = Field(default_factory=AnalyticsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""

    def _env_to_literal(val: str) -> Environment:
        v = val.strip().lower()
        if v in {"dev", "development"}:
            return "development"
        if v in {"stage", "staging"}:
            return "staging"
        return "production"

    def _level_to_literal(val: str) -> LogLevel:
        v = val.strip().upper()
        return cast(
            LogLevel,
            v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO",
        )

    def _parse_bool(val: str | None, default: bool) -> bool:
        if val is None:
            return default
        return val.strip().lower() in {"1", "true", "yes", "on"}

    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    store_config = StoreConfig(
        url=os.getenv("DATABASE_URL", "sqlite:///./health_tracker.db"),
        echo=_parse_bool(os.getenv("DATABASE_ECHO"), False),
    )

    display_config = DisplayConfig(
        date_format=os.getenv("DISPLAY_DATE_FORMAT", "%m/%d/%Y"),
        time_format=os.getenv("DISPLAY_TIME_FORMAT", "%H:%M"),
        timezone=os.getenv("DISPLAY_TIMEZONE") or None,
        first_weekday=int(os.getenv("FIRST_WEEKDAY", "6")),
    )

    analytics_config = AnalyticsConfig(
        today_point_limit=int(os.getenv("TODAY_POINT_LIMIT", "10")),
        history_limit=int(os.getenv("HISTORY_LIMIT", "5")),
        weekly_days=int(os.getenv("WEEKLY_WINDOW_DAYS", "7")),
        monthly_days=int(os.getenv("MONTHLY_WINDOW_DAYS", "30")),
        bradycardia_below=int(os.getenv("BRADYCARDIA_BELOW_BPM", "60")),
        tachycardia_above=int(os.getenv("TACHYCARDIA_ABOVE_BPM", "100")),
    )

    logging_config = LoggingConfig(
        level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")),
        format="console" if debug else "json",
    )

    return AppConfig(
        environment=environment,
        debug=debug,
        store=store_config,
        display=display_config,
        analytics=analytics_config,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()


def print_config_summary(console: Console | None = None) -> None:
    """Print configuration summary for debugging."""
    config = get_config()
    console = console or Console()

    table = Table(title="Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")

    table.add_row("Environment", config.environment)
    table.add_row("Debug", str(config.debug))
    table.add_row("Log level", config.logging.level)
    table.add_row("Store URL", config.store.url)
    table.add_row("Timezone", config.display.timezone or "local")
    table.add_row("First weekday", str(config.display.first_weekday))
    table.add_row(
        "Normal band",
        f"{config.analytics.bradycardia_below}-{config.analytics.tachycardia_above} bpm",
    )

    console.print(table)


if __name__ == "__main__":
    print_config_summary()
