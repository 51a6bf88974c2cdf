"""Configuration management for the timeclock payroll core."""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache

from dotenv import load_dotenv


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment."""

    database_url: str
    storage_backend: str
    engine_version: str

    # Location verification
    location_accuracy_threshold: float
    default_site_radius_meters: float
    accuracy_inflation_policy: str
    accuracy_inflation_cap_meters: float
    location_mismatch_threshold_meters: float

    # Payroll
    daily_overtime_threshold_hours: Decimal
    overtime_multiplier: Decimal
    holiday_multiplier: Decimal
    max_advance_ratio: Decimal

    # Scheduling
    schedule_timezone: str

    host: str
    port: int
    debug: bool

    @classmethod
    def from_env(cls) -> Settings:
        """Load settings from environment variables."""
        load_dotenv()

        return cls(
            database_url=os.getenv("DATABASE_URL", "sqlite:///./timeclock.db"),
            storage_backend=os.getenv("STORAGE_BACKEND", "memory").lower(),
            engine_version=os.getenv("ENGINE_VERSION", "1.0.0"),
            location_accuracy_threshold=float(
                os.getenv("LOCATION_ACCURACY_THRESHOLD", "100")
            ),
            default_site_radius_meters=float(
                os.getenv("DEFAULT_SITE_RADIUS_METERS", "50")
            ),
            accuracy_inflation_policy=os.getenv(
                "ACCURACY_INFLATION_POLICY", "full"
            ).lower(),
            accuracy_inflation_cap_meters=float(
                os.getenv("ACCURACY_INFLATION_CAP_METERS", "50")
            ),
            location_mismatch_threshold_meters=float(
                os.getenv("LOCATION_MISMATCH_THRESHOLD_METERS", "10000")
            ),
            daily_overtime_threshold_hours=Decimal(
                os.getenv("DAILY_OVERTIME_THRESHOLD_HOURS", "8")
            ),
            overtime_multiplier=Decimal(os.getenv("OVERTIME_MULTIPLIER", "1.5")),
            holiday_multiplier=Decimal(os.getenv("HOLIDAY_MULTIPLIER", "2.0")),
            max_advance_ratio=Decimal(os.getenv("MAX_ADVANCE_RATIO", "0.5")),
            schedule_timezone=os.getenv("SCHEDULE_TIMEZONE", "UTC"),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "8000")),
            debug=os.getenv("DEBUG", "false").lower() == "true",
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings.from_env()
