"""Configuration settings for the biometric ingestion service."""

from functools import lru_cache
from typing import Dict, List, Literal, Tuple

from pydantic_settings import BaseSettings, SettingsConfigDict

SERVICE_NAME = "Quantara Watch API"
SERVICE_VERSION = "1.0.0"

DEFAULT_USER_NAME = "Watch User"

# Heart rate zones as (lower bound, column); each band runs up to the next bound
HEART_RATE_ZONES: List[Tuple[int, str]] = [
    (0, "resting_minutes"),
    (60, "normal_minutes"),
    (100, "elevated_minutes"),
    (140, "high_minutes"),
    (170, "max_minutes"),
]

# Recovery status from average HRV (strictly greater than the threshold)
RECOVERY_BREAKPOINTS: List[Tuple[float, str]] = [
    (65, "excellent"),
    (50, "good"),
    (35, "moderate"),
]
RECOVERY_FLOOR = "low"
RECOVERY_UNKNOWN = "unknown"

# Insight thresholds
INSIGHT_WINDOW = 100
HRV_HIGH_THRESHOLD = 60
HRV_LOW_THRESHOLD = 30
RESTING_HEART_RATE_CEILING = 70
RESTING_HEART_RATE_TARGET = 60
STEP_GOAL = 10_000

# Server-side wellness score (same formula as the watch app)
WELLNESS_BASE_SCORE = 50
WELLNESS_MAX_SCORE = 100
WELLNESS_BONUSES: Dict[str, List[Tuple[float, int]]] = {
    "hrv": [(40, 15), (60, 10)],
    "steps": [(5000, 10), (10_000, 10)],
}
WELLNESS_HEART_RATE_BAND: Tuple[int, int] = (50, 100)
WELLNESS_HEART_RATE_BONUS = 5

# Query defaults
DEFAULT_READINGS_LIMIT = 100
DEFAULT_BREATHING_LIMIT = 30
DEFAULT_TREND_DAYS = 7
WEEKLY_SUMMARY_DAYS = 7

# Batch ingestion ceiling
MAX_BATCH_SIZE = 10_000


class Settings(BaseSettings):
    """Environment-driven settings (prefix ``QUANTARA_``)."""

    model_config = SettingsConfigDict(env_prefix="QUANTARA_", env_file=".env", extra="ignore")

    environment: Literal["development", "production"] = "development"
    database_url: str = "sqlite:///quantara_watch.db"

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # Pipeline policies
    rollup_on_batch: bool = False
    zone_date_policy: Literal["processing", "reading"] = "processing"
    insight_hrv_averaging: Literal["null_as_zero", "present_only"] = "null_as_zero"
    derive_wellness_score: bool = False

    @property
    def debug(self) -> bool:
        return self.environment == "development"


@lru_cache
def get_settings() -> Settings:
    return Settings()
