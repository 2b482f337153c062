"""Pydantic models for request and response validation."""

from datetime import date, datetime, timezone
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from quantara.config import DEFAULT_USER_NAME, MAX_BATCH_SIZE


def to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Convert an aware datetime to naive UTC; naive values are taken as UTC."""
    if value is not None and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class ReadingFields(BaseModel):
    """Metrics carried by one reading. Every metric is optional."""

    timestamp: Optional[datetime] = Field(None, description="ISO 8601 measurement time")
    heart_rate: Optional[int] = Field(None, ge=0, description="Heart rate in bpm")
    hrv: Optional[float] = Field(None, ge=0, description="Heart rate variability (SDNN, ms)")
    active_energy: Optional[float] = Field(None, ge=0, description="Active energy in kcal")
    steps: Optional[int] = Field(None, ge=0, description="Cumulative steps for the day")
    exercise_minutes: Optional[int] = Field(None, ge=0, description="Cumulative exercise minutes")
    min_heart_rate: Optional[int] = Field(None, ge=0)
    max_heart_rate: Optional[int] = Field(None, ge=0)
    avg_heart_rate: Optional[int] = Field(None, ge=0)
    wellness_score: Optional[int] = Field(None, ge=0, le=100)

    @field_validator("timestamp")
    @classmethod
    def convert_to_naive_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return to_naive_utc(v)


class SyncRequest(ReadingFields):
    """Request model for a single reading sync."""

    device_id: Optional[str] = Field(None, description="Device identifier")
    user_id: Optional[str] = Field(None, description="Internal user identifier")


class BatchSyncRequest(BaseModel):
    """Request model for batch reading sync."""

    device_id: Optional[str] = Field(None, description="Device identifier")
    user_id: Optional[str] = Field(None, description="Internal user identifier")
    readings: List[ReadingFields] = Field(..., description="Readings to store")

    @field_validator("readings")
    @classmethod
    def validate_readings(cls, v: List[ReadingFields]) -> List[ReadingFields]:
        """Validate batch size is reasonable."""
        if len(v) > MAX_BATCH_SIZE:
            raise ValueError(f"Batch size cannot exceed {MAX_BATCH_SIZE} readings")
        return v


class RegisterRequest(BaseModel):
    device_id: str = Field(..., min_length=1, description="Device identifier")
    name: Optional[str] = Field(None, description=f"Display name, defaults to '{DEFAULT_USER_NAME}'")


class BreathingRequest(BaseModel):
    device_id: Optional[str] = None
    user_id: Optional[str] = None
    duration_seconds: Optional[int] = Field(None, ge=0)
    pre_heart_rate: Optional[int] = Field(None, ge=0)
    post_heart_rate: Optional[int] = Field(None, ge=0)


class RecomputeRequest(BaseModel):
    dates: Optional[List[date]] = Field(
        None, description="Dates to rebuild; every date with readings when omitted"
    )


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    device_id: Optional[str] = None
    name: Optional[str] = None
    created_at: datetime
    last_sync: Optional[datetime] = None


class ReadingOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    timestamp: datetime
    heart_rate: Optional[int] = None
    hrv: Optional[float] = None
    active_energy: Optional[float] = None
    steps: Optional[int] = None
    exercise_minutes: Optional[int] = None
    min_heart_rate: Optional[int] = None
    max_heart_rate: Optional[int] = None
    avg_heart_rate: Optional[int] = None
    wellness_score: Optional[int] = None
    created_at: datetime


class DailySummaryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    date: date
    avg_heart_rate: Optional[int] = None
    avg_hrv: Optional[float] = None
    total_steps: Optional[int] = None
    total_calories: Optional[float] = None
    total_exercise_minutes: Optional[int] = None
    avg_wellness_score: Optional[int] = None
    recovery_status: str


class HeartRateZonesOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    date: date
    resting_minutes: int
    normal_minutes: int
    elevated_minutes: int
    high_minutes: int
    max_minutes: int


class BreathingSessionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    timestamp: datetime
    duration_seconds: Optional[int] = None
    pre_heart_rate: Optional[int] = None
    post_heart_rate: Optional[int] = None


class RegisterResponse(BaseModel):
    success: bool = True
    user: UserOut


class SyncResponse(BaseModel):
    success: bool = True
    reading_id: str
    user_id: str
    synced_at: datetime


class BatchSyncResponse(BaseModel):
    success: bool = True
    synced_count: int = Field(..., description="Number of readings stored")
    user_id: str


class ReadingsResponse(BaseModel):
    success: bool = True
    count: int
    readings: List[ReadingOut]


class LatestReadingResponse(BaseModel):
    success: bool = True
    reading: Optional[ReadingOut] = None


class DailySummaryResponse(BaseModel):
    success: bool = True
    date: date
    summary: Optional[DailySummaryOut] = None
    heart_rate_zones: Optional[HeartRateZonesOut] = None


class WeeklySummaryResponse(BaseModel):
    success: bool = True
    summaries: List[DailySummaryOut]


class RecomputeResponse(BaseModel):
    success: bool = True
    summaries: List[DailySummaryOut]


class HeartRateTrendPoint(BaseModel):
    date: date
    avg: Optional[float] = None
    min: Optional[int] = None
    max: Optional[int] = None


class AverageTrendPoint(BaseModel):
    date: date
    avg: float


class StepsTrendPoint(BaseModel):
    date: date
    total: Optional[int] = None


class TrendBundle(BaseModel):
    heart_rate: List[HeartRateTrendPoint]
    hrv: List[AverageTrendPoint]
    steps: List[StepsTrendPoint]
    wellness: List[AverageTrendPoint]


class TrendsResponse(BaseModel):
    success: bool = True
    days: int
    trends: TrendBundle


class InsightOut(BaseModel):
    type: str
    category: str
    message: str
    value: int


class InsightsResponse(BaseModel):
    success: bool = True
    insights: List[InsightOut]


class BreathingResponse(BaseModel):
    success: bool = True
    session_id: str
    heart_rate_change: Optional[int] = None


class BreathingHistoryResponse(BaseModel):
    success: bool = True
    sessions: List[BreathingSessionOut]
