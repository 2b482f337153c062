"""SQLAlchemy tables for users, readings and the per-day rollups."""

import datetime as dt
import uuid
from typing import Optional

from sqlalchemy import Date, DateTime, Float, ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


def new_id() -> str:
    return str(uuid.uuid4())


def utcnow() -> dt.datetime:
    """Naive UTC now, the form every timestamp column stores."""
    return dt.datetime.now(dt.timezone.utc).replace(tzinfo=None)


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    device_id: Mapped[Optional[str]] = mapped_column(String(128), unique=True, nullable=True)
    name: Mapped[Optional[str]] = mapped_column(String(128), nullable=True)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=utcnow)
    last_sync: Mapped[Optional[dt.datetime]] = mapped_column(DateTime, nullable=True)


class Reading(Base):
    """One biometric sample. Rows are never updated or deleted."""

    __tablename__ = "readings"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    timestamp: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False)
    # Calendar day of ``timestamp``, stored so rollups can filter on an index
    day: Mapped[dt.date] = mapped_column(Date, nullable=False)

    heart_rate: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    hrv: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    active_energy: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    steps: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    exercise_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    min_heart_rate: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    max_heart_rate: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    avg_heart_rate: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    wellness_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=utcnow)

    __table_args__ = (
        Index("ix_readings_user_timestamp", "user_id", "timestamp"),
        Index("ix_readings_user_day", "user_id", "day"),
    )


class DailySummary(Base):
    __tablename__ = "daily_summaries"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)

    avg_heart_rate: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    avg_hrv: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    total_steps: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    total_calories: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    total_exercise_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    avg_wellness_score: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    recovery_status: Mapped[str] = mapped_column(String(16), nullable=False)

    created_at: Mapped[dt.datetime] = mapped_column(DateTime, default=utcnow)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime, default=utcnow)

    __table_args__ = (UniqueConstraint("user_id", "date", name="uq_daily_summary_user_date"),)


class HeartRateZones(Base):
    """Per-day zone counters. One unit is one qualifying reading."""

    __tablename__ = "heart_rate_zones"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)

    resting_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    normal_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    elevated_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    high_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    max_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (UniqueConstraint("user_id", "date", name="uq_heart_rate_zones_user_date"),)


class BreathingSession(Base):
    __tablename__ = "breathing_sessions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    user_id: Mapped[str] = mapped_column(String(36), ForeignKey("users.id"), nullable=False)
    timestamp: Mapped[dt.datetime] = mapped_column(DateTime, nullable=False)
    duration_seconds: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    pre_heart_rate: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    post_heart_rate: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    __table_args__ = (Index("ix_breathing_sessions_user_timestamp", "user_id", "timestamp"),)
