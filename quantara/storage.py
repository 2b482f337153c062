"""Reading Store: append-only persistence of raw biometric readings."""

from datetime import date, datetime
from typing import List, Optional, Sequence

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from quantara.config import DEFAULT_READINGS_LIMIT
from quantara.models import ReadingFields
from quantara.tables import Reading, User

# Metric columns copied verbatim from the payload onto a Reading row
METRIC_FIELDS = (
    "heart_rate",
    "hrv",
    "active_energy",
    "steps",
    "exercise_minutes",
    "min_heart_rate",
    "max_heart_rate",
    "avg_heart_rate",
    "wellness_score",
)


class ReadingStore:
    """Reads and writes readings inside the caller's unit of work.

    The store never commits; the surrounding ``Database.session_scope``
    decides whether everything written here becomes visible.
    """

    def __init__(self, session: Session):
        self.session = session

    def append(self, user_id: str, fields: ReadingFields, now: datetime) -> Reading:
        """Store one reading and stamp the user's ``last_sync``."""
        reading = self._build(user_id, fields, now)
        self.session.add(reading)
        self._touch_last_sync(user_id, now)
        self.session.flush()
        return reading

    def append_many(
        self, user_id: str, batch: Sequence[ReadingFields], now: datetime
    ) -> List[Reading]:
        """Store a batch of readings with a single ``last_sync`` update.

        Rows are only flushed here; the whole batch commits or rolls back with
        the surrounding session.
        """
        readings = [self._build(user_id, fields, now) for fields in batch]
        self.session.add_all(readings)
        self._touch_last_sync(user_id, now)
        self.session.flush()
        return readings

    def list_readings(
        self,
        user_id: str,
        since: Optional[datetime] = None,
        limit: int = DEFAULT_READINGS_LIMIT,
    ) -> List[Reading]:
        """Newest-first readings, optionally only those strictly after ``since``."""
        stmt = select(Reading).where(Reading.user_id == user_id)
        if since is not None:
            stmt = stmt.where(Reading.timestamp > since)
        stmt = stmt.order_by(Reading.timestamp.desc()).limit(limit)
        return list(self.session.scalars(stmt))

    def latest(self, user_id: str) -> Optional[Reading]:
        readings = self.list_readings(user_id, limit=1)
        return readings[0] if readings else None

    def window(self, user_id: str, start: datetime) -> List[Reading]:
        """Oldest-first readings with ``timestamp >= start``."""
        stmt = (
            select(Reading)
            .where(Reading.user_id == user_id, Reading.timestamp >= start)
            .order_by(Reading.timestamp)
        )
        return list(self.session.scalars(stmt))

    def days_with_readings(self, user_id: str) -> List[date]:
        stmt = (
            select(Reading.day)
            .where(Reading.user_id == user_id)
            .distinct()
            .order_by(Reading.day)
        )
        return list(self.session.scalars(stmt))

    def _build(self, user_id: str, fields: ReadingFields, now: datetime) -> Reading:
        timestamp = fields.timestamp or now
        return Reading(
            user_id=user_id,
            timestamp=timestamp,
            day=timestamp.date(),
            **{name: getattr(fields, name) for name in METRIC_FIELDS},
        )

    def _touch_last_sync(self, user_id: str, now: datetime) -> None:
        self.session.execute(update(User).where(User.id == user_id).values(last_sync=now))
