"""Heart-Rate Zone Tracker.

Each qualifying reading adds one unit to exactly one of five per-day
counters. A unit stands for one reading, which the watch takes roughly once a
minute, so the counters approximate minutes spent in each zone rather than
integrating elapsed time.
"""

from bisect import bisect_right
from datetime import date
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.orm import Session

from quantara.config import HEART_RATE_ZONES
from quantara.tables import HeartRateZones, new_id

_LOWER_BOUNDS = [lower for lower, _ in HEART_RATE_ZONES]
ZONE_COLUMNS = [column for _, column in HEART_RATE_ZONES]


def classify_heart_rate(heart_rate: int) -> str:
    """Return the counter column for ``heart_rate`` (bands are half-open).

    Raises:
        ValueError: for a negative rate. Request models already reject those,
            so this only guards direct callers.
    """
    if heart_rate < 0:
        raise ValueError(f"Heart rate cannot be negative: {heart_rate}")
    return HEART_RATE_ZONES[bisect_right(_LOWER_BOUNDS, heart_rate) - 1][1]


class HeartRateZoneTracker:
    def __init__(self, session: Session):
        self.session = session

    def record(self, user_id: str, heart_rate: int, day: date) -> str:
        """Count one reading towards its zone on ``day``; returns the zone column."""
        column_name = classify_heart_rate(heart_rate)

        ensure_row = (
            insert(HeartRateZones)
            .values(id=new_id(), user_id=user_id, date=day, **{c: 0 for c in ZONE_COLUMNS})
            .on_conflict_do_nothing(index_elements=["user_id", "date"])
        )
        self.session.execute(ensure_row)

        column = getattr(HeartRateZones, column_name)
        increment = (
            update(HeartRateZones)
            .where(HeartRateZones.user_id == user_id, HeartRateZones.date == day)
            .values({column: column + 1})
            .execution_options(synchronize_session=False)
        )
        self.session.execute(increment)
        return column_name

    def get(self, user_id: str, day: date) -> Optional[HeartRateZones]:
        stmt = (
            select(HeartRateZones)
            .where(HeartRateZones.user_id == user_id, HeartRateZones.date == day)
            .execution_options(populate_existing=True)
        )
        return self.session.scalars(stmt).first()
