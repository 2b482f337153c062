"""Daily Summary Rollup: rebuilds one (user, date) row from that day's readings."""

import math
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.orm import Session

from quantara.config import RECOVERY_BREAKPOINTS, RECOVERY_FLOOR, RECOVERY_UNKNOWN
from quantara.logger import get_logger
from quantara.tables import DailySummary, Reading, new_id

logger = get_logger(__name__)


class Aggregation(str, Enum):
    # SUM is for counters that report increments rather than running totals
    AVG = "avg"
    MAX = "max"
    SUM = "sum"


_SQL_AGGREGATES = {
    Aggregation.AVG: func.avg,
    Aggregation.MAX: func.max,
    Aggregation.SUM: func.sum,
}


@dataclass(frozen=True)
class FieldPolicy:
    source: str
    aggregation: Aggregation
    rounded: bool = False


# Steps, energy and exercise minutes arrive as running totals for the day,
# so the latest (largest) value is the day's total.
SUMMARY_POLICY: Dict[str, FieldPolicy] = {
    "avg_heart_rate": FieldPolicy("heart_rate", Aggregation.AVG, rounded=True),
    "avg_hrv": FieldPolicy("hrv", Aggregation.AVG),
    "total_steps": FieldPolicy("steps", Aggregation.MAX),
    "total_calories": FieldPolicy("active_energy", Aggregation.MAX),
    "total_exercise_minutes": FieldPolicy("exercise_minutes", Aggregation.MAX),
    "avg_wellness_score": FieldPolicy("wellness_score", Aggregation.AVG, rounded=True),
}


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def classify_recovery(avg_hrv: Optional[float]) -> str:
    """Map an average HRV onto a recovery label."""
    if avg_hrv is None:
        return RECOVERY_UNKNOWN
    for threshold, status in RECOVERY_BREAKPOINTS:
        if avg_hrv > threshold:
            return status
    return RECOVERY_FLOOR


class DailySummaryRollup:
    def __init__(self, session: Session):
        self.session = session

    def aggregate(self, user_id: str, day: date) -> Optional[Dict[str, Any]]:
        """Apply ``SUMMARY_POLICY`` over every reading the user has on ``day``.

        Returns None when the day has no readings.
        """
        columns = [func.count(Reading.id).label("reading_count")]
        for name, policy in SUMMARY_POLICY.items():
            aggregate = _SQL_AGGREGATES[policy.aggregation]
            columns.append(aggregate(getattr(Reading, policy.source)).label(name))

        row = self.session.execute(
            select(*columns).where(Reading.user_id == user_id, Reading.day == day)
        ).one()
        if not row.reading_count:
            return None

        values: Dict[str, Any] = {}
        for name, policy in SUMMARY_POLICY.items():
            value = getattr(row, name)
            if value is not None and policy.rounded:
                value = round_half_up(value)
            values[name] = value
        values["recovery_status"] = classify_recovery(values["avg_hrv"])
        return values

    def recompute(self, user_id: str, day: date, now: datetime) -> Optional[DailySummary]:
        """Recompute and upsert the summary row, replacing every derived field."""
        values = self.aggregate(user_id, day)
        if values is None:
            return None

        stmt = insert(DailySummary).values(
            id=new_id(),
            user_id=user_id,
            date=day,
            created_at=now,
            updated_at=now,
            **values,
        )
        replaced = {name: stmt.excluded[name] for name in values}
        replaced["updated_at"] = stmt.excluded.updated_at
        stmt = stmt.on_conflict_do_update(index_elements=["user_id", "date"], set_=replaced)
        self.session.execute(stmt)

        logger.debug(
            "daily_summary_recomputed",
            user_id=user_id,
            date=day.isoformat(),
            recovery_status=values["recovery_status"],
        )
        return self.get(user_id, day)

    def get(self, user_id: str, day: date) -> Optional[DailySummary]:
        stmt = (
            select(DailySummary)
            .where(DailySummary.user_id == user_id, DailySummary.date == day)
            .execution_options(populate_existing=True)
        )
        return self.session.scalars(stmt).first()

    def since(self, user_id: str, start: date) -> List[DailySummary]:
        """Summaries dated on or after ``start``, newest first."""
        stmt = (
            select(DailySummary)
            .where(DailySummary.user_id == user_id, DailySummary.date >= start)
            .order_by(DailySummary.date.desc())
        )
        return list(self.session.scalars(stmt))
