"""Ingestion pipeline and query operations.

Every public method runs in exactly one unit of work. For a single sync the
raw insert, the ``last_sync`` stamp and both rollups commit together, so no
reader can observe a reading without its summary and zone updates.
"""

from datetime import date, datetime, timedelta
from typing import Any, Callable, Dict, List, Optional, Sequence

from sqlalchemy.orm import Session

from quantara.breathing import BreathingLog, heart_rate_change
from quantara.config import (
    DEFAULT_BREATHING_LIMIT,
    DEFAULT_READINGS_LIMIT,
    DEFAULT_USER_NAME,
    WEEKLY_SUMMARY_DAYS,
    Settings,
    get_settings,
)
from quantara.database import Database
from quantara.insights import InsightHeuristics
from quantara.logger import get_logger
from quantara.models import ReadingFields, SyncRequest
from quantara.rollup import DailySummaryRollup
from quantara.storage import ReadingStore
from quantara.tables import BreathingSession, DailySummary, Reading, User, utcnow
from quantara.trends import TrendAggregator, normalize_days
from quantara.users import UserDirectory
from quantara.wellness import with_wellness_score
from quantara.zones import HeartRateZoneTracker

logger = get_logger(__name__)


class WellnessService:
    """Request-scoped operations over an injected ``Database``."""

    def __init__(
        self,
        database: Database,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.database = database
        self.settings = settings or get_settings()
        self.clock = clock

    # --- Users ---

    def register_user(self, device_id: str, name: Optional[str] = None) -> User:
        with self.database.session_scope("register_user") as session:
            user = UserDirectory(session).register(device_id, name or DEFAULT_USER_NAME)
        logger.info("user_registered", user_id=user.id, device_id=device_id)
        return user

    # --- Ingestion ---

    def sync_one(self, payload: SyncRequest) -> Dict[str, Any]:
        """Store one reading and run the summary and zone rollups."""
        now = self.clock()
        fields = self._prepare(payload)

        with self.database.session_scope("sync_one") as session:
            user = UserDirectory(session).resolve(payload.user_id, payload.device_id)
            reading = ReadingStore(session).append(user.id, fields, now)
            self._run_rollups(session, reading, now)

        logger.info(
            "reading_synced",
            user_id=user.id,
            reading_id=reading.id,
            date=reading.day.isoformat(),
        )
        return {"reading_id": reading.id, "user_id": user.id, "synced_at": now}

    def sync_batch(
        self,
        readings: Sequence[ReadingFields],
        user_id: Optional[str] = None,
        device_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Store all readings atomically.

        Rollups are skipped unless ``rollup_on_batch`` is enabled; backfills
        are expected to call ``recompute_daily_summaries`` afterwards.
        """
        now = self.clock()
        batch = [self._prepare(fields) for fields in readings]

        with self.database.session_scope("sync_batch") as session:
            user = UserDirectory(session).resolve(user_id, device_id)
            stored = ReadingStore(session).append_many(user.id, batch, now)
            if self.settings.rollup_on_batch:
                rollup = DailySummaryRollup(session)
                for day in sorted({reading.day for reading in stored}):
                    rollup.recompute(user.id, day, now)
                for reading in stored:
                    self._record_zone(session, reading, now)

        logger.info(
            "batch_synced",
            user_id=user.id,
            count=len(stored),
            rollups=self.settings.rollup_on_batch,
        )
        return {"count": len(stored), "user_id": user.id}

    def recompute_daily_summaries(
        self, user_id: str, dates: Optional[Sequence[date]] = None
    ) -> List[DailySummary]:
        """Rebuild summaries for ``dates``, or every date that has readings."""
        now = self.clock()
        with self.database.session_scope("recompute_daily_summaries") as session:
            if dates is None:
                dates = ReadingStore(session).days_with_readings(user_id)
            rollup = DailySummaryRollup(session)
            summaries = [rollup.recompute(user_id, day, now) for day in sorted(set(dates))]

        rebuilt = [summary for summary in summaries if summary is not None]
        logger.info("daily_summaries_recomputed", user_id=user_id, count=len(rebuilt))
        return rebuilt

    # --- Queries ---

    def get_readings(
        self,
        user_id: str,
        since: Optional[datetime] = None,
        limit: int = DEFAULT_READINGS_LIMIT,
    ) -> List[Reading]:
        with self.database.session_scope("get_readings") as session:
            return ReadingStore(session).list_readings(user_id, since=since, limit=limit)

    def get_latest(self, user_id: str) -> Optional[Reading]:
        with self.database.session_scope("get_latest") as session:
            return ReadingStore(session).latest(user_id)

    def get_daily_summary(self, user_id: str, day: Optional[date] = None) -> Dict[str, Any]:
        """Summary and zones for ``day`` (today by default); either may be None."""
        day = day or self.clock().date()
        with self.database.session_scope("get_daily_summary") as session:
            summary = DailySummaryRollup(session).get(user_id, day)
            zones = HeartRateZoneTracker(session).get(user_id, day)
        return {"date": day, "summary": summary, "zones": zones}

    def get_weekly_summaries(self, user_id: str) -> List[DailySummary]:
        start = self.clock().date() - timedelta(days=WEEKLY_SUMMARY_DAYS)
        with self.database.session_scope("get_weekly_summaries") as session:
            return DailySummaryRollup(session).since(user_id, start)

    def get_trends(self, user_id: str, days: Any = None) -> Dict[str, Any]:
        days = normalize_days(days)
        with self.database.session_scope("get_trends") as session:
            trends = TrendAggregator(ReadingStore(session)).trends(user_id, days, self.clock())
        return {"days": days, "trends": trends}

    def get_insights(self, user_id: str) -> List[Dict[str, Any]]:
        with self.database.session_scope("get_insights") as session:
            heuristics = InsightHeuristics(
                ReadingStore(session), hrv_averaging=self.settings.insight_hrv_averaging
            )
            return heuristics.insights(user_id)

    # --- Breathing ---

    def log_breathing_session(
        self,
        user_id: Optional[str] = None,
        device_id: Optional[str] = None,
        duration_seconds: Optional[int] = None,
        pre_heart_rate: Optional[int] = None,
        post_heart_rate: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Record a session; a device id is resolved but never creates a user."""
        now = self.clock()
        with self.database.session_scope("log_breathing_session") as session:
            user = UserDirectory(session).resolve(user_id, device_id, create=False)
            record = BreathingLog(session).log(
                user.id, duration_seconds, pre_heart_rate, post_heart_rate, now
            )
        return {
            "session_id": record.id,
            "hr_delta": heart_rate_change(pre_heart_rate, post_heart_rate),
        }

    def get_breathing_history(
        self, user_id: str, limit: int = DEFAULT_BREATHING_LIMIT
    ) -> List[BreathingSession]:
        with self.database.session_scope("get_breathing_history") as session:
            return BreathingLog(session).history(user_id, limit=limit)

    # --- Internals ---

    def _prepare(self, fields: ReadingFields) -> ReadingFields:
        if self.settings.derive_wellness_score:
            return with_wellness_score(fields)
        return fields

    def _run_rollups(self, session: Session, reading: Reading, now: datetime) -> None:
        DailySummaryRollup(session).recompute(reading.user_id, reading.day, now)
        self._record_zone(session, reading, now)

    def _record_zone(self, session: Session, reading: Reading, now: datetime) -> None:
        if reading.heart_rate is not None:
            zone_day = reading.day if self.settings.zone_date_policy == "reading" else now.date()
            HeartRateZoneTracker(session).record(reading.user_id, reading.heart_rate, zone_day)
