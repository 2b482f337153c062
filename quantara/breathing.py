"""Breathing sessions: write-once records unrelated to the reading rollups."""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from quantara.config import DEFAULT_BREATHING_LIMIT
from quantara.tables import BreathingSession


def heart_rate_change(pre: Optional[int], post: Optional[int]) -> Optional[int]:
    if pre is None or post is None:
        return None
    return post - pre


class BreathingLog:
    def __init__(self, session: Session):
        self.session = session

    def log(
        self,
        user_id: str,
        duration_seconds: Optional[int],
        pre_heart_rate: Optional[int],
        post_heart_rate: Optional[int],
        now: datetime,
    ) -> BreathingSession:
        session = BreathingSession(
            user_id=user_id,
            timestamp=now,
            duration_seconds=duration_seconds,
            pre_heart_rate=pre_heart_rate,
            post_heart_rate=post_heart_rate,
        )
        self.session.add(session)
        self.session.flush()
        return session

    def history(self, user_id: str, limit: int = DEFAULT_BREATHING_LIMIT) -> List[BreathingSession]:
        stmt = (
            select(BreathingSession)
            .where(BreathingSession.user_id == user_id)
            .order_by(BreathingSession.timestamp.desc())
            .limit(limit)
        )
        return list(self.session.scalars(stmt))
