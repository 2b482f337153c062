"""Wellness score estimate for readings that arrive without one."""

from typing import Optional

from quantara.config import (
    WELLNESS_BASE_SCORE,
    WELLNESS_BONUSES,
    WELLNESS_HEART_RATE_BAND,
    WELLNESS_HEART_RATE_BONUS,
    WELLNESS_MAX_SCORE,
)
from quantara.models import ReadingFields


def estimate_wellness_score(
    heart_rate: Optional[int], hrv: Optional[float], steps: Optional[int]
) -> int:
    """Score a reading the way the watch app does; missing metrics count as 0."""
    metrics = {"hrv": hrv or 0, "steps": steps or 0}
    score = WELLNESS_BASE_SCORE
    for metric, bonuses in WELLNESS_BONUSES.items():
        for threshold, bonus in bonuses:
            if metrics[metric] > threshold:
                score += bonus

    low, high = WELLNESS_HEART_RATE_BAND
    if heart_rate is not None and low < heart_rate < high:
        score += WELLNESS_HEART_RATE_BONUS
    return min(score, WELLNESS_MAX_SCORE)


def with_wellness_score(fields: ReadingFields) -> ReadingFields:
    if fields.wellness_score is not None:
        return fields
    score = estimate_wellness_score(fields.heart_rate, fields.hrv, fields.steps)
    return fields.model_copy(update={"wellness_score": score})
