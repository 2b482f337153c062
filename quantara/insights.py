"""Insight Heuristics over a user's most recent readings."""

from typing import Any, Dict, List, Literal, Sequence

from quantara.config import (
    HRV_HIGH_THRESHOLD,
    HRV_LOW_THRESHOLD,
    INSIGHT_WINDOW,
    RESTING_HEART_RATE_CEILING,
    RESTING_HEART_RATE_TARGET,
    STEP_GOAL,
)
from quantara.rollup import round_half_up
from quantara.storage import ReadingStore
from quantara.tables import Reading

HrvAveraging = Literal["null_as_zero", "present_only"]


def _insight(type_: str, category: str, message: str, value: float) -> Dict[str, Any]:
    return {"type": type_, "category": category, "message": message, "value": round_half_up(value)}


def evaluate_insights(
    readings: Sequence[Reading], hrv_averaging: HrvAveraging = "null_as_zero"
) -> List[Dict[str, Any]]:
    """Apply the recovery, fitness and activity rules in that order.

    ``readings`` must be newest first. With ``null_as_zero`` a reading without
    HRV still counts in the denominator of the HRV mean.
    """
    if not readings:
        return []

    insights = []

    if hrv_averaging == "null_as_zero":
        hrv_values = [r.hrv or 0 for r in readings]
    else:
        hrv_values = [r.hrv for r in readings if r.hrv is not None]
    if hrv_values:
        avg_hrv = sum(hrv_values) / len(hrv_values)
        if avg_hrv > HRV_HIGH_THRESHOLD:
            insights.append(
                _insight("positive", "recovery", "Excellent HRV! Your recovery is optimal.", avg_hrv)
            )
        elif avg_hrv < HRV_LOW_THRESHOLD:
            insights.append(
                _insight("attention", "recovery", "Low HRV detected. Consider prioritizing rest.", avg_hrv)
            )

    resting = [
        r.heart_rate
        for r in readings
        if r.heart_rate is not None and r.heart_rate < RESTING_HEART_RATE_CEILING
    ]
    if resting:
        avg_resting = sum(resting) / len(resting)
        if avg_resting < RESTING_HEART_RATE_TARGET:
            insights.append(
                _insight(
                    "positive",
                    "fitness",
                    "Great resting heart rate indicates good cardiovascular fitness.",
                    avg_resting,
                )
            )

    latest_steps = readings[0].steps or 0
    if latest_steps >= STEP_GOAL:
        insights.append(
            _insight("achievement", "activity", "Step goal achieved! Keep up the great work.", latest_steps)
        )

    return insights


class InsightHeuristics:
    def __init__(self, store: ReadingStore, hrv_averaging: HrvAveraging = "null_as_zero"):
        self.store = store
        self.hrv_averaging = hrv_averaging

    def insights(self, user_id: str) -> List[Dict[str, Any]]:
        readings = self.store.list_readings(user_id, limit=INSIGHT_WINDOW)
        return evaluate_insights(readings, self.hrv_averaging)
