"""Trend Aggregator: day-bucketed series computed on read with polars."""

from datetime import datetime, timedelta
from typing import Any, Dict, List

import polars as pl

from quantara.config import DEFAULT_TREND_DAYS
from quantara.storage import ReadingStore

TREND_SCHEMA = {
    "day": pl.Date,
    "heart_rate": pl.Int64,
    "hrv": pl.Float64,
    "steps": pl.Int64,
    "wellness_score": pl.Int64,
}


def normalize_days(value: Any) -> int:
    """Coerce a window length to a positive integer, defaulting to 7."""
    if value is None or isinstance(value, bool):
        return DEFAULT_TREND_DAYS
    try:
        days = int(value)
    except (TypeError, ValueError):
        return DEFAULT_TREND_DAYS
    return days if days > 0 else DEFAULT_TREND_DAYS


class TrendAggregator:
    """Builds trend series from the Reading Store; never writes anything."""

    def __init__(self, store: ReadingStore):
        self.store = store

    def trends(self, user_id: str, days: int, now: datetime) -> Dict[str, List[Dict[str, Any]]]:
        """
        Group the user's readings since ``now - days`` by calendar day.

        Days without readings are absent from every series. HRV and wellness
        series only consider readings carrying that metric.
        """
        readings = self.store.window(user_id, now - timedelta(days=days))
        frame = pl.LazyFrame(
            [{column: getattr(r, column) for column in TREND_SCHEMA} for r in readings],
            schema=TREND_SCHEMA,
        )

        heart_rate = frame.group_by("day").agg(
            pl.col("heart_rate").mean().round(2).alias("avg"),
            pl.col("heart_rate").min().alias("min"),
            pl.col("heart_rate").max().alias("max"),
        )
        hrv = (
            frame.filter(pl.col("hrv").is_not_null())
            .group_by("day")
            .agg(pl.col("hrv").mean().round(2).alias("avg"))
        )
        steps = frame.group_by("day").agg(pl.col("steps").max().alias("total"))
        wellness = (
            frame.filter(pl.col("wellness_score").is_not_null())
            .group_by("day")
            .agg(pl.col("wellness_score").mean().round(2).alias("avg"))
        )

        return {
            "heart_rate": _collect(heart_rate),
            "hrv": _collect(hrv),
            "steps": _collect(steps),
            "wellness": _collect(wellness),
        }


def _collect(lazy: pl.LazyFrame) -> List[Dict[str, Any]]:
    """Execute the query and return ascending rows keyed by ``date``."""
    return lazy.sort("day").rename({"day": "date"}).collect().to_dicts()
