"""Tests for recovery classification, rounding and heart rate zones."""

import pytest

from quantara.rollup import SUMMARY_POLICY, Aggregation, classify_recovery, round_half_up
from quantara.zones import ZONE_COLUMNS, classify_heart_rate


@pytest.mark.parametrize(
    "avg_hrv,expected",
    [
        (None, "unknown"),
        (0, "low"),
        (20, "low"),
        (35, "low"),
        (35.5, "moderate"),
        (50, "moderate"),
        (50.1, "good"),
        (60, "good"),
        (65, "good"),
        (65.01, "excellent"),
        (120, "excellent"),
    ],
)
def test_classify_recovery(avg_hrv, expected):
    assert classify_recovery(avg_hrv) == expected


def test_round_half_up():
    assert round_half_up(70.5) == 71
    assert round_half_up(71.5) == 72
    assert round_half_up(70.49) == 70
    assert round_half_up(0) == 0


def test_cumulative_counters_use_max():
    for name in ("total_steps", "total_calories", "total_exercise_minutes"):
        assert SUMMARY_POLICY[name].aggregation is Aggregation.MAX
    assert SUMMARY_POLICY["avg_heart_rate"].rounded
    assert not SUMMARY_POLICY["avg_hrv"].rounded


@pytest.mark.parametrize(
    "heart_rate,zone",
    [
        (0, "resting_minutes"),
        (59, "resting_minutes"),
        (60, "normal_minutes"),
        (99, "normal_minutes"),
        (100, "elevated_minutes"),
        (139, "elevated_minutes"),
        (140, "high_minutes"),
        (169, "high_minutes"),
        (170, "max_minutes"),
        (180, "max_minutes"),
        (230, "max_minutes"),
    ],
)
def test_classify_heart_rate(heart_rate, zone):
    assert classify_heart_rate(heart_rate) == zone


def test_classify_heart_rate_rejects_negative():
    with pytest.raises(ValueError):
        classify_heart_rate(-1)


def test_zone_columns_in_order():
    assert ZONE_COLUMNS == [
        "resting_minutes",
        "normal_minutes",
        "elevated_minutes",
        "high_minutes",
        "max_minutes",
    ]
