from __future__ import annotations

import math
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from progress_tool.errors import InconsistentHistoryError, InsufficientDataError
from progress_tool.model import Direction, EvaluationReport, Measurement, Polarity
from progress_tool.trends import (
    Movement,
    Strength,
    analyze_trend,
    analyze_trends,
    strongest_trends,
)

_START = datetime(2026, 1, 1, tzinfo=timezone.utc)


def _history(**series: list[float]) -> list[EvaluationReport]:
    n = max(len(v) for v in series.values())
    out = []
    for i in range(n):
        values = {k: v[i] for k, v in series.items() if i < len(v)}
        out.append(
            EvaluationReport(
                report_id=f"r{i}",
                subject_id="u1",
                timestamp=_START + timedelta(days=7 * i),
                measurements={k: Measurement(value=x) for k, x in values.items()},
            )
        )
    return out


def test_linear_upward_trend() -> None:
    trend = analyze_trend(_history(score=[50, 60, 70, 80]), "score")
    assert trend.movement is Movement.UPWARD
    assert trend.strength is Strength.STRONG
    assert trend.progress is Direction.IMPROVED
    assert math.isclose(trend.slope, 10.0)
    assert math.isclose(trend.intercept, 50.0)
    assert math.isclose(trend.r_squared, 1.0)
    assert math.isclose(trend.predicted_next, 90.0)
    assert trend.prediction_interval[0] == pytest.approx(90.0)
    assert trend.consistency == 1.0
    assert trend.data_points == 4
    assert trend.period_days == 21


def test_downward_trend_is_improvement_when_lower_is_better() -> None:
    trend = analyze_trend(
        _history(calories=[2400, 2300, 2200, 2100]),
        "calories",
        polarity=Polarity.LOWER_IS_BETTER,
    )
    assert trend.movement is Movement.DOWNWARD
    assert trend.progress is Direction.IMPROVED


def test_constant_series_is_stable() -> None:
    trend = analyze_trend(_history(a=[5, 5, 5]), "a")
    assert trend.movement is Movement.STABLE
    assert trend.r_squared == 1.0
    assert trend.volatility == 0.0
    assert trend.progress is Direction.UNCHANGED


def test_noisy_series_is_volatile() -> None:
    trend = analyze_trend(_history(a=[10, 40, 5, 50, 8]), "a")
    assert trend.movement is Movement.VOLATILE
    assert trend.progress is Direction.UNCHANGED


def test_requires_three_points() -> None:
    with pytest.raises(InsufficientDataError):
        analyze_trend(_history(a=[1, 2]), "a")
    with pytest.raises(InsufficientDataError):
        analyze_trend(_history(a=[1, 2, 3]), "missing")


def test_analyze_trends_skips_short_categories() -> None:
    history = _history(a=[100, 110, 120, 130], b=[1, 2])
    trends = analyze_trends(history, polarities={"a": "lower_is_better"})
    assert set(trends) == {"a"}
    assert trends["a"].progress is Direction.DECLINED


def test_strongest_trends_ranks_by_strength_and_consistency() -> None:
    history = _history(
        steady=[100, 110, 120, 130, 140],
        noisy=[10, 40, 5, 50, 8],
        wobbly=[100, 104, 101, 106, 103],
    )
    ranked = strongest_trends(analyze_trends(history), count=2)
    assert len(ranked) == 2
    assert ranked[0].category == "steady"


def test_insights_for_steady_improvement() -> None:
    trend = analyze_trend(_history(score=[50, 60, 70, 80]), "score")
    assert trend.insights == (
        "Consistent improvement trend detected",
        "Strong positive trajectory indicates effective strategies",
        "Highly consistent progress pattern",
    )


def test_insights_follow_polarity_and_acceleration() -> None:
    history = _history(a=[100, 110, 130, 160])
    up = analyze_trend(history, "a")
    assert "Accelerating improvement rate detected" in up.insights
    assert "Consistent improvement trend detected" in up.insights

    down = analyze_trend(history, "a", polarity="lower_is_better")
    assert "Concerning decline in this metric" in down.insights
    assert "Declining improvement rate - intervention may be needed" in down.insights


def test_insights_for_stable_and_volatile_series() -> None:
    stable = analyze_trend(_history(a=[5, 5, 5]), "a")
    assert stable.insights[0] == "Metric is maintaining current level"

    noisy = analyze_trend(_history(a=[10, 40, 5, 50, 8]), "a")
    assert noisy.insights[0] == "Inconsistent progress pattern observed"
    assert "High variability in data - more consistent tracking recommended" in noisy.insights


def test_trends_reject_mixed_subjects_and_duplicate_timestamps() -> None:
    history = _history(a=[1, 2, 3])
    mixed = [*history[:2], replace(history[2], subject_id="u2")]
    with pytest.raises(InconsistentHistoryError, match="subjects"):
        analyze_trends(mixed)

    duplicated = [*history, replace(history[2], report_id="r9")]
    with pytest.raises(InconsistentHistoryError, match="Duplicate"):
        analyze_trend(duplicated, "a")
