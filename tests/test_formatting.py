from __future__ import annotations

from datetime import datetime, timezone

import pytest

from progress_tool.comparison import compare
from progress_tool.formatting import (
    areas_of_concern,
    celebration_points,
    format_category,
    format_progress_score,
    format_trend,
    improvement_areas,
    key_improvements,
    next_priorities,
    score_band,
    urgent_concerns,
)
from progress_tool.model import ComparisonResult, EvaluationReport, Measurement
from progress_tool.scoring import score
from progress_tool.trends import analyze_trend


def _report(day: int, **values: float) -> EvaluationReport:
    return EvaluationReport(
        report_id=f"r{day}",
        subject_id="u1",
        timestamp=datetime(2026, 3, day, tzinfo=timezone.utc),
        measurements={k: Measurement(value=v) for k, v in values.items()},
    )


def _result() -> ComparisonResult:
    return compare(
        [
            _report(1, diet_quality=60, gut_health=50, sleep_hours=7, mood=4, falls=0),
            _report(2, diet_quality=75, gut_health=40, sleep_hours=6.8, falls=2),
        ],
        "previous",
        0.05,
        polarities={"falls": "lower_is_better"},
    )


def test_format_category_variants() -> None:
    result = _result()
    assert format_category(result.get("diet_quality")) == "↑ diet quality: +25.0% (improved)"
    assert (
        format_category(result.get("gut_health"))
        == "↓ gut health: -20.0% (declined) [attention]"
    )
    assert format_category(result.get("mood")) == "· mood: no data on comparison side"
    assert format_category(result.get("falls")) == "↓ falls: +2 (declined) [attention]"


@pytest.mark.parametrize(
    ("value", "band"),
    [(95, "excellent"), (80, "excellent"), (65, "good"), (40, "fair"), (12.5, "poor")],
)
def test_score_band(value: float, band: str) -> None:
    assert score_band(value) == band


def test_format_progress_score_lists_scored_categories() -> None:
    text = format_progress_score(score(_result(), {"diet_quality": 1, "mood": 1}))
    assert text.startswith("Overall: ")
    assert "diet quality: " in text
    assert "mood" not in text


def test_key_improvements_and_concerns() -> None:
    result = _result()
    assert key_improvements(result) == ["↑ diet quality: +25.0% (improved)"]
    concerns = areas_of_concern(result)
    assert len(concerns) == 3
    assert concerns[0].startswith("↓ gut health")
    assert concerns[-1].startswith("↓ sleep hours")
    assert areas_of_concern(result, limit=1) == [concerns[0]]


def test_format_trend() -> None:
    history = [_report(d, a=1000 + 10 * d) for d in (1, 8, 15)]
    text = format_trend(analyze_trend(history, "a"))
    assert text == "a: strong upward trend (3 data points, 14 days)"


def test_score_based_highlights() -> None:
    result = _result()
    progress = score(result, {"diet_quality": 1, "gut_health": 1, "sleep_hours": 1})

    assert celebration_points(result, progress) == [
        "Excellent diet quality performance (score: 100)"
    ]
    assert improvement_areas(result, progress) == [
        "gut health needs attention (score: 10)",
        "sleep hours needs attention (score: 44)",
        "falls is declining",
        "gut health is declining",
    ]
    assert urgent_concerns(result, progress) == [
        "gut health requires immediate attention",
        "falls worsened by 2",
        "gut health worsened by 20.0%",
    ]
    assert next_priorities(result, progress) == [
        "Address areas of concern immediately",
        "gut health requires immediate attention",
        "falls worsened by 2",
        "Focus on improvement opportunities",
        "gut health needs attention (score: 10)",
    ]


def test_large_improvement_is_celebrated() -> None:
    result = compare([_report(1, a=100), _report(2, a=140)], "previous", 0.05)
    assert celebration_points(result, score(result, {"a": 1})) == [
        "Excellent a performance (score: 100)",
        "a improved by 40.0%",
    ]


def test_next_priorities_default_when_nothing_to_fix() -> None:
    result = compare([_report(1, a=100), _report(2, a=110)], "previous", 0.05)
    assert next_priorities(result, score(result, {"a": 1})) == [
        "Continue current health strategies",
        "Consider setting new challenging goals",
    ]
