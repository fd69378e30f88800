"""Resúmenes de texto para comparaciones, puntajes y tendencias."""

from __future__ import annotations

from progress_tool.model import (
    CategoryComparison,
    ComparisonResult,
    Direction,
    Magnitude,
    ProgressScore,
    ThresholdMode,
)
from progress_tool.trends import CategoryTrend

_EXCELLENT_POINTS = 80.0
_ATTENTION_POINTS = 60.0
_URGENT_POINTS = 40.0

_ARROWS: dict[Direction, str] = {
    Direction.IMPROVED: "↑",
    Direction.DECLINED: "↓",
    Direction.UNCHANGED: "→",
    Direction.NO_DATA: "·",
}


def _label(category: str) -> str:
    return category.replace("_", " ")


def _change_text(entry: CategoryComparison) -> str:
    if entry.threshold_mode is ThresholdMode.RELATIVE and entry.relative_change is not None:
        return f"{entry.relative_change * 100:+.1f}%"
    return f"{entry.delta or 0.0:+g}"


def format_category(entry: CategoryComparison) -> str:
    """One-line description of a category comparison."""
    arrow = _ARROWS[entry.direction]
    if not entry.has_data:
        return f"{arrow} {_label(entry.category)}: no data on {entry.missing_side} side"
    flag = " [attention]" if entry.flagged else ""
    return f"{arrow} {_label(entry.category)}: {_change_text(entry)} ({entry.direction.value}){flag}"


def score_band(value: float) -> str:
    """Qualitative band for a 0-100 score."""
    if value >= _EXCELLENT_POINTS:
        return "excellent"
    if value >= _ATTENTION_POINTS:
        return "good"
    if value >= _URGENT_POINTS:
        return "fair"
    return "poor"


def format_progress_score(score: ProgressScore) -> str:
    """Composite score plus each scored category's points."""
    parts = [f"Overall: {score.composite:.1f}/100 ({score_band(score.composite)})"]
    parts.extend(
        f"{_label(c.category)}: {c.points:.1f}"
        for c in score.contributions
        if c.scored
    )
    return " | ".join(parts)


def format_trend(trend: CategoryTrend) -> str:
    """One-line description of a category trend."""
    return (
        f"{_label(trend.category)}: {trend.strength.value} {trend.movement.value} "
        f"trend ({trend.data_points} data points, {trend.period_days} days)"
    )


def key_improvements(result: ComparisonResult, limit: int = 5) -> list[str]:
    """Largest improvements first."""
    ranked = sorted(
        result.improved,
        key=lambda c: abs(c.relative_change if c.relative_change is not None else 0.0),
        reverse=True,
    )
    return [format_category(c) for c in ranked[:limit]]


def areas_of_concern(result: ComparisonResult, limit: int = 5) -> list[str]:
    """Flagged categories first, then other declines by size."""
    ranked = sorted(
        result.declined,
        key=lambda c: (
            not c.flagged,
            -abs(c.relative_change if c.relative_change is not None else 0.0),
        ),
    )
    return [format_category(c) for c in ranked[:limit]]


def celebration_points(
    result: ComparisonResult, score: ProgressScore, limit: int = 3
) -> list[str]:
    """Categories scoring 80+ points, then the largest relative improvements."""
    points = [
        f"Excellent {_label(c.category)} performance (score: {c.points:.0f})"
        for c in score.contributions
        if c.scored and c.points >= _EXCELLENT_POINTS
    ]
    large = sorted(
        (c for c in result.improved if c.magnitude is Magnitude.LARGE),
        key=lambda c: -abs(c.relative_change or 0.0),
    )
    points.extend(
        f"{_label(c.category)} improved by {abs(c.relative_change or 0.0) * 100:.1f}%"
        for c in large[:limit]
    )
    return points


def improvement_areas(
    result: ComparisonResult, score: ProgressScore, limit: int = 3
) -> list[str]:
    """Categories below 60 points, then non-trivial declines."""
    areas = [
        f"{_label(c.category)} needs attention (score: {c.points:.0f})"
        for c in score.contributions
        if c.scored and c.points < _ATTENTION_POINTS
    ]
    declining = [c for c in result.declined if c.magnitude is not Magnitude.SMALL]
    areas.extend(f"{_label(c.category)} is declining" for c in declining[:limit])
    return areas


def urgent_concerns(
    result: ComparisonResult, score: ProgressScore, limit: int = 3
) -> list[str]:
    """Categories below 40 points, then declines past the regression threshold."""
    concerns = [
        f"{_label(c.category)} requires immediate attention"
        for c in score.contributions
        if c.scored and c.points < _URGENT_POINTS
    ]
    flagged = [c for c in result.declined if c.flagged]
    concerns.extend(
        f"{_label(c.category)} worsened by {_size_text(c)}" for c in flagged[:limit]
    )
    return concerns


def next_priorities(
    result: ComparisonResult, score: ProgressScore, limit: int = 5
) -> list[str]:
    """Action list: urgent concerns first, then improvement areas."""
    concerns = urgent_concerns(result, score)
    areas = improvement_areas(result, score)
    priorities: list[str] = []
    if concerns:
        priorities.append("Address areas of concern immediately")
        priorities.extend(concerns[:2])
    if areas:
        priorities.append("Focus on improvement opportunities")
        priorities.extend(areas[:2])
    if not priorities:
        priorities = [
            "Continue current health strategies",
            "Consider setting new challenging goals",
        ]
    return priorities[:limit]


def _size_text(entry: CategoryComparison) -> str:
    if entry.relative_change is not None:
        return f"{abs(entry.relative_change) * 100:.1f}%"
    return f"{abs(entry.delta or 0.0):g}"
