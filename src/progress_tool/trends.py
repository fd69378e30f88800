"""Análisis de tendencias por categoría mediante regresión lineal."""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum

import pandas as pd

from progress_tool.config import parse_polarity, parse_polarity_table
from progress_tool.errors import InsufficientDataError
from progress_tool.history import (
    category_columns,
    category_series,
    history_to_frame,
    validate_history,
)
from progress_tool.model import Direction, EvaluationReport, Polarity

logger = logging.getLogger(__name__)

MIN_TREND_POINTS = 3

_VOLATILITY_LIMIT = 0.3
_MIN_R_SQUARED = 0.3
_STABLE_SLOPE = 0.01
_Z_95 = 1.96
_HIGH_CONSISTENCY = 0.8
_LOW_CONSISTENCY = 0.5
_ACCELERATION_LIMIT = 0.1


class Movement(Enum):
    """Shape of a category's trajectory."""

    UPWARD = "upward"
    DOWNWARD = "downward"
    STABLE = "stable"
    VOLATILE = "volatile"


class Strength(Enum):
    """Fit quality of the trend line."""

    WEAK = "weak"
    MODERATE = "moderate"
    STRONG = "strong"


_STRENGTH_RANK = {Strength.WEAK: 1, Strength.MODERATE: 2, Strength.STRONG: 3}


@dataclass(frozen=True)
class CategoryTrend:
    """Regression-based trend of one category over the full history."""

    category: str
    movement: Movement
    strength: Strength
    progress: Direction
    slope: float
    intercept: float
    r_squared: float
    volatility: float
    acceleration: float
    consistency: float
    predicted_next: float
    prediction_interval: tuple[float, float]
    data_points: int
    period_days: int
    insights: tuple[str, ...] = ()


def analyze_trend(
    history: Sequence[EvaluationReport],
    category: str,
    *,
    polarity: Polarity | str | None = None,
) -> CategoryTrend:
    """Fit a linear trend to one category across the whole history.

    Values are regressed against the evaluation index (0, 1, 2, ...).

    Raises:
        InsufficientDataError: If the category has fewer than three values.
        InconsistentHistoryError: If subjects differ, timestamps repeat or a
            value is not finite.
    """
    resolved = Polarity.HIGHER_IS_BETTER if polarity is None else parse_polarity(polarity)
    validate_history(history, min_reports=0)
    series = category_series(history_to_frame(history), category)
    return _trend_from_series(category, series, resolved)


def analyze_trends(
    history: Sequence[EvaluationReport],
    *,
    polarities: Mapping[str, Polarity | str] | None = None,
) -> dict[str, CategoryTrend]:
    """Analyze every category with enough data points; skip the rest."""
    table = parse_polarity_table(polarities)
    validate_history(history, min_reports=0)
    frame = history_to_frame(history)
    out: dict[str, CategoryTrend] = {}
    for category in category_columns(frame):
        series = category_series(frame, category)
        if len(series) < MIN_TREND_POINTS:
            logger.debug("Skipping trend for %s: %d points", category, len(series))
            continue
        out[category] = _trend_from_series(
            category, series, table.get(category, Polarity.HIGHER_IS_BETTER)
        )
    return out


def strongest_trends(
    trends: Mapping[str, CategoryTrend], count: int = 5
) -> list[CategoryTrend]:
    """Return the ``count`` trends ranked by strength x consistency."""
    return sorted(
        trends.values(),
        key=lambda t: _STRENGTH_RANK[t.strength] * t.consistency,
        reverse=True,
    )[:count]


def _trend_from_series(
    category: str, series: pd.Series, polarity: Polarity
) -> CategoryTrend:
    n = len(series)
    if n < MIN_TREND_POINTS:
        raise InsufficientDataError(
            f"{category}: at least {MIN_TREND_POINTS} values are required, got {n}"
        )

    y = series.reset_index(drop=True)
    x = pd.Series(range(n), dtype="float64")
    slope = float(y.cov(x) / x.var())
    intercept = float(y.mean() - slope * x.mean())

    fitted = intercept + slope * x
    ss_res = float(((y - fitted) ** 2).sum())
    ss_tot = float(((y - y.mean()) ** 2).sum())
    # Constant series: the line fits perfectly.
    r_squared = 1.0 if ss_tot == 0 else 1.0 - ss_res / ss_tot

    mean = float(y.mean())
    volatility = float(y.std(ddof=0)) / abs(mean) if mean != 0 else 0.0
    acceleration = float(y.diff().diff().mean())

    movement = _movement(slope, mean, r_squared, volatility)
    strength = _strength(r_squared)
    progress = _progress(movement, polarity)
    consistency = _consistency(y)
    std_error = math.sqrt(ss_res / (n - 2))
    predicted = slope * n + intercept

    index = series.index
    period_days = int((index.max() - index.min()).days)

    return CategoryTrend(
        category=category,
        movement=movement,
        strength=strength,
        progress=progress,
        slope=slope,
        intercept=intercept,
        r_squared=r_squared,
        volatility=volatility,
        acceleration=acceleration,
        consistency=consistency,
        predicted_next=predicted,
        prediction_interval=(
            predicted - _Z_95 * std_error,
            predicted + _Z_95 * std_error,
        ),
        data_points=n,
        period_days=period_days,
        insights=_insights(
            movement, strength, progress, consistency, acceleration * polarity.sign, r_squared
        ),
    )


def _movement(slope: float, mean: float, r_squared: float, volatility: float) -> Movement:
    if volatility > _VOLATILITY_LIMIT or r_squared < _MIN_R_SQUARED:
        return Movement.VOLATILE
    relative_slope = slope / abs(mean) if mean != 0 else slope
    if relative_slope > _STABLE_SLOPE:
        return Movement.UPWARD
    if relative_slope < -_STABLE_SLOPE:
        return Movement.DOWNWARD
    return Movement.STABLE


def _strength(r_squared: float) -> Strength:
    if r_squared > 0.7:
        return Strength.STRONG
    if r_squared > 0.4:
        return Strength.MODERATE
    return Strength.WEAK


def _progress(movement: Movement, polarity: Polarity) -> Direction:
    if movement is Movement.UPWARD:
        return Direction.IMPROVED if polarity.sign > 0 else Direction.DECLINED
    if movement is Movement.DOWNWARD:
        return Direction.DECLINED if polarity.sign > 0 else Direction.IMPROVED
    return Direction.UNCHANGED


def _consistency(values: pd.Series) -> float:
    """Share of steps that move in the same direction as first->last."""
    overall = _sign(values.iloc[-1] - values.iloc[0])
    steps = values.diff().dropna()
    if steps.empty:
        return 0.0
    same = sum(1 for d in steps if _sign(d) == overall)
    return same / len(steps)


def _sign(value: float) -> int:
    return int(value > 0) - int(value < 0)


def _insights(
    movement: Movement,
    strength: Strength,
    progress: Direction,
    consistency: float,
    signed_acceleration: float,
    r_squared: float,
) -> tuple[str, ...]:
    """Short reading notes for a trend; acceleration is polarity-signed."""
    notes: list[str] = []
    if movement is Movement.VOLATILE:
        notes.append("Inconsistent progress pattern observed")
        notes.append("Consider stabilizing factors before focusing on improvement")
    elif movement is Movement.STABLE:
        notes.append("Metric is maintaining current level")
        notes.append("May be ready for next level of challenges")
    elif strength is Strength.STRONG and progress is Direction.IMPROVED:
        notes.append("Consistent improvement trend detected")
        notes.append("Strong positive trajectory indicates effective strategies")
    elif strength is Strength.STRONG and progress is Direction.DECLINED:
        notes.append("Concerning decline in this metric")
        notes.append("Immediate attention and intervention recommended")

    if consistency > _HIGH_CONSISTENCY:
        notes.append("Highly consistent progress pattern")
    elif consistency < _LOW_CONSISTENCY:
        notes.append("Variable progress - look for external factors affecting consistency")

    if signed_acceleration > _ACCELERATION_LIMIT:
        notes.append("Accelerating improvement rate detected")
    elif signed_acceleration < -_ACCELERATION_LIMIT:
        notes.append("Declining improvement rate - intervention may be needed")

    if r_squared < _MIN_R_SQUARED:
        notes.append("High variability in data - more consistent tracking recommended")
    return tuple(notes)
