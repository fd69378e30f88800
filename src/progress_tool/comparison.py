"""Motor de comparación de reportes de evaluación a lo largo del tiempo."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import cast

from progress_tool.config import (
    DEFAULT_EPSILON,
    parse_mode,
    parse_polarity_table,
    validate_non_negative,
    validate_threshold,
)
from progress_tool.history import validate_history
from progress_tool.model import (
    CategoryComparison,
    ComparisonMode,
    ComparisonResult,
    Direction,
    EvaluationReport,
    Magnitude,
    Polarity,
    ThresholdMode,
    Trend,
)

logger = logging.getLogger(__name__)

_MAGNITUDE_LARGE = 0.30
_MAGNITUDE_MEDIUM = 0.15


def compare(
    history: Sequence[EvaluationReport],
    mode: ComparisonMode | str,
    regression_threshold: float,
    *,
    polarities: Mapping[str, Polarity | str] | None = None,
    epsilon: float = DEFAULT_EPSILON,
) -> ComparisonResult:
    """Compare two endpoints of an evaluation history.

    Args:
        history: Reports of a single subject. Order is not trusted; endpoints
            are picked by timestamp.
        mode: PREVIOUS_VS_LATEST (two most recent reports) or
            BASELINE_VS_LATEST (earliest vs. most recent).
        regression_threshold: Decline beyond which a category is flagged.
            Relative to the reference value, or absolute when that value is 0.
        polarities: Category -> polarity. Missing categories are
            higher-is-better.
        epsilon: Changes with ``abs(delta) < epsilon`` count as unchanged.

    Returns:
        A ComparisonResult with one entry per category in either endpoint.

    Raises:
        InsufficientDataError: If fewer than two reports are supplied.
        InvalidConfigurationError: If mode, threshold, epsilon or polarities
            are malformed.
        InconsistentHistoryError: If subjects differ, timestamps repeat or a
            value is not finite.
    """
    parsed_mode = parse_mode(mode)
    threshold = validate_threshold(regression_threshold)
    eps = validate_non_negative(epsilon, "epsilon")
    polarity_table = parse_polarity_table(polarities)
    validate_history(history)

    reference, latest = _select_endpoints(history, parsed_mode)
    logger.debug(
        "Comparing %s (%s) -> %s (%s) in %s mode",
        reference.report_id,
        reference.timestamp.isoformat(),
        latest.report_id,
        latest.timestamp.isoformat(),
        parsed_mode.value,
    )
    return _compare_pair(reference, latest, parsed_mode, threshold, eps, polarity_table)


def compare_consecutive(
    history: Sequence[EvaluationReport],
    regression_threshold: float,
    *,
    polarities: Mapping[str, Polarity | str] | None = None,
    epsilon: float = DEFAULT_EPSILON,
) -> list[ComparisonResult]:
    """Compare every chronologically adjacent pair of reports.

    Returns:
        One PREVIOUS_VS_LATEST result per step, oldest step first.
    """
    threshold = validate_threshold(regression_threshold)
    eps = validate_non_negative(epsilon, "epsilon")
    polarity_table = parse_polarity_table(polarities)
    validate_history(history)

    ordered = sorted(history, key=lambda r: r.timestamp)
    return [
        _compare_pair(
            prev,
            curr,
            ComparisonMode.PREVIOUS_VS_LATEST,
            threshold,
            eps,
            polarity_table,
        )
        for prev, curr in zip(ordered, ordered[1:])
    ]


def classify_trend(improved: int, declined: int) -> Trend:
    """Classify the overall trend from improved/declined counts."""
    if improved == 0 and declined == 0:
        return Trend.STABLE
    if improved > 0 and declined > 0 and abs(improved - declined) <= 1:
        return Trend.MIXED
    if improved > declined:
        return Trend.IMPROVING
    return Trend.DECLINING


def _select_endpoints(
    history: Sequence[EvaluationReport], mode: ComparisonMode
) -> tuple[EvaluationReport, EvaluationReport]:
    """Pick (reference, comparison) with a single linear scan."""
    earliest: EvaluationReport | None = None
    latest: EvaluationReport | None = None
    previous: EvaluationReport | None = None
    for r in history:
        if earliest is None or r.timestamp < earliest.timestamp:
            earliest = r
        if latest is None or r.timestamp > latest.timestamp:
            previous = latest
            latest = r
        elif previous is None or r.timestamp > previous.timestamp:
            previous = r
    if mode is ComparisonMode.BASELINE_VS_LATEST:
        return cast(EvaluationReport, earliest), cast(EvaluationReport, latest)
    return cast(EvaluationReport, previous), cast(EvaluationReport, latest)


def _compare_pair(
    reference: EvaluationReport,
    current: EvaluationReport,
    mode: ComparisonMode,
    threshold: float,
    epsilon: float,
    polarities: Mapping[str, Polarity],
) -> ComparisonResult:
    entries = [
        _compare_category(
            category,
            reference.value_of(category),
            current.value_of(category),
            polarities.get(category, Polarity.HIGHER_IS_BETTER),
            threshold,
            epsilon,
        )
        for category in sorted(reference.categories | current.categories)
    ]
    improved = sum(1 for e in entries if e.direction is Direction.IMPROVED)
    declined = sum(1 for e in entries if e.direction is Direction.DECLINED)
    flagged = tuple(e.category for e in entries if e.flagged)
    if flagged:
        logger.info("Categories past regression threshold: %s", ", ".join(flagged))

    return ComparisonResult(
        reference_report=reference,
        comparison_report=current,
        mode=mode,
        regression_threshold=threshold,
        epsilon=epsilon,
        categories=tuple(entries),
        trend=classify_trend(improved, declined),
        flagged=flagged,
    )


def _compare_category(
    category: str,
    reference_value: float | None,
    comparison_value: float | None,
    polarity: Polarity,
    threshold: float,
    epsilon: float,
) -> CategoryComparison:
    if reference_value is None or comparison_value is None:
        return CategoryComparison(
            category=category,
            polarity=polarity,
            reference_value=reference_value,
            comparison_value=comparison_value,
            direction=Direction.NO_DATA,
            missing_side="reference" if reference_value is None else "comparison",
        )

    delta = comparison_value - reference_value
    if abs(delta) < epsilon:
        direction = Direction.UNCHANGED
    elif delta * polarity.sign > 0:
        direction = Direction.IMPROVED
    else:
        direction = Direction.DECLINED

    # Zero reference cannot be scaled: fall back to absolute units.
    if reference_value == 0:
        threshold_mode = ThresholdMode.ABSOLUTE
        relative_change = None
        decline = abs(delta)
        magnitude = None
    else:
        threshold_mode = ThresholdMode.RELATIVE
        relative_change = delta / abs(reference_value)
        decline = abs(relative_change)
        magnitude = _magnitude(relative_change)

    return CategoryComparison(
        category=category,
        polarity=polarity,
        reference_value=reference_value,
        comparison_value=comparison_value,
        direction=direction,
        delta=delta,
        relative_change=relative_change,
        threshold_mode=threshold_mode,
        magnitude=magnitude,
        flagged=direction is Direction.DECLINED and decline > threshold,
        confidence=_confidence(reference_value, comparison_value),
    )


def _confidence(reference_value: float, comparison_value: float) -> float:
    spread = abs(comparison_value - reference_value) / max(
        reference_value, comparison_value, 1.0
    )
    return max(0.0, min(1.0, 1.0 - 0.5 * spread))


def _magnitude(relative_change: float) -> Magnitude:
    size = abs(relative_change)
    if size >= _MAGNITUDE_LARGE:
        return Magnitude.LARGE
    if size >= _MAGNITUDE_MEDIUM:
        return Magnitude.MEDIUM
    return Magnitude.SMALL
