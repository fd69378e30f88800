"""Puntaje de progreso ponderado a partir de una comparación."""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping

from progress_tool.config import (
    DEFAULT_ABSOLUTE_SATURATION,
    DEFAULT_SATURATION,
    validate_positive,
    validate_weights,
)
from progress_tool.errors import UnscorableComparisonError
from progress_tool.model import (
    CategoryComparison,
    CategoryContribution,
    ComparisonResult,
    Direction,
    ProgressScore,
    ThresholdMode,
)

logger = logging.getLogger(__name__)

NEUTRAL_POINTS = 50.0
MAX_POINTS = 100.0


def score(
    comparison: ComparisonResult,
    weights: Mapping[str, float],
    *,
    saturation: float = DEFAULT_SATURATION,
    absolute_saturation: float = DEFAULT_ABSOLUTE_SATURATION,
) -> ProgressScore:
    """Compute a composite progress score in the 0-100 range.

    Each scorable category gets a sub-score in [-1, 1]: its polarity-signed
    change divided by the saturation bound and clamped. 50 points means no
    change. The composite is the normalized-weight sum of category points.

    Args:
        comparison: Output of :func:`progress_tool.comparison.compare`.
        weights: Category -> non-negative weight. Need not sum to 1.
        saturation: Relative change that earns a full +/-1 sub-score.
        absolute_saturation: Same, in raw units, for categories compared in
            absolute-threshold mode (zero reference value).

    Returns:
        ProgressScore whose contributions sum to the composite.

    Raises:
        InvalidConfigurationError: If weights or saturation bounds are invalid.
        UnscorableComparisonError: If no category has both data and weight.
    """
    clean_weights = validate_weights(weights)
    rel_bound = validate_positive(saturation, "saturation")
    abs_bound = validate_positive(absolute_saturation, "absolute_saturation")

    scorable = [
        c
        for c in comparison.categories
        if c.has_data and clean_weights.get(c.category, 0.0) > 0
    ]
    if not scorable:
        logger.info(
            "No scorable category: weighted=%s, with data=%s",
            sorted(clean_weights),
            sorted(c.category for c in comparison.categories if c.has_data),
        )
        raise UnscorableComparisonError(
            "None of the weighted categories has data on both sides of the comparison"
        )

    total_weight = math.fsum(clean_weights[c.category] for c in scorable)
    scorable_names = {c.category for c in scorable}

    contributions: list[CategoryContribution] = []
    for entry in comparison.categories:
        raw_weight = clean_weights.get(entry.category, 0.0)
        if entry.category not in scorable_names:
            contributions.append(
                CategoryContribution(
                    category=entry.category,
                    weight=raw_weight,
                    normalized_weight=0.0,
                    sub_score=0.0,
                    points=0.0,
                    contribution=0.0,
                    scored=False,
                )
            )
            continue
        normalized = raw_weight / total_weight
        sub = sub_score(entry, rel_bound, abs_bound)
        points = NEUTRAL_POINTS * (1.0 + sub)
        contributions.append(
            CategoryContribution(
                category=entry.category,
                weight=raw_weight,
                normalized_weight=normalized,
                sub_score=sub,
                points=points,
                contribution=normalized * points,
                scored=True,
            )
        )

    composite = math.fsum(c.contribution for c in contributions)
    return ProgressScore(
        composite=min(MAX_POINTS, max(0.0, composite)),
        contributions=tuple(contributions),
        weights=clean_weights,
        saturation=rel_bound,
        absolute_saturation=abs_bound,
    )


def sub_score(
    entry: CategoryComparison,
    saturation: float = DEFAULT_SATURATION,
    absolute_saturation: float = DEFAULT_ABSOLUTE_SATURATION,
) -> float:
    """Map one category change to [-1, 1]; positive means improvement."""
    if entry.direction in (Direction.UNCHANGED, Direction.NO_DATA):
        return 0.0
    if entry.threshold_mode is ThresholdMode.RELATIVE and entry.relative_change is not None:
        raw = entry.relative_change / saturation
    else:
        raw = (entry.delta or 0.0) / absolute_saturation
    signed = raw * entry.polarity.sign
    return max(-1.0, min(1.0, signed))


def equal_weights(comparison: ComparisonResult) -> dict[str, float]:
    """Weight 1.0 for every category with data on both sides."""
    return {c.category: 1.0 for c in comparison.categories if c.has_data}
