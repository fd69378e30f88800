"""Modelos tipados para reportes de evaluación, comparaciones y puntajes."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Polarity(Enum):
    """Which direction of change counts as improvement for a category."""

    HIGHER_IS_BETTER = "higher_is_better"
    LOWER_IS_BETTER = "lower_is_better"

    @property
    def sign(self) -> int:
        """Return +1 when higher is better, -1 otherwise."""
        return 1 if self is Polarity.HIGHER_IS_BETTER else -1


class ComparisonMode(Enum):
    """How the two endpoints of a comparison are selected."""

    PREVIOUS_VS_LATEST = "previous"
    BASELINE_VS_LATEST = "baseline"


class Direction(Enum):
    """Per-category outcome of a comparison."""

    IMPROVED = "improved"
    DECLINED = "declined"
    UNCHANGED = "unchanged"
    NO_DATA = "no_data"


class ThresholdMode(Enum):
    """Threshold arithmetic used to decide regression flags."""

    RELATIVE = "relative"
    ABSOLUTE = "absolute"


class Trend(Enum):
    """Overall classification of a comparison."""

    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"
    MIXED = "mixed"


class Magnitude(Enum):
    """Size bucket of a relative change."""

    SMALL = "small"
    MEDIUM = "medium"
    LARGE = "large"


@dataclass(frozen=True)
class Measurement:
    """One numeric category measurement with optional qualitative notes."""

    value: float
    notes: str | None = None


@dataclass(frozen=True)
class EvaluationReport:
    """Snapshot of a subject's measured categories at one point in time."""

    report_id: str
    subject_id: str
    timestamp: datetime
    measurements: dict[str, Measurement] = field(default_factory=dict)

    @property
    def categories(self) -> set[str]:
        """Names of the categories measured in this report."""
        return set(self.measurements)

    def value_of(self, category: str) -> float | None:
        """Return the numeric value for ``category`` or None if not measured."""
        m = self.measurements.get(category)
        return None if m is None else m.value


@dataclass(frozen=True)
class CategoryComparison:
    """Change of a single category between the two compared reports.

    ``missing_side`` is ``"reference"`` or ``"comparison"`` when the category
    was only measured on one side; delta-related fields are then None.
    ``confidence`` is 1.0 for identical values and shrinks as the change grows
    relative to the larger of the two values.
    """

    category: str
    polarity: Polarity
    reference_value: float | None
    comparison_value: float | None
    direction: Direction
    delta: float | None = None
    relative_change: float | None = None
    threshold_mode: ThresholdMode | None = None
    magnitude: Magnitude | None = None
    flagged: bool = False
    missing_side: str | None = None
    confidence: float | None = None

    @property
    def has_data(self) -> bool:
        """True when both sides were measured and a delta exists."""
        return self.direction is not Direction.NO_DATA


@dataclass(frozen=True)
class ComparisonResult:
    """Structured description of what changed between two reports."""

    reference_report: EvaluationReport
    comparison_report: EvaluationReport
    mode: ComparisonMode
    regression_threshold: float
    epsilon: float
    categories: tuple[CategoryComparison, ...]
    trend: Trend
    flagged: tuple[str, ...] = ()

    def get(self, category: str) -> CategoryComparison | None:
        """Return the entry for ``category`` or None."""
        for entry in self.categories:
            if entry.category == category:
                return entry
        return None

    def _with_direction(self, direction: Direction) -> list[CategoryComparison]:
        return [c for c in self.categories if c.direction is direction]

    @property
    def improved(self) -> list[CategoryComparison]:
        return self._with_direction(Direction.IMPROVED)

    @property
    def declined(self) -> list[CategoryComparison]:
        return self._with_direction(Direction.DECLINED)

    @property
    def unchanged(self) -> list[CategoryComparison]:
        return self._with_direction(Direction.UNCHANGED)

    @property
    def no_data(self) -> list[CategoryComparison]:
        return self._with_direction(Direction.NO_DATA)


@dataclass(frozen=True)
class CategoryContribution:
    """Weighted share of one category in a composite progress score."""

    category: str
    weight: float
    normalized_weight: float
    sub_score: float
    points: float
    contribution: float
    scored: bool


@dataclass(frozen=True)
class ProgressScore:
    """Composite progress score (0-100) plus its per-category breakdown.

    Scores are only comparable when computed with the same ``weights`` and
    saturation bounds; see :meth:`is_comparable_with`.
    """

    composite: float
    contributions: tuple[CategoryContribution, ...]
    weights: dict[str, float]
    saturation: float
    absolute_saturation: float

    def contribution_for(self, category: str) -> CategoryContribution | None:
        """Return the contribution entry for ``category`` or None."""
        for c in self.contributions:
            if c.category == category:
                return c
        return None

    def is_comparable_with(self, other: ProgressScore) -> bool:
        """True when ``other`` was computed with the same configuration."""
        return (
            self.weights == other.weights
            and self.saturation == other.saturation
            and self.absolute_saturation == other.absolute_saturation
        )
