"""Conversión de historiales de evaluación a DataFrames."""

from __future__ import annotations

import math
from collections.abc import Sequence
from datetime import datetime

import pandas as pd

from progress_tool.errors import InconsistentHistoryError, InsufficientDataError
from progress_tool.model import EvaluationReport

_BASE_COLUMNS = ["timestamp", "report_id", "subject_id"]


def history_to_frame(history: Sequence[EvaluationReport]) -> pd.DataFrame:
    """Convert reports to a wide DataFrame, one row per report.

    Columns are timestamp, report_id, subject_id and then one column per
    category (sorted). Categories missing from a report are NaN.
    """
    categories = sorted({c for r in history for c in r.categories})
    if not history:
        return pd.DataFrame(columns=_BASE_COLUMNS)

    rows = [
        {
            "timestamp": r.timestamp,
            "report_id": r.report_id,
            "subject_id": r.subject_id,
            **{c: r.value_of(c) for c in categories},
        }
        for r in history
    ]
    df = pd.DataFrame(rows, columns=_BASE_COLUMNS + categories)
    for c in categories:
        df[c] = pd.to_numeric(df[c], errors="coerce")
    return df.sort_values("timestamp").reset_index(drop=True)


def category_columns(frame: pd.DataFrame) -> list[str]:
    """Return the category columns of a history frame."""
    return [c for c in frame.columns if c not in _BASE_COLUMNS]


def category_series(frame: pd.DataFrame, category: str) -> pd.Series:
    """Non-null values of one category indexed by timestamp.

    A category absent from the frame yields an empty float series.
    """
    if frame.empty or category not in frame.columns:
        return pd.Series(dtype="float64", name=category)
    s = frame.set_index("timestamp")[category].dropna().astype("float64")
    s.name = category
    return s


def validate_history(history: Sequence[EvaluationReport], *, min_reports: int = 2) -> None:
    """Check that reports form a single subject's timeline.

    Args:
        history: Reports to check, in any order.
        min_reports: Minimum number of reports required.

    Raises:
        InsufficientDataError: If there are fewer than ``min_reports`` reports.
        InconsistentHistoryError: If subjects differ, a timestamp repeats or a
            measurement is not a finite number.
    """
    if len(history) < min_reports:
        raise InsufficientDataError(
            f"At least {min_reports} reports are required, got {len(history)}"
        )
    subjects = {r.subject_id for r in history}
    if len(subjects) > 1:
        raise InconsistentHistoryError(
            f"History mixes subjects: {', '.join(sorted(subjects))}"
        )
    seen: set[datetime] = set()
    for r in history:
        if r.timestamp in seen:
            raise InconsistentHistoryError(
                f"Duplicate report timestamp {r.timestamp.isoformat()}"
            )
        seen.add(r.timestamp)
        for category, m in r.measurements.items():
            if not math.isfinite(m.value):
                raise InconsistentHistoryError(
                    f"Report {r.report_id}: {category} is not a finite number ({m.value!r})"
                )
