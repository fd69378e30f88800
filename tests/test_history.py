from __future__ import annotations

from datetime import datetime, timezone

import pandas as pd

from progress_tool.history import category_columns, category_series, history_to_frame
from progress_tool.model import EvaluationReport, Measurement


def _report(day: int, **values: float) -> EvaluationReport:
    return EvaluationReport(
        report_id=f"r{day}",
        subject_id="u1",
        timestamp=datetime(2026, 2, day, tzinfo=timezone.utc),
        measurements={k: Measurement(value=v) for k, v in values.items()},
    )


def test_history_to_frame_empty() -> None:
    df = history_to_frame([])
    assert df.empty
    assert list(df.columns) == ["timestamp", "report_id", "subject_id"]


def test_history_to_frame_sorted_with_nan_for_missing() -> None:
    df = history_to_frame(
        [
            _report(3, calories=1800),
            _report(1, calories=2200, sleep_hours=5),
        ]
    )
    assert list(df["report_id"]) == ["r1", "r3"]
    assert list(df.columns) == [
        "timestamp",
        "report_id",
        "subject_id",
        "calories",
        "sleep_hours",
    ]
    assert df.loc[0, "sleep_hours"] == 5.0
    assert pd.isna(df.loc[1, "sleep_hours"])
    assert category_columns(df) == ["calories", "sleep_hours"]


def test_category_series_drops_missing_values() -> None:
    df = history_to_frame(
        [_report(1, a=1.0), _report(2, b=2.0), _report(3, a=3.0)]
    )
    s = category_series(df, "a")
    assert list(s) == [1.0, 3.0]
    assert s.name == "a"
    assert s.index[0] == pd.Timestamp("2026-02-01", tz="UTC")


def test_category_series_unknown_category_is_empty() -> None:
    df = history_to_frame([_report(1, a=1.0)])
    s = category_series(df, "zzz")
    assert s.empty
    assert category_series(pd.DataFrame(), "a").empty
