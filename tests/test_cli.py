"""Tests for CLI entrypoints."""

from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any, cast

import pytest

from progress_tool import cli
from progress_tool.comparison import compare
from progress_tool.sources.evaluations import EvaluationPaths, EvaluationSource


def _write_history(path: Path, reports: list[dict[str, Any]]) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(reports), encoding="utf-8")
    return path


def _reports() -> list[dict[str, Any]]:
    return [
        {
            "report_id": "r1",
            "subject_id": "u1",
            "timestamp": "2026-01-01T09:00:00Z",
            "categories": {"calories": 2200, "sleep_hours": 5},
        },
        {
            "report_id": "r2",
            "subject_id": "u1",
            "timestamp": "2026-01-15T09:00:00Z",
            "categories": {"calories": 1900, "sleep_hours": 6},
        },
    ]


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("PROGRESS_TOOL_LOG_LEVEL", raising=False)
    monkeypatch.delenv("PROGRESS_TOOL_REGRESSION_THRESHOLD", raising=False)


def test_parse_args_custom_values() -> None:
    ns = cli.parse_args(
        ["--history-dir", "/tmp/base", "--mode", "baseline", "--threshold", "0.1"]
    )
    assert ns.history_dir == "/tmp/base"
    assert ns.mode == "baseline"
    assert ns.threshold == 0.1
    assert ns.out_dir is None


def test_main_happy_path(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    hist_dir = tmp_path / "evals"
    _write_history(hist_dir / "evaluations_u1.json", _reports())
    config = tmp_path / "config.yaml"
    config.write_text(
        "comparison:\n  polarities:\n    calories: lower_is_better\n", encoding="utf-8"
    )
    out_dir = tmp_path / "salidas"

    code = cli.main(
        ["--history-dir", str(hist_dir), "--config", str(config), "--out-dir", str(out_dir)]
    )

    assert code == 0
    out = capsys.readouterr().out
    assert "r1 -> r2 (previous): improving" in out
    assert "Overall: " in out
    assert "  * Excellent sleep hours performance (score: 90)" in out
    assert "  > Continue current health strategies" in out
    outputs = list(out_dir.glob("progreso_*.xlsx"))
    assert len(outputs) == 1


def test_main_with_explicit_file_and_weights(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    history = _write_history(tmp_path / "any_name.json", _reports())
    config = tmp_path / "config.yaml"
    config.write_text("scoring:\n  weights:\n    sleep_hours: 1\n", encoding="utf-8")

    code = cli.main(
        [
            "--history-dir",
            str(tmp_path / "unused"),
            "--history-file",
            str(history),
            "--config",
            str(config),
        ]
    )

    assert code == 0
    out = capsys.readouterr().out
    assert "sleep hours: " in out
    assert "calories: " in out.split("Overall:")[0]


def test_main_reports_analysis_errors(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    history = _write_history(tmp_path / "evaluations_one.json", _reports()[:1])

    code = cli.main(["--history-dir", str(tmp_path), "--history-file", str(history)])

    assert code == 2
    assert "At least 2 reports" in capsys.readouterr().err


def test_main_reports_unscorable_weights(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    history = _write_history(tmp_path / "evaluations_u1.json", _reports())
    config = tmp_path / "config.yaml"
    config.write_text("scoring:\n  weights:\n    mood: 1\n", encoding="utf-8")

    code = cli.main(
        ["--history-dir", str(tmp_path), "--history-file", str(history), "--config", str(config)]
    )

    assert code == 2
    assert "ERROR:" in capsys.readouterr().err


def test_main_rejects_bad_threshold(tmp_path: Path) -> None:
    history = _write_history(tmp_path / "evaluations_u1.json", _reports())
    code = cli.main(
        ["--history-dir", str(tmp_path), "--history-file", str(history), "--threshold", "0"]
    )
    assert code == 2


def test_main_reports_missing_inputs(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    assert cli.main(["--history-dir", str(tmp_path / "missing")]) == 2
    assert "ERROR:" in capsys.readouterr().err

    history = _write_history(tmp_path / "evaluations_u1.json", _reports())
    code = cli.main(
        [
            "--history-dir",
            str(tmp_path),
            "--history-file",
            str(history),
            "--config",
            str(tmp_path / "nope.yaml"),
        ]
    )
    assert code == 2


def test_main_reports_malformed_export(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    reports = _reports()
    del reports[1]["timestamp"]
    _write_history(tmp_path / "evaluations_u1.json", reports)
    (tmp_path / "evaluations_broken.json").write_text("[", encoding="utf-8")

    code = cli.main(
        ["--history-dir", str(tmp_path), "--history-file", str(tmp_path / "evaluations_u1.json")]
    )
    assert code == 2
    assert "Missing timestamp and epoch" in capsys.readouterr().err

    code = cli.main(
        ["--history-dir", str(tmp_path), "--history-file", str(tmp_path / "evaluations_broken.json")]
    )
    assert code == 2


def test_main_uses_newest_file_and_fixed_output_name(
    monkeypatch: pytest.MonkeyPatch, tmp_path: Path
) -> None:
    class _EvaluationSource:
        def __init__(self, paths: Any) -> None:
            self.paths = paths

        def validate(self) -> None:
            return None

        def newest_json(self) -> Path:
            return Path("evaluations_latest.json")

        def load_history(self, _: Path) -> list[Any]:
            return ["r1", "r2"]

    captured: dict[str, object] = {}

    def _compare(history: list[Any], mode: Any, threshold: float, **_: Any) -> Any:
        captured["history"] = history
        captured["threshold"] = threshold
        return _real_compare(tmp_path)

    def _write_progress_xlsx(result: Any, progress: Any, out_path: Path, *_: Any, **__: Any) -> None:
        captured["out_path"] = out_path

    class _FixedDatetime(datetime):
        @classmethod
        def now(cls, tz: Any | None = None) -> _FixedDatetime:
            return cls(2025, 12, 31, 23, 59, 1, tzinfo=tz)

    monkeypatch.setattr(cli, "EvaluationSource", _EvaluationSource)
    monkeypatch.setattr(cli, "compare", _compare)
    monkeypatch.setattr(cli, "write_progress_xlsx", _write_progress_xlsx)
    monkeypatch.setattr(cli, "datetime", _FixedDatetime)

    code = cli.main(
        ["--history-dir", str(tmp_path), "--threshold", "0.2", "--out-dir", str(tmp_path / "out")]
    )

    assert code == 0
    assert captured["history"] == ["r1", "r2"]
    assert captured["threshold"] == 0.2
    out_path = cast(Path, captured["out_path"])
    assert out_path.name == "progreso_2025-12-31_23-59-01.xlsx"


def _real_compare(tmp_path: Path) -> Any:
    path = _write_history(tmp_path / "real" / "evaluations_u1.json", _reports())
    history = EvaluationSource(EvaluationPaths(root=path.parent)).load_history(path)
    return compare(history, "previous", 0.05)
