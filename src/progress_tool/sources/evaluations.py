"""Lectura de exportaciones JSON de reportes de evaluación."""

from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

from dateutil import parser as date_parser
from dateutil import tz

from progress_tool.model import EvaluationReport, Measurement
from progress_tool.sources.base import DataSource, SourcePaths

logger = logging.getLogger(__name__)

_DEFAULT_TZ = tz.UTC

# metric name -> path inside "user_evaluation_report"
_NESTED_METRICS: dict[str, tuple[str, ...]] = {
    "diet_quality_score": (
        "nutritional_analysis",
        "current_status",
        "overall_diet_quality_score",
    ),
    "nutritional_completeness": (
        "nutritional_analysis",
        "current_status",
        "nutritional_completeness",
    ),
    "anti_inflammatory_index": (
        "nutritional_analysis",
        "current_status",
        "anti_inflammatory_index",
    ),
    "gut_health_score": ("nutritional_analysis", "current_status", "gut_health_score"),
    "metabolic_health_score": (
        "nutritional_analysis",
        "current_status",
        "metabolic_health_score",
    ),
    "cooking_confidence": ("personalization_matrix", "skill_profile", "confidence_score"),
    "technique_mastery": (
        "personalization_matrix",
        "skill_profile",
        "recommended_techniques",
    ),
    "equipment_utilization": (
        "personalization_matrix",
        "equipment_optimization",
        "utilization_rate",
    ),
    "time_efficiency": (
        "personalization_matrix",
        "time_analysis",
        "time_utilization_efficiency",
    ),
    "evaluation_completeness": ("user_profile_summary", "evaluation_completeness"),
    "data_quality": ("user_profile_summary", "data_quality_score"),
}


@dataclass(frozen=True)
class EvaluationPaths(SourcePaths):
    """Paths for evaluation report exports."""

    # root: folder containing evaluations_*.json


class EvaluationSource(DataSource):
    """Evaluation report JSON reading source."""

    def newest_json(self) -> Path:
        """Return newest evaluations_*.json by mtime."""
        files = sorted(
            self._paths.root.glob("evaluations_*.json"),
            key=lambda p: p.stat().st_mtime,
            reverse=True,
        )
        if not files:
            raise FileNotFoundError(f"No evaluations_*.json in {self._paths.root}")
        return files[0]

    def load_history(self, path: Path) -> list[EvaluationReport]:
        """Parse an evaluation export into typed reports.

        Args:
            path: Path to JSON file.

        Returns:
            Reports sorted by timestamp.

        Raises:
            ValueError: If the JSON shape is invalid.
        """
        raw = json.loads(path.read_text(encoding="utf-8"))
        if isinstance(raw, dict) and "reports" in raw:
            raw = raw["reports"]
        if not isinstance(raw, list):
            raise ValueError("Evaluation JSON must be a list or {'reports': [...]}")

        out = [_item_to_report(item, idx) for idx, item in enumerate(raw)]
        out.sort(key=lambda r: r.timestamp)
        logger.info("Loaded %d evaluation reports from %s", len(out), path)
        return out


def _item_to_report(item: Any, idx: int) -> EvaluationReport:
    """Convert one JSON item (flat or nested shape) into an EvaluationReport."""
    if not isinstance(item, dict):
        raise ValueError(f"Report #{idx} must be an object")
    if "user_evaluation_report" in item:
        return _nested_to_report(item, idx)
    return _flat_to_report(item, idx)


def _flat_to_report(item: dict[str, Any], idx: int) -> EvaluationReport:
    categories = item.get("categories")
    if not isinstance(categories, dict):
        raise ValueError(f"Report #{idx} has no 'categories' object")
    measurements = {
        str(name): _parse_measurement(value, f"report #{idx}, {name}")
        for name, value in categories.items()
    }
    return EvaluationReport(
        report_id=str(item.get("report_id") or f"report-{idx}"),
        subject_id=_subject_of(item, idx),
        timestamp=_parse_timestamp(item.get("timestamp"), item.get("epoch")),
        measurements=measurements,
    )


def _nested_to_report(item: dict[str, Any], idx: int) -> EvaluationReport:
    body = item["user_evaluation_report"]
    if not isinstance(body, dict):
        raise ValueError(f"Report #{idx}: 'user_evaluation_report' must be an object")
    measurements: dict[str, Measurement] = {}
    for name, path in _NESTED_METRICS.items():
        value = _dig(body, path)
        if value is None:
            continue
        if isinstance(value, list):
            value = len(value)
        measurements[name] = _parse_measurement(value, f"report #{idx}, {name}")
    ts = item.get("evaluation_date") or item.get("created_at") or body.get("generated_at")
    return EvaluationReport(
        report_id=str(body.get("report_id") or item.get("id") or f"report-{idx}"),
        subject_id=_subject_of(item, idx),
        timestamp=_parse_timestamp(ts, item.get("epoch")),
        measurements=measurements,
    )


def _dig(data: dict[str, Any], path: tuple[str, ...]) -> Any:
    node: Any = data
    for key in path:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def _subject_of(item: dict[str, Any], idx: int) -> str:
    subject = item.get("subject_id") or item.get("user_id")
    if subject is None:
        raise ValueError(f"Report #{idx} has no subject_id/user_id")
    return str(subject)


def _parse_measurement(value: Any, where: str) -> Measurement:
    """Accept a bare number or {"value": number, "notes": str}."""
    notes = None
    if isinstance(value, dict):
        notes = _parse_notes(value.get("notes"))
        value = value.get("value")
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise ValueError(f"{where}: expected a number, got {value!r}")
    if not math.isfinite(value):
        raise ValueError(f"{where}: expected a finite number, got {value!r}")
    return Measurement(value=float(value), notes=notes)


def _parse_notes(raw: Any) -> str | None:
    """Normaliza las notas (vacío -> None)."""
    if raw is None:
        return None
    notes = str(raw).strip()
    return notes if notes else None


def _parse_timestamp(ts_str: Any, epoch: Any) -> datetime:
    """Parse an ISO-like timestamp or an epoch; naive values are UTC."""
    if isinstance(ts_str, str) and ts_str.strip():
        dt = date_parser.isoparse(ts_str.strip())
        return dt if dt.tzinfo is not None else dt.replace(tzinfo=_DEFAULT_TZ)

    if epoch is not None:
        return datetime.fromtimestamp(int(epoch), tz=_DEFAULT_TZ)

    raise ValueError("Missing timestamp and epoch")
