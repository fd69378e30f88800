"""CLI para comparar evaluaciones y calcular el puntaje de progreso."""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from datetime import datetime
from pathlib import Path

from dateutil import tz

from progress_tool.comparison import compare
from progress_tool.config import load_config, parse_mode, setup_logging, validate_threshold
from progress_tool.errors import ProgressAnalysisError, UnscorableComparisonError
from progress_tool.excel_writer import ExcelLayout, write_progress_xlsx
from progress_tool.formatting import (
    areas_of_concern,
    celebration_points,
    format_category,
    format_progress_score,
    format_trend,
    key_improvements,
    next_priorities,
)
from progress_tool.scoring import equal_weights, score
from progress_tool.sources.evaluations import EvaluationPaths, EvaluationSource
from progress_tool.trends import MIN_TREND_POINTS, analyze_trends, strongest_trends

logger = logging.getLogger(__name__)

_LOCAL_TZ = tz.tzlocal()


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed argparse namespace.
    """
    parser = argparse.ArgumentParser(
        description="Compara reportes de evaluación y calcula el puntaje de progreso."
    )
    parser.add_argument(
        "--history-dir",
        default=str(Path.home() / "progreso" / "evaluaciones"),
        help="Directorio con evaluations_*.json (default: ~/progreso/evaluaciones).",
    )
    parser.add_argument(
        "--history-file",
        default=None,
        help="Archivo de historial explícito (si no, el más reciente del directorio).",
    )
    parser.add_argument("--config", default=None, help="Archivo YAML de configuración.")
    parser.add_argument(
        "--mode",
        choices=["previous", "baseline"],
        default=None,
        help="Comparar contra el reporte anterior o contra el primero.",
    )
    parser.add_argument(
        "--threshold",
        type=float,
        default=None,
        help="Umbral de regresión (fracción del valor de referencia).",
    )
    parser.add_argument(
        "--out-dir",
        default=None,
        help="Si se indica, escribe un .xlsx con el detalle.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    """Run the progress CLI.

    Returns:
        Exit code (0 on success, 2 on analysis errors, malformed input or
        missing files).
    """
    ns = parse_args(argv)
    try:
        config = load_config(Path(ns.config).expanduser() if ns.config else None)
        setup_logging(config.logging)

        comparison_cfg = config.comparison
        if ns.mode:
            comparison_cfg = replace(comparison_cfg, mode=parse_mode(ns.mode))
        if ns.threshold is not None:
            comparison_cfg = replace(
                comparison_cfg, regression_threshold=validate_threshold(ns.threshold)
            )

        source = EvaluationSource(EvaluationPaths(root=Path(ns.history_dir).expanduser()))
        if ns.history_file:
            history_file = Path(ns.history_file).expanduser()
        else:
            source.validate()
            history_file = source.newest_json()
        history = source.load_history(history_file)

        result = compare(
            history,
            comparison_cfg.mode,
            comparison_cfg.regression_threshold,
            polarities=comparison_cfg.polarities,
            epsilon=comparison_cfg.epsilon,
        )
        weights = config.scoring.weights or equal_weights(result)
        if not weights:
            raise UnscorableComparisonError("No category has data on both sides")
        progress = score(
            result,
            weights,
            saturation=config.scoring.saturation,
            absolute_saturation=config.scoring.absolute_saturation,
        )
        trends = (
            analyze_trends(history, polarities=comparison_cfg.polarities)
            if len(history) >= MIN_TREND_POINTS
            else {}
        )
    except (ProgressAnalysisError, ValueError, FileNotFoundError) as exc:
        logger.error("Analysis failed: %s", exc)
        print(f"ERROR: {exc}", file=sys.stderr)
        return 2

    print(f"OK: History file: {history_file} ({len(history)} reports)")
    print(
        f"OK: {result.reference_report.report_id} -> {result.comparison_report.report_id}"
        f" ({result.mode.value}): {result.trend.value}"
    )
    for entry in result.categories:
        print(f"  {format_category(entry)}")
    print(f"OK: {format_progress_score(progress)}")
    for line in key_improvements(result):
        print(f"  + {line}")
    for line in areas_of_concern(result):
        print(f"  ! {line}")
    for line in celebration_points(result, progress):
        print(f"  * {line}")
    for line in next_priorities(result, progress):
        print(f"  > {line}")
    for trend in strongest_trends(trends):
        print(f"  ~ {format_trend(trend)}")
        for note in trend.insights:
            print(f"      {note}")

    if ns.out_dir:
        ts = datetime.now(tz=_LOCAL_TZ).strftime("%Y-%m-%d_%H-%M-%S")
        out_path = Path(ns.out_dir).expanduser() / f"progreso_{ts}.xlsx"
        write_progress_xlsx(result, progress, out_path, ExcelLayout(), trends=trends)
        print(f"OK: Output: {out_path}")
    return 0
