"""Exportación a Excel de comparaciones, puntajes y tendencias."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side

from progress_tool.model import ComparisonResult, ProgressScore
from progress_tool.trends import CategoryTrend

_COMPARISON_HEADERS: dict[str, str] = {
    "category": "Categoría",
    "reference_value": "Referencia",
    "comparison_value": "Actual",
    "delta": "Cambio",
    "relative_change": "Cambio\nrelativo",
    "direction": "Dirección",
    "threshold_mode": "Umbral",
    "confidence": "Confianza",
    "flagged": "Atención",
}

_SCORE_HEADERS: dict[str, str] = {
    "category": "Categoría",
    "weight": "Peso",
    "normalized_weight": "Peso\nnormalizado",
    "points": "Puntos",
    "contribution": "Aporte",
}

_TREND_HEADERS: dict[str, str] = {
    "category": "Categoría",
    "movement": "Tendencia",
    "strength": "Fuerza",
    "slope": "Pendiente",
    "r_squared": "R²",
    "predicted_next": "Próximo\nestimado",
    "data_points": "Puntos\nde datos",
}

_NUMBER_FORMATS: dict[str, str] = {
    "Referencia": "0.00",
    "Actual": "0.00",
    "Cambio": "+0.00;-0.00;0.00",
    "Cambio\nrelativo": "+0.0%;-0.0%;0.0%",
    "Confianza": "0%",
    "Peso": "0.00",
    "Peso\nnormalizado": "0.0%",
    "Puntos": "0.0",
    "Aporte": "0.00",
    "Pendiente": "0.000",
    "R²": "0.00",
    "Próximo\nestimado": "0.00",
}

_FLAG_FILL = PatternFill(fill_type="solid", start_color="FFF4CCCC", end_color="FFF4CCCC")


@dataclass(frozen=True)
class ExcelLayout:
    """Sheet names and widths for the progress workbook."""

    comparison_sheet: str = "Comparación"
    score_sheet: str = "Puntaje"
    trends_sheet: str = "Tendencias"
    column_width: int = 14


def comparison_to_frame(result: ComparisonResult) -> pd.DataFrame:
    """One row per category of a comparison."""
    rows = [
        {
            "category": c.category,
            "reference_value": c.reference_value,
            "comparison_value": c.comparison_value,
            "delta": c.delta,
            "relative_change": c.relative_change,
            "direction": c.direction.value,
            "threshold_mode": c.threshold_mode.value if c.threshold_mode else "",
            "confidence": c.confidence,
            "flagged": "sí" if c.flagged else "",
        }
        for c in result.categories
    ]
    return pd.DataFrame(rows, columns=list(_COMPARISON_HEADERS))


def score_to_frame(score: ProgressScore) -> pd.DataFrame:
    """Scored contributions plus a final composite row."""
    rows: list[dict[str, object]] = [
        {
            "category": c.category,
            "weight": c.weight,
            "normalized_weight": c.normalized_weight,
            "points": c.points,
            "contribution": c.contribution,
        }
        for c in score.contributions
        if c.scored
    ]
    rows.append(
        {
            "category": "TOTAL",
            "weight": None,
            "normalized_weight": 1.0,
            "points": None,
            "contribution": score.composite,
        }
    )
    return pd.DataFrame(rows, columns=list(_SCORE_HEADERS))


def trends_to_frame(trends: Mapping[str, CategoryTrend]) -> pd.DataFrame:
    """One row per analyzed category trend."""
    rows = [
        {
            "category": t.category,
            "movement": t.movement.value,
            "strength": t.strength.value,
            "slope": t.slope,
            "r_squared": t.r_squared,
            "predicted_next": t.predicted_next,
            "data_points": t.data_points,
        }
        for t in trends.values()
    ]
    return pd.DataFrame(rows, columns=list(_TREND_HEADERS))


def write_progress_xlsx(
    result: ComparisonResult,
    score: ProgressScore,
    out_path: Path,
    layout: ExcelLayout,
    trends: Mapping[str, CategoryTrend] | None = None,
) -> None:
    """Write a formatted progress workbook.

    Args:
        result: Comparison to export.
        score: Progress score computed from ``result``.
        out_path: Output path for the XLSX file.
        layout: Sheet names and widths.
        trends: Optional per-category trends; adds a third sheet.
    """
    out_path.parent.mkdir(parents=True, exist_ok=True)

    sheets = [
        (layout.comparison_sheet, comparison_to_frame(result).rename(columns=_COMPARISON_HEADERS)),
        (layout.score_sheet, score_to_frame(score).rename(columns=_SCORE_HEADERS)),
    ]
    if trends:
        sheets.append((layout.trends_sheet, trends_to_frame(trends).rename(columns=_TREND_HEADERS)))

    with pd.ExcelWriter(out_path, engine="openpyxl") as writer:
        for name, df in sheets:
            df.to_excel(writer, index=False, sheet_name=name)
            _format_sheet(writer.book[name], layout.column_width)
        _highlight_flagged(writer.book[layout.comparison_sheet])


def _style_header_row(ws: Any) -> None:
    """Aplica fuente negrita, alineación y borde a la fila de cabecera."""
    thin = Side(style="thin")
    border = Border(left=thin, right=thin, top=thin, bottom=thin)
    header_font = Font(bold=True)
    center = Alignment(horizontal="center", vertical="center", wrap_text=True)
    for cell in ws[1]:
        cell.font = header_font
        cell.alignment = center
        cell.border = border


def _style_body_rows(ws: Any) -> None:
    """Aplica alineación y borde a las filas de datos."""
    thin = Side(style="thin")
    border = Border(left=thin, right=thin, top=thin, bottom=thin)
    center = Alignment(horizontal="center", vertical="center")
    for row in ws.iter_rows(min_row=2):
        for cell in row:
            cell.alignment = center
            cell.border = border


def _get_header_col_index(ws: Any) -> dict[str, int]:
    """Devuelve mapa nombre de cabecera -> índice de columna (1-based)."""
    headers = [str(cell.value) for cell in ws[1]]
    return {name: idx + 1 for idx, name in enumerate(headers)}


def _apply_number_formats(ws: Any, col_index: dict[str, int]) -> None:
    """Aplica formatos numéricos por cabecera."""
    for row in ws.iter_rows(min_row=2):
        for header, fmt in _NUMBER_FORMATS.items():
            idx = col_index.get(header)
            if idx is not None:
                row[idx - 1].number_format = fmt


def _highlight_flagged(ws: Any) -> None:
    """Resalta las categorías marcadas para atención."""
    idx = _get_header_col_index(ws).get(_COMPARISON_HEADERS["flagged"])
    if idx is None:
        return
    for row in ws.iter_rows(min_row=2):
        if row[idx - 1].value:
            for cell in row:
                cell.fill = _FLAG_FILL


def _format_sheet(ws: Any, width: int) -> None:
    """Apply borders, widths and number formats to a worksheet.

    Args:
        ws: openpyxl worksheet.
        width: Column width for every column.
    """
    _style_header_row(ws)
    _style_body_rows(ws)
    col_index = _get_header_col_index(ws)
    for idx in col_index.values():
        letter = ws.cell(row=1, column=idx).column_letter
        ws.column_dimensions[letter].width = width
    ws.column_dimensions["A"].width = max(width, 24)
    _apply_number_formats(ws, col_index)
