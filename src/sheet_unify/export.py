"""Excel export of the unified dataset, plus the JSON run report."""

from __future__ import annotations

import re
from datetime import date, datetime
from pathlib import Path
from typing import Any

import pandas as pd
from openpyxl import Workbook
from openpyxl.cell.cell import Cell
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.table import Table, TableStyleInfo
from openpyxl.worksheet.worksheet import Worksheet

from sheet_unify.config import DEFAULT_SHEET_LABEL, REPORT_NAME
from sheet_unify.io import write_json
from sheet_unify.models import ROW_KEY, SOURCE_KEY, UnifiedDataset, UnifyReport

# ── Style constants ──────────────────────────────────────────────

HEADER_FONT = Font(name="Calibri", bold=True, size=11, color="FFFFFF")
HEADER_FILL = PatternFill(start_color="2F5496", end_color="2F5496", fill_type="solid")
HEADER_ALIGN = Alignment(horizontal="center", vertical="center", wrap_text=True)
PROVENANCE_FILL = PatternFill(start_color="D6E4F0", end_color="D6E4F0", fill_type="solid")
PROVENANCE_FONT = Font(name="Calibri", bold=True, size=11, color="2F5496")
VALUE_FONT = Font(name="Calibri", size=11)

DATE_FMT = "yyyy-mm-dd"
INT_FMT = "0"

_AUTO_WIDTH_SAMPLE_ROWS = 300
_EXCEL_FORMULA_PREFIXES = ("=", "+", "-", "@")
# Excel caps sheet titles at 31 characters and forbids a few symbols.
_SHEET_TITLE_MAX = 31
_SHEET_TITLE_FORBIDDEN_RE = re.compile(r"[\[\]:*?/\\]")


# ── Helpers ──────────────────────────────────────────────────────


def _sheet_title(label: str) -> str:
    cleaned = _SHEET_TITLE_FORBIDDEN_RE.sub("_", label).strip()
    return (cleaned or DEFAULT_SHEET_LABEL)[:_SHEET_TITLE_MAX]


def _sanitize_table_name(name: str) -> str:
    cleaned = re.sub(r"[^A-Za-z0-9_]", "_", name)
    if not cleaned:
        cleaned = "Table"
    if not re.match(r"^[A-Za-z_]", cleaned):
        cleaned = f"_{cleaned}"
    return cleaned[:255]


def _style_header(ws: Worksheet, col_names: list[str]) -> None:
    for c_idx, name in enumerate(col_names, 1):
        cell = ws.cell(row=1, column=c_idx)
        cell.alignment = HEADER_ALIGN
        if name in (SOURCE_KEY, ROW_KEY):
            cell.font = PROVENANCE_FONT
            cell.fill = PROVENANCE_FILL
        else:
            cell.font = HEADER_FONT
            cell.fill = HEADER_FILL


def _auto_width(ws: Worksheet) -> None:
    max_row = min(ws.max_row, _AUTO_WIDTH_SAMPLE_ROWS + 1)  # include header row
    for c_idx in range(1, ws.max_column + 1):
        letter = get_column_letter(c_idx)
        width = 0
        for row in ws.iter_rows(min_row=1, max_row=max_row, min_col=c_idx, max_col=c_idx):
            width = max(width, len(str(row[0].value or "")))
        ws.column_dimensions[letter].width = min(width + 4, 40)


def _excel_value(val: Any) -> Any:
    try:
        if pd.isna(val):
            return None
    except (TypeError, ValueError):
        return val

    if isinstance(val, pd.Timestamp):
        val = val.to_pydatetime()
    if isinstance(val, datetime) and val.tzinfo:
        return val.replace(tzinfo=None)
    return val


def _keep_as_text(cell: Cell) -> None:
    """Store formula-like strings as plain text, value untouched."""
    val = cell.value
    if not isinstance(val, str):
        return
    stripped = val.lstrip()
    if stripped and stripped[0] in _EXCEL_FORMULA_PREFIXES:
        cell.data_type = "s"
        cell.quotePrefix = True


def dataset_frame(dataset: UnifiedDataset) -> pd.DataFrame:
    """One column per key present across the rows, in first-seen order."""
    if not dataset.rows:
        return pd.DataFrame(columns=[*dataset.fields, SOURCE_KEY, ROW_KEY])
    return pd.DataFrame(dataset.rows, dtype=object)


def _add_excel_table(ws: Worksheet, name: str, ncols: int, nrows: int) -> None:
    end_col = get_column_letter(ncols)
    table = Table(displayName=_sanitize_table_name(name), ref=f"A1:{end_col}{nrows + 1}")
    table.tableStyleInfo = TableStyleInfo(
        name="TableStyleMedium9", showFirstColumn=False,
        showLastColumn=False, showRowStripes=True, showColumnStripes=False,
    )
    ws.add_table(table)


# ── Public API ───────────────────────────────────────────────────


def export_unified(
    path: Path, dataset: UnifiedDataset, sheet_label: str = DEFAULT_SHEET_LABEL
) -> Path:
    """Write *dataset* to a single-sheet workbook at *path* and return it."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    frame = dataset_frame(dataset)
    col_names = [str(c) for c in frame.columns]

    wb = Workbook()
    ws = wb.active
    if ws is None:
        ws = wb.create_sheet()
    ws.title = _sheet_title(sheet_label)

    for c_idx, col_name in enumerate(col_names, 1):
        ws.cell(row=1, column=c_idx, value=col_name)
    for r_idx, row_vals in enumerate(frame.itertuples(index=False, name=None), 2):
        for c_idx, val in enumerate(row_vals, 1):
            cell = ws.cell(row=r_idx, column=c_idx, value=_excel_value(val))
            cell.font = VALUE_FONT
            _keep_as_text(cell)
            if isinstance(cell.value, date) and not isinstance(cell.value, datetime):
                cell.number_format = DATE_FMT
            elif col_names[c_idx - 1] == ROW_KEY:
                cell.number_format = INT_FMT

    _style_header(ws, col_names)
    ws.freeze_panes = "A2"
    _auto_width(ws)
    if len(frame) > 0 and col_names:
        _add_excel_table(ws, ws.title, len(col_names), len(frame))

    tmp_path = path.with_name(f"{path.stem}.tmp{path.suffix}")
    wb.save(tmp_path)
    tmp_path.replace(path)
    return path


def write_run_report(out_dir: Path, report: UnifyReport, dataset: UnifiedDataset) -> Path:
    """Write ``unify_report.json`` into *out_dir* and return its path."""
    payload = {
        **report.to_dict(),
        "fields": list(dataset.fields),
        "sources": dataset.sources(),
        "completion_rate": dataset.completion_rate(),
    }
    return write_json(Path(out_dir) / REPORT_NAME, payload)
