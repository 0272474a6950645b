"""I/O helpers — decode source spreadsheets, write JSON artifacts."""

from __future__ import annotations

import asyncio
import csv
import json
import zipfile
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from io import BytesIO, StringIO
from pathlib import Path
from typing import Any, Callable, cast

import pandas as pd
from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from sheet_unify.errors import DecodeError
from sheet_unify.models import CellValue

EXCEL_SUFFIXES = (".xlsx", ".xlsm", ".xltx", ".xltm")
SUPPORTED_SUFFIXES = (".csv", ".xls", *EXCEL_SUFFIXES)
CSV_SHEET_NAME = "Sheet1"
_CSV_DELIMITERS = ",;\t|"
_SNIFF_CHARS = 8192

Grid = list[list[CellValue]]

# ── Source files ─────────────────────────────────────────────────


@dataclass(frozen=True)
class SourceFile:
    """A spreadsheet on disk, identified by its file name."""

    path: Path
    name: str = ""

    def __post_init__(self) -> None:
        object.__setattr__(self, "path", Path(self.path))
        if not self.name:
            object.__setattr__(self, "name", self.path.name)

    def read_bytes(self) -> bytes:
        return self.path.read_bytes()

    async def read_bytes_async(self) -> bytes:
        return await asyncio.to_thread(self.path.read_bytes)


@dataclass
class WorkbookData:
    """Decoded workbook: sheet names in file order and their cell grids."""

    sheet_names: list[str] = field(default_factory=list)
    sheets: dict[str, Grid] = field(default_factory=dict)

    def first_sheet(self) -> Grid:
        if not self.sheet_names:
            return []
        return self.sheets[self.sheet_names[0]]


# ── Decoding ─────────────────────────────────────────────────────


def _cell(value: Any) -> CellValue:
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        return value
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime()
    return value


def _sniff_delimiter(text: str) -> str:
    try:
        return csv.Sniffer().sniff(text[:_SNIFF_CHARS], delimiters=_CSV_DELIMITERS).delimiter
    except csv.Error:
        # No candidate delimiter: a single-column file.
        return ","


def _csv_width(text: str, sep: str) -> int:
    return max((len(row) for row in csv.reader(StringIO(text), delimiter=sep)), default=0)


def _read_csv_frame(data: bytes, encoding: str, delimiter: str | None) -> pd.DataFrame:
    text = data.decode(encoding)
    sep = delimiter or _sniff_delimiter(text)
    # Rows may be wider than the header row; size the frame to the widest one.
    width = _csv_width(text, sep)
    return pd.read_csv(
        BytesIO(data),
        header=None,
        names=list(range(width)) if width else None,
        dtype=object,
        sep=sep,
        engine="c",
        encoding=encoding,
        encoding_errors="strict",
        keep_default_na=False,
        na_values=[""],
        skip_blank_lines=False,
    )


def _read_csv(data: bytes, filename: str, delimiter: str | None) -> WorkbookData:
    last_exc: Exception | None = None
    for encoding in ("utf-8-sig", "utf-8", "latin-1"):
        try:
            frame = _read_csv_frame(data, encoding, delimiter)
        except pd.errors.EmptyDataError:
            return WorkbookData([CSV_SHEET_NAME], {CSV_SHEET_NAME: []})
        except (UnicodeDecodeError, pd.errors.ParserError, csv.Error) as exc:
            last_exc = exc
            continue
        rows = [[_cell(v) for v in row] for row in frame.itertuples(index=False, name=None)]
        return WorkbookData([CSV_SHEET_NAME], {CSV_SHEET_NAME: rows})
    raise DecodeError(filename, "CSV decode or parse failed") from last_exc


def _read_xlsx(data: bytes, filename: str) -> WorkbookData:
    try:
        wb = load_workbook(BytesIO(data), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, ValueError, OSError) as exc:
        raise DecodeError(filename, "not a readable Excel workbook") from exc
    try:
        sheets: dict[str, Grid] = {}
        for ws in wb.worksheets:
            sheets[ws.title] = [list(row) for row in ws.iter_rows(values_only=True)]
        return WorkbookData(list(sheets), sheets)
    finally:
        wb.close()


def _read_xls(data: bytes, filename: str) -> WorkbookData:
    read_excel = cast(Callable[..., dict[str, pd.DataFrame]], getattr(pd, "read_excel"))
    try:
        frames = read_excel(BytesIO(data), engine="xlrd", header=None, sheet_name=None, dtype=object)
    except ImportError as exc:
        raise DecodeError(
            filename,
            "unsupported .xls input unless 'xlrd' is installed; "
            "convert to .xlsx or run: pip install xlrd",
        ) from exc
    except ValueError as exc:
        raise DecodeError(filename, "not a readable Excel workbook") from exc
    sheets = {
        str(name): [[_cell(v) for v in row] for row in frame.itertuples(index=False, name=None)]
        for name, frame in frames.items()
    }
    return WorkbookData(list(sheets), sheets)


def read_workbook(data: bytes, filename: str, *, delimiter: str | None = None) -> WorkbookData:
    """Decode *data* according to the extension of *filename*.

    Raises
    ------
    DecodeError
        If the extension is unsupported or the content cannot be parsed.
    """
    suffix = Path(filename).suffix.lower()
    if suffix == ".csv":
        return _read_csv(data, filename, delimiter)
    if suffix in EXCEL_SUFFIXES:
        return _read_xlsx(data, filename)
    if suffix == ".xls":
        return _read_xls(data, filename)
    raise DecodeError(
        filename, f"unsupported file type {suffix!r}; use {', '.join(SUPPORTED_SUFFIXES)}"
    )


def sheet_to_rows(sheet: Sequence[Sequence[CellValue]]) -> Grid:
    """Return *sheet* as a list of rows with trailing empty cells trimmed.

    Interior blank rows are kept so row numbers match the sheet; trailing
    blank rows (left behind by formatting) are dropped.
    """
    rows: Grid = []
    for raw in sheet:
        row = list(raw)
        while row and row[-1] is None:
            row.pop()
        rows.append(row)
    while rows and not rows[-1]:
        rows.pop()
    return rows


def read_source_rows(data: bytes, filename: str) -> Grid:
    """Rows of the first worksheet of a source file, header row included."""
    return sheet_to_rows(read_workbook(data, filename).first_sheet())


# ── Writing ──────────────────────────────────────────────────────


def _json_default(obj: Any) -> Any:
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, (datetime, date, time)):
        return obj.isoformat()
    if isinstance(obj, timedelta):
        return obj.total_seconds()
    item = getattr(obj, "item", None)
    if callable(item):
        converted = item()
        if isinstance(converted, (str, int, float, bool)) or converted is None:
            return converted
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def to_json_line(data: Any) -> str:
    return json.dumps(data, sort_keys=True, ensure_ascii=False, default=_json_default)


def write_json(path: Path, data: Any) -> Path:
    """Write *data* as pretty-printed JSON to *path* (atomic + deterministic)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    payload = json.dumps(
        data,
        indent=2,
        sort_keys=True,
        ensure_ascii=False,
        default=_json_default,
    ) + "\n"
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(payload, encoding="utf-8")
    tmp_path.replace(path)
    return path
