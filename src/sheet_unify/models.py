"""Data models shared across the package."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from numbers import Integral
from typing import Any, Union

CellValue = Union[str, int, float, bool, datetime, date, time, timedelta, None]
"""A raw spreadsheet cell, passed through the engine without coercion."""

MappedRow = dict[str, Any]
"""One unified record: every standard field, then ``_source`` and ``_row``."""

SOURCE_KEY = "_source"
ROW_KEY = "_row"


def _to_non_negative_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise TypeError(f"{field_name} must be an integer")
    result = int(value)
    if result < 0:
        raise ValueError(f"{field_name} must be >= 0")
    return result


def _to_string_list(values: Sequence[Any] | None, field_name: str) -> list[str]:
    if values is None:
        return []
    if isinstance(values, str):
        raise TypeError(f"{field_name} must be a sequence of strings")
    normalized: list[str] = []
    for item in values:
        if not isinstance(item, str):
            raise TypeError(f"{field_name} items must be strings")
        normalized.append(item)
    return normalized


@dataclass
class FileMapping:
    """Headers, preview sample and header→field mapping for one source file."""

    headers: list[str] = field(default_factory=list)
    mapping: dict[str, str | None] = field(default_factory=dict)
    preview: list[list[CellValue]] = field(default_factory=list)

    def target(self, header: str) -> str | None:
        return self.mapping.get(header)

    def sample_values(self, index: int) -> list[CellValue]:
        """Preview values found under the header at *index*."""
        return [row[index] if index < len(row) else None for row in self.preview]

    def percent_mapped(self) -> int:
        if not self.headers:
            return 0
        mapped = sum(1 for header in self.headers if self.mapping.get(header))
        return round(mapped / len(self.headers) * 100)

    def to_dict(self) -> dict[str, Any]:
        return {
            "headers": list(self.headers),
            "mapping": dict(self.mapping),
            "preview": [list(row) for row in self.preview],
        }


@dataclass
class UnifiedDataset:
    """Unified rows across every processed file, in processing order."""

    fields: list[str] = field(default_factory=list)
    rows: list[MappedRow] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.rows)

    def extend(self, rows: Sequence[MappedRow]) -> None:
        self.rows.extend(rows)

    def sources(self) -> list[str]:
        """Distinct ``_source`` values in first-seen order."""
        seen: dict[str, None] = {}
        for row in self.rows:
            seen.setdefault(row[SOURCE_KEY], None)
        return list(seen)

    def completion_rate(self) -> int:
        """Percentage of field cells that hold a value."""
        total = len(self.rows) * len(self.fields)
        if not total:
            return 0
        filled = sum(
            1 for row in self.rows for name in self.fields if row.get(name) is not None
        )
        return round(filled / total * 100)


@dataclass
class UnifyReport:
    """Outcome of a full unification batch.

    Contract invariant: ``files_ok + len(failed_files) + files_skipped == files_in``.
    """

    files_in: int = 0
    files_ok: int = 0
    files_skipped: int = 0
    rows_out: int = 0
    failed_files: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.files_in = _to_non_negative_int(self.files_in, "files_in")
        self.files_ok = _to_non_negative_int(self.files_ok, "files_ok")
        self.files_skipped = _to_non_negative_int(self.files_skipped, "files_skipped")
        self.rows_out = _to_non_negative_int(self.rows_out, "rows_out")
        self.failed_files = _to_string_list(self.failed_files, "failed_files")
        self.warnings = _to_string_list(self.warnings, "warnings")
        if self.files_ok + len(self.failed_files) + self.files_skipped != self.files_in:
            raise ValueError("files_in must equal files_ok + failed_files + files_skipped")

    @property
    def files_failed(self) -> int:
        return len(self.failed_files)

    def to_dict(self) -> dict[str, Any]:
        return {
            "files_in": self.files_in,
            "files_ok": self.files_ok,
            "files_failed": self.files_failed,
            "files_skipped": self.files_skipped,
            "rows_out": self.rows_out,
            "failed_files": list(self.failed_files),
            "warnings": list(self.warnings),
        }


@dataclass
class SaveResult:
    """Aggregate outcome of persisting unified rows one at a time."""

    success: int = 0
    error: int = 0

    def __post_init__(self) -> None:
        self.success = _to_non_negative_int(self.success, "success")
        self.error = _to_non_negative_int(self.error, "error")

    def to_dict(self) -> dict[str, Any]:
        return {"success": self.success, "error": self.error}


@dataclass
class RunManifest:
    """Audit-trail manifest for a single CLI run."""

    tool: str = "sheet-unify"
    version: str = ""
    inputs: list[dict[str, str]] = field(default_factory=list)
    output_dir: str = ""
    created_at_utc: str = ""
    fields: list[str] = field(default_factory=list)
    rows_out: int = 0
    status: str = "success"

    def __post_init__(self) -> None:
        self.rows_out = _to_non_negative_int(self.rows_out, "rows_out")
        self.fields = _to_string_list(self.fields, "fields")

    def to_dict(self) -> dict[str, Any]:
        return {
            "tool": self.tool,
            "version": self.version,
            "inputs": [dict(item) for item in self.inputs],
            "output_dir": self.output_dir,
            "created_at_utc": self.created_at_utc,
            "fields": list(self.fields),
            "rows_out": self.rows_out,
            "status": self.status,
        }
