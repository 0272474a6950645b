from __future__ import annotations

from collections.abc import Callable, Sequence
from pathlib import Path
from typing import Any

import pytest
from openpyxl import Workbook

from sheet_unify.errors import PersistenceError

XlsxFactory = Callable[..., Path]


@pytest.fixture
def make_xlsx(tmp_path: Path) -> XlsxFactory:
    """Write rows to ``tmp_path/<name>`` as a single- or multi-sheet workbook."""

    def _make(
        name: str,
        rows: Sequence[Sequence[Any]],
        *,
        extra_sheets: dict[str, Sequence[Sequence[Any]]] | None = None,
    ) -> Path:
        wb = Workbook()
        ws = wb.active
        assert ws is not None
        ws.title = "Candidates"
        for row in rows:
            ws.append(list(row))
        for title, sheet_rows in (extra_sheets or {}).items():
            extra = wb.create_sheet(title=title)
            for row in sheet_rows:
                extra.append(list(row))
        path = tmp_path / name
        wb.save(path)
        return path

    return _make


class MemoryStore:
    """Candidate store that keeps records in a list and can fail on demand."""

    def __init__(self, fail_on: set[int] | None = None) -> None:
        self.records: list[dict[str, Any]] = []
        self.fail_on = fail_on or set()
        self.calls = 0

    def insert(self, record: dict[str, Any]) -> None:
        self.calls += 1
        if self.calls in self.fail_on:
            raise PersistenceError(f"insert #{self.calls} rejected")
        self.records.append(record)


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def make_store() -> Callable[..., MemoryStore]:
    def _make(fail_on: set[int] | None = None) -> MemoryStore:
        return MemoryStore(fail_on)

    return _make
