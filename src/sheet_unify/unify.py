"""Row unification — turn per-file rows into normalized, provenance-tagged records."""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence

from sheet_unify.errors import DecodeError
from sheet_unify.io import SourceFile, read_source_rows
from sheet_unify.models import (
    ROW_KEY,
    SOURCE_KEY,
    CellValue,
    FileMapping,
    MappedRow,
    UnifiedDataset,
    UnifyReport,
)

logger = logging.getLogger(__name__)

# Sheet row number of the first data row (the header is row 1).
FIRST_DATA_ROW = 2


def normalize_row(
    raw: Sequence[CellValue],
    headers: Sequence[str],
    mapping: Mapping[str, str | None],
    fields: Sequence[str],
    *,
    source: str,
    row_number: int,
) -> MappedRow:
    """Build one record holding exactly *fields* plus provenance.

    Cells are copied unconverted. When two headers target the same field the
    later header wins; targets that are not in *fields* are ignored.
    """
    record: MappedRow = dict.fromkeys(fields)
    for index, header in enumerate(headers):
        target = mapping.get(header)
        if not target or target not in record:
            continue
        record[target] = raw[index] if index < len(raw) else None
    record[SOURCE_KEY] = source
    record[ROW_KEY] = row_number
    return record


def unify_rows(
    rows: Sequence[Sequence[CellValue]],
    file_mapping: FileMapping,
    fields: Sequence[str],
    *,
    source: str,
    first_row_number: int = FIRST_DATA_ROW,
) -> list[MappedRow]:
    """Normalize data *rows* (header row excluded) from a single file."""
    return [
        normalize_row(
            raw,
            file_mapping.headers,
            file_mapping.mapping,
            fields,
            source=source,
            row_number=first_row_number + offset,
        )
        for offset, raw in enumerate(rows)
    ]


def unify_preview(
    mappings: Mapping[str, FileMapping], fields: Sequence[str]
) -> list[MappedRow]:
    """Unify the stored preview rows of every file, in mapping order."""
    fields = list(fields)
    preview: list[MappedRow] = []
    for name, file_mapping in mappings.items():
        preview.extend(unify_rows(file_mapping.preview, file_mapping, fields, source=name))
    return preview


async def unify_full(
    source: SourceFile, file_mapping: FileMapping, fields: Sequence[str]
) -> list[MappedRow]:
    """Re-read *source* and unify every data row.

    Raises ``DecodeError`` or ``OSError`` when the file cannot be read.
    """
    data = await source.read_bytes_async()
    rows = read_source_rows(data, source.path.name)
    return unify_rows(rows[1:], file_mapping, list(fields), source=source.name)


async def unify_files(
    sources: Sequence[SourceFile],
    mappings: Mapping[str, FileMapping],
    fields: Sequence[str],
) -> tuple[UnifiedDataset, UnifyReport]:
    """Unify *sources* one after another, in order.

    A file that cannot be read contributes no rows; the failure is logged and
    recorded in the report and the batch carries on.
    """
    fields = list(fields)
    dataset = UnifiedDataset(fields=fields)
    files_ok = 0
    skipped = 0
    failed: list[str] = []
    warnings: list[str] = []

    for source in sources:
        file_mapping = mappings.get(source.name)
        if file_mapping is None:
            skipped += 1
            logger.debug("Skipping %s: no header mapping", source.name)
            continue
        try:
            rows = await unify_full(source, file_mapping, fields)
        except (DecodeError, OSError) as exc:
            logger.error("Error processing file %s: %s", source.name, exc)
            failed.append(source.name)
            warnings.append(f"{source.name}: {exc}")
            continue
        files_ok += 1
        dataset.extend(rows)
        logger.info("Unified %d row(s) from %s", len(rows), source.name)

    unmapped = [name for name in fields if not _field_is_targeted(name, mappings)]
    if unmapped and dataset.rows:
        warnings.append(f"No header mapped to: {', '.join(unmapped)}")

    report = UnifyReport(
        files_in=len(sources),
        files_ok=files_ok,
        files_skipped=skipped,
        rows_out=len(dataset),
        failed_files=failed,
        warnings=warnings,
    )
    return dataset, report


def _field_is_targeted(name: str, mappings: Mapping[str, FileMapping]) -> bool:
    return any(name in file_mapping.mapping.values() for file_mapping in mappings.values())
