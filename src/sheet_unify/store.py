"""Per-file header mappings, keyed by source file name."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence

from sheet_unify.io import read_source_rows
from sheet_unify.models import CellValue, FileMapping
from sheet_unify.suggest import DEFAULT_KEYWORD_RULES, KeywordRule, suggest

logger = logging.getLogger(__name__)

PREVIEW_ROWS = 4


def _header_label(value: CellValue) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


def build_file_mapping(
    rows: Sequence[Sequence[CellValue]], *, preview_rows: int = PREVIEW_ROWS
) -> FileMapping | None:
    """Split decoded rows into headers and a preview sample.

    Returns ``None`` when there are no rows at all.
    """
    if not rows:
        return None
    headers = [_header_label(value) for value in rows[0]]
    preview = [list(row) for row in rows[1 : 1 + preview_rows]]
    return FileMapping(headers=headers, mapping={}, preview=preview)


class FileMappingStore:
    """Working set of source files and their header mappings.

    A file is ingested once; re-adding a name that is already present is
    ignored until the file is removed.
    """

    def __init__(self, *, preview_rows: int = PREVIEW_ROWS) -> None:
        self.preview_rows = preview_rows
        self._mappings: dict[str, FileMapping] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._mappings

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._mappings))

    def __len__(self) -> int:
        return len(self._mappings)

    def __getitem__(self, name: str) -> FileMapping:
        return self._mappings[name]

    def names(self) -> list[str]:
        return list(self._mappings)

    def as_dict(self) -> dict[str, FileMapping]:
        return dict(self._mappings)

    def ingest(self, name: str, data: bytes, filename: str | None = None) -> FileMapping | None:
        """Read headers and preview rows for *name*.

        *filename* selects the decoder by extension and defaults to *name*.
        Decode failures propagate as ``DecodeError``. Returns ``None`` when
        the first sheet is empty or *name* is already in the store.
        """
        if name in self._mappings:
            logger.debug("Skipping %s: already ingested", name)
            return None
        file_mapping = build_file_mapping(
            read_source_rows(data, filename or name), preview_rows=self.preview_rows
        )
        if file_mapping is None:
            logger.info("Skipping %s: first sheet has no rows", name)
            return None
        self._mappings[name] = file_mapping
        logger.debug("Ingested %s with %d headers", name, len(file_mapping.headers))
        return file_mapping

    def set_mapping(self, file_name: str, header: str, field_name: str | None) -> None:
        """Point *header* at *field_name*, or clear it with ``None``.

        The target is not checked against the field registry.
        """
        file_mapping = self._mappings[file_name]
        file_mapping.mapping[header] = field_name or None

    def remove(self, file_name: str) -> bool:
        return self._mappings.pop(file_name, None) is not None

    def apply_suggestions(
        self,
        standard_fields: Sequence[str],
        rules: Sequence[KeywordRule] = DEFAULT_KEYWORD_RULES,
    ) -> int:
        """Fill unmapped headers of every file; returns how many were filled."""
        filled = 0
        for name, file_mapping in self._mappings.items():
            before = sum(1 for header in file_mapping.headers if file_mapping.mapping.get(header))
            file_mapping.mapping = suggest(
                file_mapping.headers, file_mapping.mapping, standard_fields, rules
            )
            after = sum(1 for header in file_mapping.headers if file_mapping.mapping.get(header))
            logger.debug("Suggested %d mapping(s) for %s", after - before, name)
            filled += after - before
        return filled
