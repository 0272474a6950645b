"""Operator workspace — the privilege-gated entry points around the engine.

Every mutating call takes an explicit :class:`ActorContext` and checks the
admin flag before touching any state.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from sheet_unify.auth import ActorContext, require_admin
from sheet_unify.config import UnifyConfig
from sheet_unify.errors import DecodeError, PreconditionError
from sheet_unify.export import export_unified
from sheet_unify.io import SourceFile
from sheet_unify.models import FileMapping, MappedRow, SaveResult, UnifiedDataset, UnifyReport
from sheet_unify.persistence import CandidateStore, save_rows
from sheet_unify.registry import FieldRegistry
from sheet_unify.store import FileMappingStore
from sheet_unify.unify import unify_files, unify_preview

logger = logging.getLogger(__name__)


class Workspace:
    """Files, mappings, field registry and results of one unification session."""

    def __init__(self, config: UnifyConfig | None = None) -> None:
        self.config = config or UnifyConfig()
        self.registry = FieldRegistry(self.config.fields)
        self.store = FileMappingStore(preview_rows=self.config.preview_rows)
        self._sources: dict[str, SourceFile] = {}
        self.preview: list[MappedRow] = []
        self.unified = UnifiedDataset(fields=self.registry.fields)

    @property
    def sources(self) -> list[SourceFile]:
        return list(self._sources.values())

    @property
    def mappings(self) -> dict[str, FileMapping]:
        return self.store.as_dict()

    # ── Files ────────────────────────────────────────────────────

    def add_files(
        self, ctx: ActorContext, sources: Sequence[SourceFile]
    ) -> tuple[list[str], list[str]]:
        """Ingest every source not already present.

        Returns ``(added, failed)`` file names. Unreadable files are logged
        and left out; empty files are neither added nor failed.
        """
        require_admin(ctx, "upload and process files")
        added: list[str] = []
        failed: list[str] = []
        for source in sources:
            if source.name in self.store:
                continue
            try:
                file_mapping = self.store.ingest(
                    source.name, source.read_bytes(), source.path.name
                )
            except (DecodeError, OSError) as exc:
                logger.error("Error processing file %s: %s", source.name, exc)
                failed.append(source.name)
                continue
            if file_mapping is None:
                continue
            self._sources[source.name] = source
            added.append(source.name)
        return added, failed

    def remove_file(self, ctx: ActorContext, name: str) -> bool:
        require_admin(ctx, "remove files")
        self._sources.pop(name, None)
        return self.store.remove(name)

    # ── Mappings ─────────────────────────────────────────────────

    def update_mapping(
        self, ctx: ActorContext, file_name: str, header: str, field_name: str | None
    ) -> None:
        require_admin(ctx, "modify mappings")
        self.store.set_mapping(file_name, header, field_name)

    def suggest_mappings(self, ctx: ActorContext) -> int:
        require_admin(ctx, "modify mappings")
        return self.store.apply_suggestions(self.registry.fields, self.config.keyword_rules)

    # ── Fields ───────────────────────────────────────────────────

    def add_field(self, ctx: ActorContext, name: str) -> str:
        require_admin(ctx, "edit standard fields")
        return self.registry.add_field(name)

    def remove_field(self, ctx: ActorContext, name: str) -> bool:
        require_admin(ctx, "edit standard fields")
        return self.registry.remove_field(name)

    # ── Unification ──────────────────────────────────────────────

    def generate_preview(self, ctx: ActorContext) -> list[MappedRow]:
        require_admin(ctx, "preview data")
        self.preview = unify_preview(self.store.as_dict(), self.registry.fields)
        return self.preview

    async def process_all(self, ctx: ActorContext) -> UnifyReport:
        """Re-read every file in upload order and build the unified dataset."""
        require_admin(ctx, "process data")
        dataset, report = await unify_files(
            self.sources, self.store.as_dict(), self.registry.fields
        )
        self.unified = dataset
        return report

    # ── Output ───────────────────────────────────────────────────

    def save(self, ctx: ActorContext, store: CandidateStore) -> SaveResult:
        require_admin(ctx, "save data")
        if not self.unified.rows:
            raise PreconditionError("No data to save or export")
        result = save_rows(self.unified.rows, store, ctx)
        logger.info("Saved %d candidate(s), %d failed", result.success, result.error)
        return result

    def export(self, ctx: ActorContext, path: Path | None = None) -> Path:
        require_admin(ctx, "export data")
        if not self.unified.rows:
            raise PreconditionError("No data to save or export")
        return export_unified(
            path or Path(self.config.export_name), self.unified, self.config.sheet_label
        )
