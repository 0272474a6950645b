"""Candidate persistence — translate unified rows and insert them one by one."""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import Any, Protocol

from sheet_unify.auth import ActorContext
from sheet_unify.errors import PersistenceError
from sheet_unify.io import to_json_line
from sheet_unify.models import ROW_KEY, SOURCE_KEY, MappedRow, SaveResult
from sheet_unify.utils import utcnow_iso

logger = logging.getLogger(__name__)


class CandidateStore(Protocol):
    def insert(self, record: dict[str, Any]) -> None:
        """Persist one record or raise ``PersistenceError``."""


def to_candidate_record(row: MappedRow, created_by: str) -> dict[str, Any]:
    """Map a unified row onto the candidate storage schema.

    Empty values (``""``, ``0``, ``False``) are stored as null.
    """
    skills = row.get("skills")
    return {
        "candidate_id": row.get("candidateId") or None,
        "first_name": row.get("firstName") or None,
        "last_name": row.get("lastName") or None,
        "email": row.get("email") or None,
        "phone": row.get("phone") or None,
        "skills": [skills] if skills else [],
        "experience": row.get("experience") or None,
        "education": row.get("education") or None,
        "source_file": row.get(SOURCE_KEY) or None,
        "notes": None,
        "created_by": created_by,
    }


def save_rows(rows: Sequence[MappedRow], store: CandidateStore, ctx: ActorContext) -> SaveResult:
    """Insert every row, counting successes and failures.

    Without an actor identity nothing is written and every row counts as an
    error.
    """
    if not ctx.is_authenticated:
        logger.error("No authenticated user found. Cannot save candidates.")
        return SaveResult(success=0, error=len(rows))

    success = 0
    errors = 0
    for row in rows:
        try:
            store.insert(to_candidate_record(row, str(ctx.actor_id)))
        except PersistenceError as exc:
            logger.error(
                "Error saving candidate from %s row %s: %s",
                row.get(SOURCE_KEY), row.get(ROW_KEY), exc,
            )
            errors += 1
        else:
            success += 1
    return SaveResult(success=success, error=errors)


class JsonLinesCandidateStore:
    """Append-only candidate store backed by a JSON Lines file."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def insert(self, record: dict[str, Any]) -> None:
        payload = {**record, "created_at": utcnow_iso()}
        try:
            line = to_json_line(payload)
        except TypeError as exc:
            raise PersistenceError(str(exc)) from exc
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with open(self.path, "a", encoding="utf-8") as fh:
                fh.write(line + "\n")
        except OSError as exc:
            raise PersistenceError(f"Cannot write {self.path}: {exc}") from exc

    def list_records(self) -> list[dict[str, Any]]:
        """Saved records, newest first."""
        if not self.path.exists():
            return []
        records: list[dict[str, Any]] = []
        with open(self.path, encoding="utf-8") as fh:
            for line in fh:
                line = line.strip()
                if line:
                    records.append(json.loads(line))
        records.sort(key=lambda record: record.get("created_at", ""), reverse=True)
        return records
