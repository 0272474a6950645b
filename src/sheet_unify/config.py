"""Run configuration and keyword-profile loading."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from sheet_unify import DEFAULT_FIELDS
from sheet_unify.store import PREVIEW_ROWS
from sheet_unify.suggest import DEFAULT_KEYWORD_RULES, KeywordRule

DEFAULT_SHEET_LABEL = "Unified Candidate Data"
DEFAULT_EXPORT_NAME = "unified_candidate_data.xlsx"
REPORT_NAME = "unify_report.json"
MANIFEST_NAME = "run_manifest.json"


@dataclass
class UnifyConfig:
    """Settings for one unification run."""

    fields: list[str] = field(default_factory=lambda: list(DEFAULT_FIELDS))
    keyword_rules: tuple[KeywordRule, ...] = DEFAULT_KEYWORD_RULES
    preview_rows: int = PREVIEW_ROWS
    sheet_label: str = DEFAULT_SHEET_LABEL
    export_name: str = DEFAULT_EXPORT_NAME

    def __post_init__(self) -> None:
        if self.preview_rows < 0:
            raise ValueError("preview_rows must be >= 0")
        if not self.sheet_label.strip():
            raise ValueError("sheet_label must not be empty")


def parse_keyword_rules(lines: list[str]) -> tuple[KeywordRule, ...]:
    """Parse ``target=kw1,kw2`` lines; order is priority."""
    rules: list[KeywordRule] = []
    for item in lines:
        if "=" not in item:
            raise ValueError(f"Invalid keyword rule: {item!r}  (expected field=keyword,keyword)")
        target, raw_keywords = item.split("=", 1)
        target = target.strip()
        keywords = tuple(kw.strip().lower() for kw in raw_keywords.split(",") if kw.strip())
        if not target or not keywords:
            raise ValueError(f"Keyword rule needs a field and at least one keyword: {item!r}")
        rules.append((target, keywords))
    return tuple(rules)


def load_keyword_profile(profile: Path | None) -> tuple[KeywordRule, ...]:
    """Read keyword rules from *profile*, or return the built-in table."""
    if not profile:
        return DEFAULT_KEYWORD_RULES
    if not profile.exists():
        raise ValueError(f"Profile not found: {profile} (expected lines like email=email,mail)")
    if profile.is_dir():
        raise ValueError(f"Profile is a directory, not a file: {profile}")
    try:
        text = profile.read_text(encoding="utf-8")
    except OSError as exc:
        raise ValueError(f"Cannot read profile {profile}: {exc}") from exc

    lines: list[str] = []
    for line in text.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        lines.append(stripped)
    return parse_keyword_rules(lines)
