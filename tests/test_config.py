from __future__ import annotations

from pathlib import Path

import pytest

from sheet_unify import DEFAULT_FIELDS
from sheet_unify.config import (
    UnifyConfig,
    load_keyword_profile,
    parse_keyword_rules,
)
from sheet_unify.suggest import DEFAULT_KEYWORD_RULES


def test_default_config_uses_candidate_fields() -> None:
    config = UnifyConfig()

    assert config.fields == DEFAULT_FIELDS
    assert config.fields is not DEFAULT_FIELDS
    assert config.keyword_rules == DEFAULT_KEYWORD_RULES
    assert config.preview_rows == 4


def test_config_rejects_negative_preview_and_blank_label() -> None:
    with pytest.raises(ValueError, match="preview_rows"):
        UnifyConfig(preview_rows=-1)
    with pytest.raises(ValueError, match="sheet_label"):
        UnifyConfig(sheet_label="  ")


def test_parse_keyword_rules_keeps_order_and_lowercases() -> None:
    rules = parse_keyword_rules(["location = City, TOWN", "email=mail"])

    assert rules == (("location", ("city", "town")), ("email", ("mail",)))


@pytest.mark.parametrize("line", ["no-equals", "=city", "location=", "location= , "])
def test_parse_keyword_rules_rejects_bad_lines(line: str) -> None:
    with pytest.raises(ValueError):
        parse_keyword_rules([line])


def test_load_keyword_profile_defaults_when_unset() -> None:
    assert load_keyword_profile(None) == DEFAULT_KEYWORD_RULES


def test_load_keyword_profile_skips_comments_and_blanks(tmp_path: Path) -> None:
    profile = tmp_path / "keywords.txt"
    profile.write_text("# custom rules\n\nlocation=city,town\n  # indented comment\nemail=mail\n")

    rules = load_keyword_profile(profile)

    assert rules == (("location", ("city", "town")), ("email", ("mail",)))


def test_load_keyword_profile_missing_file(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="Profile not found"):
        load_keyword_profile(tmp_path / "nope.txt")


def test_load_keyword_profile_directory(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="directory"):
        load_keyword_profile(tmp_path)
