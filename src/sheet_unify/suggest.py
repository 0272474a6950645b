"""Header → standard-field suggestions — pure functions, no side effects."""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence

KeywordRule = tuple[str, tuple[str, ...]]
"""``(target_field, keywords)``; rules are tried in order."""

DEFAULT_KEYWORD_RULES: tuple[KeywordRule, ...] = (
    ("candidateId", ("id", "number")),
    ("firstName", ("first", "fname")),
    ("lastName", ("last", "lname")),
    ("email", ("email", "mail")),
    ("phone", ("phone", "mobile", "contact")),
    ("skills", ("skill", "expertise", "tech")),
    ("experience", ("exp", "years")),
    ("education", ("edu", "degree", "qualification")),
)

# Keywords this short match whole words only ("id" must not hit "candidate").
_WHOLE_WORD_MAX_LEN = 2

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]")
_WORD_RE = re.compile(r"[A-Z]+(?![a-z])|[A-Z]?[a-z]+|\d+")


def _squash(text: str) -> str:
    return _NON_ALNUM_RE.sub("", text.lower())


def _words(header: str) -> set[str]:
    return {word.lower() for word in _WORD_RE.findall(header)}


def match_standard_field(header: str, standard_fields: Sequence[str]) -> str | None:
    """First field equal to *header* ignoring case, or ignoring punctuation."""
    lower = header.lower()
    squashed = _squash(header)
    for name in standard_fields:
        if name.lower() == lower:
            return name
        if squashed and _squash(name) == squashed:
            return name
    return None


def match_keyword(header: str, rules: Sequence[KeywordRule] = DEFAULT_KEYWORD_RULES) -> str | None:
    """Target of the first keyword rule that *header* contains."""
    lower = header.lower()
    words: set[str] | None = None
    for target, keywords in rules:
        for keyword in keywords:
            keyword = keyword.lower()
            if len(keyword) <= _WHOLE_WORD_MAX_LEN:
                if words is None:
                    words = _words(header)
                if keyword in words:
                    return target
            elif keyword in lower:
                return target
    return None


def suggest(
    headers: Sequence[str],
    existing: Mapping[str, str | None],
    standard_fields: Sequence[str],
    rules: Sequence[KeywordRule] = DEFAULT_KEYWORD_RULES,
) -> dict[str, str | None]:
    """Return a new mapping with a suggestion for every unmapped header.

    Headers that already have a target keep it. The keyword *rules* name
    fixed targets and do not consult *standard_fields*.
    """
    mapping: dict[str, str | None] = dict(existing)
    for header in headers:
        if mapping.get(header):
            continue
        mapping[header] = match_standard_field(header, standard_fields) or match_keyword(
            header, rules
        )
    return mapping
