"""Tests for header → field suggestions."""

from __future__ import annotations

import pytest

from sheet_unify import DEFAULT_FIELDS
from sheet_unify.suggest import match_keyword, match_standard_field, suggest


def test_exact_match_ignores_case() -> None:
    assert match_standard_field("EMAIL", ["phone", "email"]) == "email"


def test_normalized_match_strips_punctuation_and_spaces() -> None:
    assert match_standard_field("First Name", DEFAULT_FIELDS) == "firstName"
    assert match_standard_field("candidate_id", DEFAULT_FIELDS) == "candidateId"
    assert match_standard_field("e-mail", ["email"]) == "email"


def test_first_registry_field_wins_on_normalized_tie() -> None:
    assert match_standard_field("first name", ["first_name", "firstName"]) == "first_name"


def test_candidate_email_address_maps_to_email_via_keyword() -> None:
    assert match_standard_field("Candidate Email Address", DEFAULT_FIELDS) is None

    mapping = suggest(["Candidate Email Address"], {}, DEFAULT_FIELDS)

    assert mapping == {"Candidate Email Address": "email"}


def test_id_header_maps_to_candidate_id() -> None:
    assert suggest(["ID"], {}, ["firstName", "email"]) == {"ID": "candidateId"}


@pytest.mark.parametrize(
    ("header", "expected"),
    [
        ("Applicant ID", "candidateId"),
        ("UserID", "candidateId"),
        ("Reference Number", "candidateId"),
        ("fname", "firstName"),
        ("Given (first)", "firstName"),
        ("lname", "lastName"),
        ("Surname / Last", "lastName"),
        ("E-Mail Addr", "email"),
        ("Mobile", "phone"),
        ("Contact No", "phone"),
        ("Tech Stack", "skills"),
        ("Area of Expertise", "skills"),
        ("Years in industry", "experience"),
        ("Highest Degree", "education"),
        ("Qualification", "education"),
    ],
)
def test_keyword_table(header: str, expected: str) -> None:
    assert match_keyword(header) == expected


def test_keyword_priority_prefers_earlier_rules() -> None:
    # "Email ID" hits both the id and email rules; id comes first.
    assert match_keyword("Email ID") == "candidateId"
    # "expertise" would also match "exp", but skills is tried first.
    assert match_keyword("Expertise") == "skills"


def test_short_keywords_require_a_whole_word() -> None:
    assert match_keyword("Candidate") is None
    assert match_keyword("Valid until") is None
    assert match_keyword("candidateId") == "candidateId"


@pytest.mark.parametrize(
    ("header", "expected"),
    [
        ("user_id", "candidateId"),
        ("UserId", "candidateId"),
        ("STUDENT ID", "candidateId"),
        # Joined lowercase words have no boundary to split on.
        ("userid", None),
        ("studentid", None),
        ("valid", None),
    ],
)
def test_id_needs_a_word_boundary(header: str, expected: str | None) -> None:
    assert match_keyword(header) == expected


def test_unmatched_header_is_left_unmapped() -> None:
    mapping = suggest(["Favourite colour"], {}, DEFAULT_FIELDS)

    assert mapping == {"Favourite colour": None}


def test_existing_mappings_are_never_overwritten() -> None:
    existing = {"Email": "phone", "Mobile": None}

    mapping = suggest(["Email", "Mobile"], existing, DEFAULT_FIELDS)

    assert mapping == {"Email": "phone", "Mobile": "phone"}
    assert existing == {"Email": "phone", "Mobile": None}


def test_suggest_is_idempotent() -> None:
    headers = ["ID", "First", "Last", "Candidate Email Address", "Notes", "Years"]

    once = suggest(headers, {}, DEFAULT_FIELDS)
    twice = suggest(headers, once, DEFAULT_FIELDS)

    assert twice == once


def test_keyword_targets_do_not_depend_on_registry() -> None:
    mapping = suggest(["Phone"], {}, ["firstName"])

    assert mapping == {"Phone": "phone"}


def test_custom_rules_replace_the_builtin_table() -> None:
    rules = (("location", ("city", "town")),)

    mapping = suggest(["Home City", "Email"], {}, [], rules)

    assert mapping == {"Home City": "location", "Email": None}
