from __future__ import annotations

import asyncio
from datetime import datetime
from pathlib import Path

from sheet_unify.io import SourceFile
from sheet_unify.models import FileMapping
from sheet_unify.unify import normalize_row, unify_files, unify_preview, unify_rows

FIELDS = ["firstName", "email", "phone"]


def _write(tmp_path: Path, name: str, text: str) -> Path:
    path = tmp_path / name
    path.write_text(text, encoding="utf-8")
    return path


def test_normalize_row_holds_every_field_plus_provenance() -> None:
    record = normalize_row(
        ["Ann", "ann@x.com", "ignored"],
        ["Name", "Mail", "Notes"],
        {"Name": "firstName", "Mail": "email"},
        FIELDS,
        source="a.csv",
        row_number=2,
    )

    assert record == {
        "firstName": "Ann",
        "email": "ann@x.com",
        "phone": None,
        "_source": "a.csv",
        "_row": 2,
    }
    assert list(record) == [*FIELDS, "_source", "_row"]


def test_normalize_row_later_header_wins() -> None:
    record = normalize_row(
        ["work@x.com", "home@x.com"],
        ["Work Email", "Home Email"],
        {"Work Email": "email", "Home Email": "email"},
        FIELDS,
        source="a.csv",
        row_number=2,
    )

    assert record["email"] == "home@x.com"


def test_normalize_row_tolerates_short_rows_and_removed_fields() -> None:
    record = normalize_row(
        ["Ann"],
        ["Name", "Mail", "Tel"],
        {"Name": "firstName", "Mail": "email", "Tel": "fax"},
        FIELDS,
        source="a.csv",
        row_number=7,
    )

    assert record == {
        "firstName": "Ann",
        "email": None,
        "phone": None,
        "_source": "a.csv",
        "_row": 7,
    }
    assert "fax" not in record


def test_normalize_row_keeps_raw_cell_types() -> None:
    joined = datetime(2024, 5, 6)
    record = normalize_row(
        [joined, 5551234, True],
        ["Joined", "Phone", "Email"],
        {"Joined": "firstName", "Phone": "phone", "Email": "email"},
        FIELDS,
        source="a.xlsx",
        row_number=2,
    )

    assert record["firstName"] == joined
    assert record["phone"] == 5551234
    assert record["email"] is True


def test_unify_rows_numbers_rows_from_two() -> None:
    file_mapping = FileMapping(headers=["Mail"], mapping={"Mail": "email"})

    rows = unify_rows([["a"], ["b"], ["c"]], file_mapping, FIELDS, source="s")

    assert [row["_row"] for row in rows] == [2, 3, 4]
    assert [row["email"] for row in rows] == ["a", "b", "c"]


def test_unify_preview_walks_files_in_order() -> None:
    mappings = {
        "A": FileMapping(headers=["Mail"], mapping={"Mail": "email"}, preview=[["a1"], ["a2"]]),
        "B": FileMapping(headers=["Tel"], mapping={}, preview=[["555"]]),
    }

    rows = unify_preview(mappings, FIELDS)

    assert [(row["_source"], row["_row"]) for row in rows] == [("A", 2), ("A", 3), ("B", 2)]
    assert rows[0]["email"] == "a1"
    assert rows[2] == {"firstName": None, "email": None, "phone": None, "_source": "B", "_row": 2}


def test_unify_files_two_sources_end_to_end(tmp_path: Path) -> None:
    path_a = _write(tmp_path, "a.csv", "First,Email\nAnn,ann@x.com\nBob,bob@x.com\n")
    path_b = _write(tmp_path, "b.csv", "Tel,Mail\n555,cy@x.com\n")
    sources = [SourceFile(path_a, name="A"), SourceFile(path_b, name="B")]
    mappings = {
        "A": FileMapping(headers=["First", "Email"], mapping={"First": "firstName", "Email": "email"}),
        "B": FileMapping(headers=["Tel", "Mail"], mapping={"Tel": "phone", "Mail": "email"}),
    }

    dataset, report = asyncio.run(unify_files(sources, mappings, FIELDS))

    assert dataset.rows == [
        {"firstName": "Ann", "email": "ann@x.com", "phone": None, "_source": "A", "_row": 2},
        {"firstName": "Bob", "email": "bob@x.com", "phone": None, "_source": "A", "_row": 3},
        {"firstName": None, "email": "cy@x.com", "phone": "555", "_source": "B", "_row": 2},
    ]
    assert report.files_in == 2
    assert report.files_ok == 2
    assert report.files_failed == 0
    assert report.rows_out == 3
    assert report.warnings == []


def test_unify_files_continues_past_a_corrupt_file(tmp_path: Path) -> None:
    good_1 = _write(tmp_path, "one.csv", "Email\na@x.com\n")
    broken = tmp_path / "two.xlsx"
    broken.write_bytes(b"this is not a workbook")
    good_3 = _write(tmp_path, "three.csv", "Email\nc@x.com\nd@x.com\n")
    mapping = {"Email": "email"}
    mappings = {
        name: FileMapping(headers=["Email"], mapping=dict(mapping))
        for name in ("one.csv", "two.xlsx", "three.csv")
    }
    sources = [SourceFile(good_1), SourceFile(broken), SourceFile(good_3)]

    dataset, report = asyncio.run(unify_files(sources, mappings, ["email"]))

    assert report.files_failed == 1
    assert report.failed_files == ["two.xlsx"]
    assert report.files_ok == 2
    assert dataset.sources() == ["one.csv", "three.csv"]
    assert [row["email"] for row in dataset.rows] == ["a@x.com", "c@x.com", "d@x.com"]


def test_unify_files_records_missing_file_as_failure(tmp_path: Path) -> None:
    missing = SourceFile(tmp_path / "gone.csv")
    mappings = {"gone.csv": FileMapping(headers=["Email"], mapping={"Email": "email"})}

    dataset, report = asyncio.run(unify_files([missing], mappings, ["email"]))

    assert len(dataset) == 0
    assert report.failed_files == ["gone.csv"]
    assert report.files_ok == 0


def test_unify_files_skips_sources_without_mapping(tmp_path: Path) -> None:
    path = _write(tmp_path, "a.csv", "Email\na@x.com\n")

    dataset, report = asyncio.run(unify_files([SourceFile(path)], {}, ["email"]))

    assert len(dataset) == 0
    assert report.files_skipped == 1
    assert report.files_in == 1


def test_unify_files_warns_about_fields_nothing_maps_to(tmp_path: Path) -> None:
    path = _write(tmp_path, "a.csv", "Email\na@x.com\n")
    mappings = {"a.csv": FileMapping(headers=["Email"], mapping={"Email": "email"})}

    _dataset, report = asyncio.run(unify_files([SourceFile(path)], mappings, FIELDS))

    assert report.warnings == ["No header mapped to: firstName, phone"]


def test_unify_files_uses_mapping_at_call_time(tmp_path: Path) -> None:
    path = _write(tmp_path, "a.csv", "Mail\na@x.com\n")
    file_mapping = FileMapping(headers=["Mail"], mapping={})
    mappings = {"a.csv": file_mapping}

    first, _ = asyncio.run(unify_files([SourceFile(path)], mappings, ["email"]))
    file_mapping.mapping["Mail"] = "email"
    second, _ = asyncio.run(unify_files([SourceFile(path)], mappings, ["email"]))

    assert first.rows[0]["email"] is None
    assert second.rows[0]["email"] == "a@x.com"


def test_unify_files_tolerates_rows_wider_than_the_header(tmp_path: Path) -> None:
    path = _write(tmp_path, "a.csv", "First,Email\nAnn,ann@x.com,extra\nBob,bob@x.com\n")
    mappings = {
        "a.csv": FileMapping(
            headers=["First", "Email"], mapping={"First": "firstName", "Email": "email"}
        )
    }

    dataset, report = asyncio.run(unify_files([SourceFile(path)], mappings, FIELDS))

    assert report.files_failed == 0
    assert report.files_ok == 1
    assert dataset.rows == [
        {"firstName": "Ann", "email": "ann@x.com", "phone": None, "_source": "a.csv", "_row": 2},
        {"firstName": "Bob", "email": "bob@x.com", "phone": None, "_source": "a.csv", "_row": 3},
    ]
