from __future__ import annotations

import string
from datetime import datetime

import pytest

from appsys.migration.normalize import (
    build_form_data,
    generate_application_number,
    headline,
    map_priority,
    normalize_field_key,
    normalize_value,
    nullable_string,
    parse_csv_ids,
    parse_datetime,
    resolve_unique_name,
    slugify,
)


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Client Name", "client_name"),
        ("  TIN #No.  ", "tin_no"),
        ("__already__snake__", "already_snake"),
        ("Amount (PHP)", "amount_php"),
        ("notes-", "notes"),
    ],
)
def test_normalize_field_key(raw: str, expected: str) -> None:
    assert normalize_field_key(raw) == expected


def test_normalize_field_key_falls_back_to_random_key() -> None:
    first = normalize_field_key("###")
    second = normalize_field_key(None)

    assert first.startswith("field_") and len(first) == len("field_") + 8
    assert second.startswith("field_")
    assert all(ch in string.ascii_lowercase + string.digits for ch in first[6:])


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (None, None),
        ("  hello ", "hello"),
        ("", None),
        ("   ", None),
        ("NULL", None),
        ("Null", None),
        ("0000-00-00", None),
        ("0000-00-00 00:00:00", None),
        (42, 42),
        (0, 0),
    ],
)
def test_normalize_value(value: object, expected: object) -> None:
    assert normalize_value(value) == expected


def test_build_form_data_drops_keys_and_sorts() -> None:
    row = {"id": 9, "task_id": 1, "Zeta Field": " z ", "alpha": "null", "Mid": 3}

    form_data = build_form_data(row)

    assert form_data == {"alpha": None, "mid": 3, "zeta_field": "z"}
    assert list(form_data) == ["alpha", "mid", "zeta_field"]


@pytest.mark.parametrize(
    ("raw", "expected"),
    [("A", 1), ("b - normal", 2), (" c", 3), ("D", 4), ("e", 0), ("", 0), (None, 0), ("xyz", 0)],
)
def test_map_priority(raw: str | None, expected: int) -> None:
    assert map_priority(raw) == expected


def test_generate_application_number_is_deterministic() -> None:
    first = generate_application_number("Business Permit", 12)
    second = generate_application_number("Business Permit", 12)

    assert first == second == "APP-BUSINESS-PERMIT-12"
    assert generate_application_number("legacy-application", 3) == "APP-LEGACY-APPLICATION-3"


def test_slugify_follows_framework_rules() -> None:
    assert slugify("Business Permit #2") == "business-permit-2"
    assert slugify("Café Résumé") == "cafe-resume"
    assert slugify("ops@city") == "ops-at-city"
    assert slugify("  --Already--slugged__ ") == "already-slugged"


def test_parse_csv_ids() -> None:
    assert parse_csv_ids("5, 7,7,x,9") == ["5", "7", "9"]
    assert parse_csv_ids("") == []
    assert parse_csv_ids(None) == []
    assert parse_csv_ids("12,-3, 4.5 ,0") == ["12", "0"]


def test_headline() -> None:
    assert headline("notes_1") == "Notes 1"
    assert headline("permit_type") == "Permit Type"


@pytest.mark.parametrize(
    ("value", "expected"),
    [(None, None), ("", None), (" utf8 ", None), ("UTF8", None), (" kept ", "kept"), (5, "5")],
)
def test_nullable_string(value: object, expected: str | None) -> None:
    assert nullable_string(value) == expected


def test_parse_datetime_is_best_effort() -> None:
    assert parse_datetime("2024-01-02 10:00:00") == datetime(2024, 1, 2, 10, 0, 0)
    assert parse_datetime("2024-03-05") == datetime(2024, 3, 5)
    assert parse_datetime("0000-00-00") is None
    assert parse_datetime("garbage") is None
    assert parse_datetime(None) is None
    stamp = datetime(2023, 5, 1, 8, 30)
    assert parse_datetime(stamp) is stamp


def test_resolve_unique_name_appends_suffixes() -> None:
    name, used = resolve_unique_name("notes", frozenset())
    assert name == "notes"

    name, used = resolve_unique_name("notes", used)
    assert name == "notes_1"

    name, used = resolve_unique_name("notes", used)
    assert name == "notes_2"
    assert used == {"notes", "notes_1", "notes_2"}


def test_resolve_unique_name_does_not_mutate_input() -> None:
    used = {"notes"}

    name, updated = resolve_unique_name("notes", used)

    assert name == "notes_1"
    assert used == {"notes"}
    assert "notes_1" in updated
