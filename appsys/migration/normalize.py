"""Pure helpers that turn raw legacy cell values into canonical target values."""

from __future__ import annotations

import re
import secrets
import string
import unicodedata
from datetime import datetime
from typing import Any, Iterable, Mapping

from dateutil import parser as dateutil_parser

__all__ = [
    "build_form_data",
    "generate_application_number",
    "headline",
    "map_priority",
    "normalize_field_key",
    "normalize_value",
    "nullable_string",
    "parse_csv_ids",
    "parse_datetime",
    "resolve_unique_name",
    "slugify",
]

ZERO_DATES: frozenset[str] = frozenset({"0000-00-00", "0000-00-00 00:00:00"})
DYNAMIC_KEY_COLUMNS: frozenset[str] = frozenset({"id", "task_id"})
PRIORITY_BY_LETTER: dict[str, int] = {"a": 1, "b": 2, "c": 3, "d": 4}

_NON_KEY_RE = re.compile(r"[^a-z0-9_]+")
_UNDERSCORE_RUN_RE = re.compile(r"_+")
_SLUG_DROP_RE = re.compile(r"[^a-z0-9\s_-]+")
_SLUG_JOIN_RE = re.compile(r"[\s_-]+")
_HEADLINE_SPLIT_RE = re.compile(r"[\s_-]+|(?<=[a-z0-9])(?=[A-Z])")
_RANDOM_ALPHABET = string.ascii_lowercase + string.digits


def normalize_field_key(raw: str | None) -> str:
    """Return a storage-safe key for a legacy column name.

    Garbage names that normalize to nothing get a random ``field_`` key.
    """

    key = _NON_KEY_RE.sub("_", (raw or "").lower())
    key = _UNDERSCORE_RUN_RE.sub("_", key).strip("_")
    if key:
        return key
    return "field_" + "".join(secrets.choice(_RANDOM_ALPHABET) for _ in range(8))


def normalize_value(value: Any) -> Any:
    if not isinstance(value, str):
        return value
    trimmed = value.strip()
    if not trimmed or trimmed.lower() == "null" or trimmed in ZERO_DATES:
        return None
    return trimmed


def build_form_data(row: Mapping[str, Any]) -> dict[str, Any]:
    """Normalize a dynamic-table row into form data sorted by key."""

    form_data: dict[str, Any] = {}
    for column, value in row.items():
        if column in DYNAMIC_KEY_COLUMNS:
            continue
        form_data[normalize_field_key(column)] = normalize_value(value)
    return dict(sorted(form_data.items()))


def map_priority(raw: Any) -> int:
    if raw is None:
        return 0
    normalized = str(raw).strip().lower()
    if not normalized:
        return 0
    return PRIORITY_BY_LETTER.get(normalized[0], 0)


def slugify(text: str | None, separator: str = "-") -> str:
    """Lower-case ASCII slug: ``"Business Permit #2"`` -> ``"business-permit-2"``."""

    folded = unicodedata.normalize("NFKD", text or "").encode("ascii", "ignore").decode("ascii")
    folded = folded.replace("@", f"{separator}at{separator}").lower()
    folded = _SLUG_DROP_RE.sub("", folded)
    return _SLUG_JOIN_RE.sub(separator, folded).strip(separator)


def generate_application_number(type_slug_source: str, legacy_task_id: int) -> str:
    return f"APP-{slugify(type_slug_source).upper()}-{int(legacy_task_id)}"


def parse_csv_ids(csv: str | None) -> list[str]:
    """Split a legacy CSV of ids, keeping digit-only tokens in first-seen order."""

    if csv is None:
        return []
    tokens = (token.strip() for token in str(csv).split(","))
    return list(dict.fromkeys(token for token in tokens if token and token.isdigit() and token.isascii()))


def headline(key: str) -> str:
    words = [word for word in _HEADLINE_SPLIT_RE.split(key) if word]
    return " ".join(word[:1].upper() + word[1:] for word in words)


def nullable_string(value: Any) -> str | None:
    """Trimmed string, or ``None`` for blanks and the legacy ``utf8`` filler."""

    if value is None:
        return None
    trimmed = str(value).strip()
    if not trimmed or trimmed.lower() == "utf8":
        return None
    return trimmed


def parse_datetime(value: Any) -> datetime | None:
    """Best-effort datetime parsing; anything unparseable becomes ``None``."""

    if isinstance(value, datetime):
        return value
    normalized = nullable_string(value)
    if normalized is None or normalized in ZERO_DATES:
        return None
    try:
        return dateutil_parser.parse(normalized)
    except (ValueError, OverflowError):
        return None


def resolve_unique_name(base: str, used: Iterable[str]) -> tuple[str, frozenset[str]]:
    """Append ``_1``, ``_2``, ... to ``base`` until it is not in ``used``.

    Returns the resolved name and the used set extended with it.
    """

    taken = frozenset(used)
    candidate = base
    suffix = 1
    while candidate in taken:
        candidate = f"{base}_{suffix}"
        suffix += 1
    return candidate, taken | {candidate}
