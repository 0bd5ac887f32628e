"""Shared fixtures: seeded legacy SQLite database and a bootstrapped target store."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Iterator

import pytest

_REPO_ROOT = Path(__file__).resolve().parents[1]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))

from appsys.store import LegacyStore, TargetStore  # noqa: E402
from appsys.store.models import User  # noqa: E402

from tests.utils import build_legacy_database, seed_legacy, sqlite_url  # noqa: E402


@pytest.fixture()
def legacy_path(tmp_path: Path) -> Path:
    path = tmp_path / "legacy.sqlite3"
    engine = build_legacy_database(path)
    seed_legacy(engine)
    engine.dispose()
    return path


@pytest.fixture()
def legacy_store(legacy_path: Path) -> Iterator[LegacyStore]:
    store = LegacyStore.from_url(sqlite_url(legacy_path))
    yield store
    store.engine.dispose()


@pytest.fixture()
def empty_target(tmp_path: Path) -> Iterator[TargetStore]:
    store = TargetStore.from_url(sqlite_url(tmp_path / "target.sqlite3"))
    store.create_schema()
    yield store
    store.close()
    store.engine.dispose()


@pytest.fixture()
def target_store(empty_target: TargetStore) -> TargetStore:
    """Target store with the owner user services are attached to."""

    empty_target.first_or_create(
        User,
        {"email": "owner@example.com"},
        {"name": "Owner", "password": "secret"},
    )
    return empty_target
