"""Memoizing lookup-or-create resolution of legacy references to target ids."""

from __future__ import annotations

import secrets
from typing import Any

from loguru import logger

from appsys.errors import BootstrapError
from appsys.store.legacy import LegacyStore
from appsys.store.models import (
    ApplicationStatus,
    ApplicationType,
    Service,
    ServiceStage,
    User,
)
from appsys.store.target import TargetStore

from .catalog import LegacyRow
from .context import MigrationContext
from .normalize import nullable_string, parse_csv_ids, slugify

DEFAULT_STATUS_COLOR = "gray"
DEFAULT_BOARD_COLOR = "#6b7280"
UNKNOWN_STAGE = "Unknown"
PLACEHOLDER_EMAIL_DOMAIN = "legacy.local"


def _to_int(value: Any) -> int:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return 0


def _full_name(*parts: Any) -> str:
    return " ".join(piece for piece in (str(part or "").strip() for part in parts) if piece)


class ReferenceResolver:
    """Map legacy list/status/space/contact/staff ids to target ids.

    Every mapping is created on first sight and cached in the run context. In
    dry-run mode the target store is never touched and placeholder ids are
    handed out instead.
    """

    def __init__(self, context: MigrationContext, legacy: LegacyStore, target: TargetStore | None) -> None:
        self.context = context
        self.legacy = legacy
        self.target = target

    @property
    def _store(self) -> TargetStore:
        if self.target is None:
            raise RuntimeError("A target store is required outside dry-run mode")
        return self.target

    # ------------------------------------------------------------------
    # Catalog-backed references
    def application_type_id(self, list_name: str | None, legacy_list_id: str) -> int:
        cache = self.context.application_types
        if legacy_list_id in cache:
            return cache[legacy_list_id]
        if self.context.dry_run:
            cache[legacy_list_id] = self.context.next_placeholder_id("application_type")
            return cache[legacy_list_id]

        name = nullable_string(list_name) or f"Legacy List {legacy_list_id}"
        application_type = self._store.first_or_create(
            ApplicationType,
            {"slug": slugify(name)},
            {"name": name, "is_active": True},
        )
        cache[legacy_list_id] = application_type.id
        return application_type.id

    def application_status_id(self, legacy_status_id: str, status_row: LegacyRow | None) -> int:
        cache = self.context.application_statuses
        if legacy_status_id in cache:
            return cache[legacy_status_id]
        if self.context.dry_run:
            cache[legacy_status_id] = self.context.next_placeholder_id("application_status")
            return cache[legacy_status_id]

        if status_row is None:
            name = UNKNOWN_STAGE
        else:
            name = str(status_row.get("status_name") or "").strip() or f"Legacy Status {legacy_status_id}"
        status = self._store.first_or_create(
            ApplicationStatus,
            {"slug": slugify(name)},
            {"name": name, "color": DEFAULT_STATUS_COLOR, "visible_to_client": True},
        )
        cache[legacy_status_id] = status.id
        return status.id

    def service_id(self, service_name: str, legacy_space_id: str) -> int:
        cache = self.context.services
        if legacy_space_id in cache:
            return cache[legacy_space_id]
        if self.context.dry_run:
            cache[legacy_space_id] = self.context.next_placeholder_id("service")
            return cache[legacy_space_id]

        service = self._store.first_or_create(
            Service,
            {"user_id": self._service_owner_id(), "name": service_name},
            {"color": DEFAULT_BOARD_COLOR},
        )
        cache[legacy_space_id] = service.id
        return service.id

    def service_stage_id(self, service_id: int, stage_name: str) -> int:
        key = (service_id, stage_name)
        cache = self.context.service_stages
        if key in cache:
            return cache[key]
        if self.context.dry_run:
            cache[key] = self.context.next_placeholder_id("service_stage")
            return cache[key]

        stage = self._store.first_or_create(
            ServiceStage,
            {"service_id": service_id, "name": stage_name},
            {"color": DEFAULT_BOARD_COLOR, "position": 0},
        )
        cache[key] = stage.id
        return stage.id

    def _service_owner_id(self) -> int:
        if self.context.service_owner_id is None:
            owner = self._store.lowest_id(User)
            if owner is None:
                raise BootstrapError("At least one user record is required before running migration.")
            self.context.service_owner_id = owner.id
        return self.context.service_owner_id

    # ------------------------------------------------------------------
    # People
    def client_user_id(self, legacy_contact_id: Any, fallback_name: str | None) -> int:
        raw_id = str(legacy_contact_id or "").strip()
        legacy_id = _to_int(raw_id)
        cache = self.context.client_users
        if legacy_id > 0 and legacy_id in cache:
            return cache[legacy_id]
        if self.context.dry_run:
            placeholder = self.context.next_placeholder_id("user")
            if legacy_id > 0:
                cache[legacy_id] = placeholder
            return placeholder

        contact = self.legacy.first("contact", "contact_id", legacy_id) if legacy_id > 0 else None
        contact = contact or {}
        name = (
            _full_name(contact.get("contact_fname"), contact.get("contact_mname"), contact.get("contact_lname"))
            or nullable_string(fallback_name)
            or f"Legacy Client {raw_id}"
        )
        user = self._find_or_create_user(
            email=nullable_string(contact.get("contact_email")),
            placeholder_email=f"legacy-contact-{raw_id}@{PLACEHOLDER_EMAIL_DOMAIN}",
            name=name,
            phone=nullable_string(contact.get("contact_cpnum")),
        )
        if legacy_id > 0:
            cache[legacy_id] = user.id
        return user.id

    def assignee_user_id(self, legacy_assign_csv: str | None) -> int | None:
        legacy_ids = parse_csv_ids(legacy_assign_csv)
        if not legacy_ids:
            return None

        primary_id = int(legacy_ids[0])
        cache = self.context.staff_users
        if primary_id in cache:
            return cache[primary_id]
        if self.context.dry_run:
            cache[primary_id] = self.context.next_placeholder_id("user")
            return cache[primary_id]

        staff = self.legacy.first("user", "user_id", primary_id)
        if staff is None:
            logger.debug("Legacy staff user {} not found; task left unassigned", primary_id)
            return None

        user = self._find_or_create_user(
            email=nullable_string(staff.get("email")),
            placeholder_email=f"legacy-staff-{primary_id}@{PLACEHOLDER_EMAIL_DOMAIN}",
            name=_full_name(staff.get("fname"), staff.get("mname"), staff.get("lname")) or f"Legacy Staff {primary_id}",
            phone=nullable_string(staff.get("contact_number")),
        )
        cache[primary_id] = user.id
        return user.id

    def _find_or_create_user(self, *, email: str | None, placeholder_email: str, name: str, phone: str | None) -> User:
        return self._store.first_or_create(
            User,
            {"email": email or placeholder_email},
            {
                "name": name,
                "password": secrets.token_urlsafe(32),
                "phone": phone[:20] if phone else None,
                "profile_completed": False,
            },
        )


__all__ = ["ReferenceResolver"]
