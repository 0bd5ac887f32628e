"""Import legacy finance transactions as payments of a migrated application."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

from loguru import logger
from sqlalchemy import func, select

from appsys.store.legacy import LegacyStore
from appsys.store.models import Application, Payment
from appsys.store.target import TargetStore

from .normalize import nullable_string, parse_datetime

ZERO = Decimal("0")


def payment_reference(legacy_payment_id: Any) -> str:
    return f"legacy-finance-{int(legacy_payment_id)}"


def parse_amount(value: Any) -> Decimal:
    """Legacy amounts floored at zero; unparseable values count as zero."""

    if value is None:
        return ZERO
    try:
        amount = Decimal(str(value).strip() or "0")
    except InvalidOperation:
        return ZERO
    if not amount.is_finite():
        return ZERO
    return max(amount, ZERO).quantize(Decimal("0.01"))


class PaymentImporter:
    def __init__(self, legacy: LegacyStore, target: TargetStore) -> None:
        self.legacy = legacy
        self.target = target

    def import_for(self, application: Application, legacy_task_id: int) -> int:
        """Create missing payments for one application; returns how many were created."""

        rows = self.legacy.finance_rows(legacy_task_id)
        if not rows:
            return 0

        created = 0
        with self.target.unit_of_work() as session:
            existing = set(
                session.scalars(
                    select(Payment.payment_reference).where(Payment.application_id == application.id)
                )
            )
            for row in rows:
                reference = payment_reference(row["val_id"])
                if reference in existing:
                    continue
                session.add(
                    Payment(
                        application_id=application.id,
                        amount=parse_amount(row.get("val_amount")),
                        payment_method=nullable_string(row.get("val_method")) or "legacy",
                        payment_reference=reference,
                        payment_status="completed",
                        payment_date=parse_datetime(row.get("val_date")),
                        notes=nullable_string(row.get("val_note")),
                    )
                )
                existing.add(reference)
                created += 1

            if created:
                session.flush()
                self._refresh_paid_state(application)

        if created:
            logger.debug("Imported {} legacy payments for {}", created, application.application_number)
        return created

    def _refresh_paid_state(self, application: Application) -> None:
        total = self.target.session.scalar(
            select(func.coalesce(func.sum(Payment.amount), 0)).where(Payment.application_id == application.id)
        )
        application.amount_paid = Decimal(str(total)).quantize(Decimal("0.01"))
        application.is_paid = application.amount_paid >= Decimal(str(application.total_fee or 0))


__all__ = ["PaymentImporter", "parse_amount", "payment_reference"]
