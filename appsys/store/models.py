"""SQLAlchemy ORM models of the normalized target schema."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all target models."""

    type_annotation_map = {
        datetime: DateTime(timezone=False),
    }


class TimestampMixin:
    created_at: Mapped[datetime | None] = mapped_column(server_default=func.now(), nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(
        server_default=func.now(), onupdate=func.now(), nullable=True
    )


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    phone: Mapped[str | None] = mapped_column(String(20), nullable=True)
    password: Mapped[str] = mapped_column(String(255), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    profile_completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)


class ApplicationType(TimestampMixin, Base):
    __tablename__ = "application_types"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    base_fee: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    color: Mapped[str] = mapped_column(String(50), default="blue", nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    display_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    field_links: Mapped[list["ApplicationTypeFormField"]] = relationship(back_populates="application_type")


class FormField(TimestampMixin, Base):
    __tablename__ = "form_fields"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    type: Mapped[str] = mapped_column(String(50), default="text", nullable=False)
    placeholder: Mapped[str | None] = mapped_column(String(255), nullable=True)
    help_text: Mapped[str | None] = mapped_column(Text, nullable=True)
    validation_rules: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    options: Mapped[list["FormFieldOption"]] = relationship(back_populates="form_field")


class FormFieldOption(TimestampMixin, Base):
    __tablename__ = "form_field_options"
    __table_args__ = (UniqueConstraint("form_field_id", "value", name="form_field_option_value_unique"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    form_field_id: Mapped[int] = mapped_column(ForeignKey("form_fields.id", ondelete="CASCADE"), nullable=False)
    label: Mapped[str] = mapped_column(String(255), nullable=False)
    value: Mapped[str] = mapped_column(String(255), nullable=False)
    display_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    form_field: Mapped[FormField] = relationship(back_populates="options")


class ApplicationTypeFormField(TimestampMixin, Base):
    __tablename__ = "application_type_form_field"
    __table_args__ = (
        UniqueConstraint("application_type_id", "form_field_id", name="app_type_form_field_unique"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    application_type_id: Mapped[int] = mapped_column(
        ForeignKey("application_types.id", ondelete="CASCADE"), nullable=False
    )
    form_field_id: Mapped[int] = mapped_column(ForeignKey("form_fields.id", ondelete="CASCADE"), nullable=False)
    is_required: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    display_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    section: Mapped[str | None] = mapped_column(String(255), nullable=True)

    application_type: Mapped[ApplicationType] = relationship(back_populates="field_links")
    form_field: Mapped[FormField] = relationship()


class ApplicationStatus(TimestampMixin, Base):
    __tablename__ = "application_statuses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    color: Mapped[str] = mapped_column(String(50), default="gray", nullable=False)
    is_final: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    visible_to_client: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    display_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class Service(TimestampMixin, Base):
    __tablename__ = "services"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    color: Mapped[str] = mapped_column(String(20), default="#6b7280", nullable=False)
    is_starred: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class ServiceStage(TimestampMixin, Base):
    __tablename__ = "service_stages"
    __table_args__ = (Index("idx_service_stages_service_position", "service_id", "position"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    service_id: Mapped[int] = mapped_column(ForeignKey("services.id", ondelete="CASCADE"), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    color: Mapped[str] = mapped_column(String(20), default="#6b7280", nullable=False)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)


class Application(TimestampMixin, Base):
    __tablename__ = "applications"
    __table_args__ = (
        Index("idx_applications_user", "user_id"),
        Index("idx_applications_status", "application_status_id"),
        Index("idx_applications_assigned", "assigned_to"),
        Index("idx_applications_service", "service_id", "service_stage_id", "service_position"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    application_number: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    application_type_id: Mapped[int] = mapped_column(ForeignKey("application_types.id"), nullable=False)
    application_status_id: Mapped[int] = mapped_column(ForeignKey("application_statuses.id"), nullable=False)
    assigned_to: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    total_fee: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    amount_paid: Mapped[Decimal] = mapped_column(Numeric(10, 2), default=Decimal("0"), nullable=False)
    is_paid: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    client_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    staff_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    priority: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    tags: Mapped[list | None] = mapped_column(JSON, nullable=True)
    custom_fields: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    submitted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    due_date: Mapped[datetime | None] = mapped_column(nullable=True)
    service_id: Mapped[int | None] = mapped_column(ForeignKey("services.id", ondelete="SET NULL"), nullable=True)
    service_stage_id: Mapped[int | None] = mapped_column(
        ForeignKey("service_stages.id", ondelete="SET NULL"), nullable=True
    )
    service_position: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    payments: Mapped[list["Payment"]] = relationship(back_populates="application")
    timeline: Mapped[list["ApplicationTimeline"]] = relationship(back_populates="application")


class ApplicationTimeline(Base):
    __tablename__ = "application_timeline"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    application_id: Mapped[int] = mapped_column(
        ForeignKey("applications.id", ondelete="CASCADE"), index=True, nullable=False
    )
    user_id: Mapped[int | None] = mapped_column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    metadata_: Mapped[dict | None] = mapped_column("metadata", JSON, nullable=True)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now(), nullable=False)

    application: Mapped[Application] = relationship(back_populates="timeline")


class Payment(TimestampMixin, Base):
    __tablename__ = "payments"
    __table_args__ = (Index("idx_payments_application_reference", "application_id", "payment_reference"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    application_id: Mapped[int] = mapped_column(
        ForeignKey("applications.id", ondelete="CASCADE"), nullable=False
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    payment_method: Mapped[str] = mapped_column(String(100), nullable=False)
    payment_reference: Mapped[str | None] = mapped_column(String(255), nullable=True)
    payment_status: Mapped[str] = mapped_column(String(20), default="pending", nullable=False)
    payment_date: Mapped[datetime | None] = mapped_column(nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    application: Mapped[Application] = relationship(back_populates="payments")


__all__ = [
    "Application",
    "ApplicationStatus",
    "ApplicationTimeline",
    "ApplicationType",
    "ApplicationTypeFormField",
    "Base",
    "FormField",
    "FormFieldOption",
    "Payment",
    "Service",
    "ServiceStage",
    "User",
]
