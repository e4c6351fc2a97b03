"""
Appointment: a booked slot for a client with a staff member.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, Index, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from shared.config.constants import APPOINTMENT_TRANSITIONS, AppointmentStatus
from shared.utils.validators import (
    DEFAULT_RULES,
    ValidationResult,
    ValidationRules,
    check_choice,
    check_currency,
    check_length,
    check_range,
    check_required,
)

from .base import Base, EntityMixin, as_utc


class Appointment(EntityMixin, Base):
    """
    Status follows APPOINTMENT_TRANSITIONS; terminal states never change.
    The *_at stamps record when each transition happened.
    """

    __tablename__ = "appointments"
    __table_args__ = (
        Index("ix_appointments_staff_start", "staff_id", "start_time"),
    )

    ENTITY_NAME = "Appointment"
    # status and its stamps move only through AppointmentRepository.transition
    IMMUTABLE_FIELDS = EntityMixin.IMMUTABLE_FIELDS | {
        "business_id", "status", "confirmed_at", "completed_at", "cancelled_at", "cancellation_reason",
    }

    business_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("businesses.id"), nullable=False, index=True
    )
    client_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("clients.id"), nullable=False, index=True
    )
    staff_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("staff.id"), nullable=False, index=True
    )
    service_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("services.id"), nullable=True, index=True
    )
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=AppointmentStatus.SCHEDULED, nullable=False, index=True
    )
    title: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    cancellation_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    total_price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    confirmed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    @property
    def duration_minutes(self) -> int:
        return int((as_utc(self.end_time) - as_utc(self.start_time)).total_seconds() // 60)

    @property
    def is_open(self) -> bool:
        return self.status in AppointmentStatus.OPEN

    def can_transition_to(self, status: str) -> bool:
        return status in APPOINTMENT_TRANSITIONS.get(self.status, [])

    def validate(self, rules: ValidationRules = DEFAULT_RULES) -> ValidationResult:
        result = ValidationResult()
        for name in ("business_id", "client_id", "staff_id", "start_time", "end_time"):
            check_required(result, name, getattr(self, name))
        if self.start_time is not None and self.end_time is not None:
            if as_utc(self.end_time) <= as_utc(self.start_time):
                result.add("end_time", "range", "end_time must be after start_time")
        if check_required(result, "status", self.status):
            check_choice(result, "status", self.status, AppointmentStatus.ALL)
        check_length(result, "title", self.title, rules.max_name_length)
        check_length(result, "notes", self.notes, rules.max_description_length)
        if check_required(result, "total_price", self.total_price):
            check_range(result, "total_price", self.total_price, minimum=0, maximum=rules.max_price)
        check_currency(result, "currency", self.currency, rules)
        return result

    def __repr__(self) -> str:
        return f"<Appointment(id={self.id}, status='{self.status}')>"
