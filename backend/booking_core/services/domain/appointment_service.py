"""
Appointment Service.

Handles bookings and their status lifecycle:

    scheduled -> confirmed -> in_progress -> completed
    scheduled | confirmed -> cancelled | no_show

Usage:
    service = AppointmentService(db)
    appt = service.create({...}, acting_user_id)
    service.confirm(appt.id, acting_user_id)
    service.cancel(appt.id, acting_user_id, reason="Client request")
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any

from booking_core.models import Appointment, Business, Client, Service, Staff, utcnow
from booking_core.repositories import AppointmentRepository
from booking_core.schemas import AppointmentCreate, AppointmentOutput, AppointmentUpdate, Page
from booking_core.services.base_service import BaseCRUDService
from shared.config.constants import AppointmentStatus
from shared.config.logging import get_logger
from shared.utils.exceptions import ConflictError, InvalidTransitionError, ValidationError

logger = get_logger(__name__)


class AppointmentService(BaseCRUDService[Appointment, AppointmentCreate, AppointmentUpdate, AppointmentOutput]):
    """
    Business rules:
    - Client, staff and service must be live and belong to the business
    - Staff must hold an active position
    - End time and price default from the service
    - Only open appointments can be edited; terminal states never change
    """

    model = Appointment
    repository_class = AppointmentRepository
    create_schema = AppointmentCreate
    update_schema = AppointmentUpdate
    output_schema = AppointmentOutput

    def _build_entity(self, payload: AppointmentCreate) -> Appointment:
        values = payload.model_dump()
        if values.get("currency"):
            values["currency"] = values["currency"].upper()
        return Appointment(status=AppointmentStatus.SCHEDULED, **values)

    def _check_in_business(self, entity: Any, business_id: uuid.UUID, field: str) -> None:
        if entity.business_id != business_id:
            raise ValidationError.for_field(
                field, "business_mismatch", f"{entity.ENTITY_NAME} belongs to a different business"
            )

    def _validate_create(self, entity: Appointment) -> None:
        business = self._require(Business, entity.business_id, "business_id")

        client = self._require(Client, entity.client_id, "client_id")
        self._check_in_business(client, business.id, "client_id")

        staff = self._require(Staff, entity.staff_id, "staff_id")
        self._check_in_business(staff, business.id, "staff_id")
        if not staff.is_current:
            raise ConflictError(f"Staff {staff.id} has ended", rule="staff_ended")

        service = None
        if entity.service_id is not None:
            service = self._require(Service, entity.service_id, "service_id")
            self._check_in_business(service, business.id, "service_id")
            if not service.is_active:
                raise ConflictError(f"Service {service.id} is not offered", rule="service_inactive")

        if entity.end_time is None and service is not None and entity.start_time is not None:
            entity.end_time = entity.start_time + timedelta(minutes=service.duration_minutes)
        if entity.total_price is None:
            entity.total_price = service.price if service is not None else Decimal("0")
        if not entity.currency:
            entity.currency = service.currency if service is not None else business.currency

    def _validate_update(self, entity: Appointment, changes: dict[str, Any]) -> None:
        if not entity.is_open:
            raise ConflictError(
                f"Appointment {entity.id} is {entity.status} and cannot be changed",
                rule="appointment_closed",
            )

    # =========================================================================
    # Status transitions
    # =========================================================================

    def _transition(
        self,
        appointment_id: uuid.UUID,
        to_status: str,
        user_id: uuid.UUID,
        values: dict[str, Any] | None = None,
    ) -> AppointmentOutput:
        appointment = self._repo.get_by_id(appointment_id)
        if not appointment.can_transition_to(to_status):
            raise InvalidTransitionError("Appointment", appointment.status, to_status)
        updated = self._repo.transition(
            appointment_id, appointment.status, to_status, user_id, values=values
        )
        return self.to_output(updated)

    def confirm(self, appointment_id: uuid.UUID, user_id: uuid.UUID) -> AppointmentOutput:
        return self._transition(
            appointment_id, AppointmentStatus.CONFIRMED, user_id, {"confirmed_at": utcnow()}
        )

    def start(self, appointment_id: uuid.UUID, user_id: uuid.UUID) -> AppointmentOutput:
        return self._transition(appointment_id, AppointmentStatus.IN_PROGRESS, user_id)

    def complete(self, appointment_id: uuid.UUID, user_id: uuid.UUID) -> AppointmentOutput:
        return self._transition(
            appointment_id, AppointmentStatus.COMPLETED, user_id, {"completed_at": utcnow()}
        )

    def cancel(self, appointment_id: uuid.UUID, user_id: uuid.UUID, reason: str | None = None) -> AppointmentOutput:
        if reason is not None and len(reason) > self._rules.max_description_length:
            raise ValidationError.for_field(
                "cancellation_reason", "max_length", "cancellation_reason is too long"
            )
        return self._transition(
            appointment_id,
            AppointmentStatus.CANCELLED,
            user_id,
            {"cancelled_at": utcnow(), "cancellation_reason": reason},
        )

    def mark_no_show(self, appointment_id: uuid.UUID, user_id: uuid.UUID) -> AppointmentOutput:
        return self._transition(appointment_id, AppointmentStatus.NO_SHOW, user_id)

    # =========================================================================
    # Queries
    # =========================================================================

    def list_by_business(
        self,
        business_id: uuid.UUID,
        page: int | None = None,
        page_size: int | None = None,
        *,
        status: str | None = None,
        start_from: datetime | None = None,
        start_until: datetime | None = None,
    ) -> Page[AppointmentOutput]:
        self._require(Business, business_id, "business_id")
        if status is not None and status not in AppointmentStatus.ALL:
            raise ValidationError.for_field(
                "status", "choice", f"status must be one of: {', '.join(AppointmentStatus.ALL)}"
            )
        filters: dict[str, Any] = {"business_id": business_id}
        if status is not None:
            filters["status"] = status
        conditions = []
        if start_from is not None:
            conditions.append(Appointment.start_time >= start_from)
        if start_until is not None:
            conditions.append(Appointment.start_time < start_until)
        page, page_size = self.clamp_page(page, page_size)
        return self.to_page(self._repo.list(page, page_size, filters, conditions=conditions))

    def list_for_staff(self, staff_id: uuid.UUID) -> list[AppointmentOutput]:
        self._require(Staff, staff_id, "staff_id")
        return [self.to_output(a) for a in self._repo.find_by_staff_id(staff_id)]

    def list_for_client(self, client_id: uuid.UUID) -> list[AppointmentOutput]:
        self._require(Client, client_id, "client_id")
        return [self.to_output(a) for a in self._repo.find_by_client_id(client_id)]

    def count_by_status(self, business_id: uuid.UUID | None = None) -> dict[str, int]:
        return self._repo.count_by_status(business_id)
