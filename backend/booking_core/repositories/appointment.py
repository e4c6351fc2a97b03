"""
Appointment repository: scheduling queries and status transitions.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import func, select, update

from booking_core.models import Appointment, utcnow
from booking_core.repositories.base import BaseRepository
from shared.config.logging import get_logger
from shared.utils.exceptions import ConflictError, ValidationError

logger = get_logger(__name__)


class AppointmentRepository(BaseRepository[Appointment]):
    def __init__(self, db, **kwargs):
        super().__init__(Appointment, db, **kwargs)

    def find_by_staff_id(self, staff_id: uuid.UUID) -> list[Appointment]:
        return self.find_all_by(staff_id=staff_id)

    def find_by_client_id(self, client_id: uuid.UUID) -> list[Appointment]:
        return self.find_all_by(client_id=client_id)


    def count_by_status(self, business_id: uuid.UUID | None = None) -> dict[str, int]:
        query = (
            select(Appointment.status, func.count())
            .where(Appointment.deleted_at.is_(None))
            .group_by(Appointment.status)
        )
        if business_id is not None:
            query = query.where(Appointment.business_id == business_id)
        with self._storage_call("count appointments by status"):
            return {status: count for status, count in self._db.execute(query).all()}

    def transition(
        self,
        appointment_id: uuid.UUID,
        from_status: str,
        to_status: str,
        user_id: uuid.UUID,
        *,
        values: dict[str, Any] | None = None,
        commit: bool = True,
    ) -> Appointment:
        """
        Move an appointment from `from_status` to `to_status`.

        The UPDATE only matches while the row is still in `from_status`, so a
        concurrent transition makes this one fail with ConflictError.
        """
        if user_id is None:
            raise ValidationError.for_field("user_id", "required", "Acting user is required")
        statement = (
            update(Appointment)
            .where(
                Appointment.id == appointment_id,
                Appointment.deleted_at.is_(None),
                Appointment.status == from_status,
            )
            .values(status=to_status, updated_at=utcnow(), updated_by=user_id, **(values or {}))
            .execution_options(synchronize_session="fetch")
        )
        with self._storage_call("transition appointments", owns_transaction=commit):
            result = self._db.execute(statement)
            if result.rowcount != 1:
                raise ConflictError(
                    f"Appointment {appointment_id} is no longer {from_status}",
                    rule="appointment_status",
                )
            if commit:
                self._db.commit()

        logger.info(
            "Appointment status changed",
            appointment_id=str(appointment_id),
            from_status=from_status,
            to_status=to_status,
        )
        return self.get_by_id(appointment_id)
