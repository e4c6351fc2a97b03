"""
Service Assignment Service.

Handles which staff perform which services:
- Assign one service or many (each in its own savepoint)
- End and reactivate assignments, keeping history

Usage:
    service = ServiceAssignmentService(db)
    service.assign({"staff_id": staff_id, "service_id": service_id}, acting_user_id)
    created = service.assign_many(staff_id, [s1, s2, s3], acting_user_id)
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Mapping, Sequence

from booking_core.models import Service, ServiceAssignment, Staff, utcnow
from booking_core.repositories import ServiceAssignmentRepository
from booking_core.schemas import ServiceAssignmentCreate, ServiceAssignmentOutput
from booking_core.services.base_service import BaseCRUDService, parse_input
from shared.config.logging import get_logger
from shared.utils.exceptions import (
    AppException,
    ConflictError,
    NotFoundError,
    PartialFailureError,
    ValidationError,
)

logger = get_logger(__name__)


class ServiceAssignmentService(
    BaseCRUDService[ServiceAssignment, ServiceAssignmentCreate, ServiceAssignmentCreate, ServiceAssignmentOutput]
):
    """
    Business rules:
    - Staff must be active and the service live, both in the same business
    - At most one active assignment per (staff, service)
    - Assignments are never edited; end one and assign again instead
    """

    model = ServiceAssignment
    repository_class = ServiceAssignmentRepository
    create_schema = ServiceAssignmentCreate
    update_schema = ServiceAssignmentCreate
    output_schema = ServiceAssignmentOutput

    def _build_entity(self, payload: ServiceAssignmentCreate) -> ServiceAssignment:
        return ServiceAssignment(
            staff_id=payload.staff_id,
            service_id=payload.service_id,
            start_date=payload.start_date or utcnow(),
            is_active=True,
            end_date=None,
        )

    def _validate_create(self, entity: ServiceAssignment) -> None:
        staff = self._require(Staff, entity.staff_id, "staff_id")
        if not staff.is_current:
            raise ConflictError(f"Staff {staff.id} has ended", rule="staff_ended")
        service = self._require(Service, entity.service_id, "service_id")
        if service.business_id != staff.business_id:
            raise ValidationError.for_field(
                "service_id", "business_mismatch", "Service belongs to a different business"
            )
        entity.business_id = staff.business_id

    def update(self, entity_id: uuid.UUID, data: Any, user_id: uuid.UUID) -> ServiceAssignmentOutput:
        raise ConflictError(
            "Service assignments cannot be edited; end and re-assign instead",
            rule="assignment_immutable",
        )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def assign(self, data: ServiceAssignmentCreate | Mapping[str, Any], user_id: uuid.UUID) -> ServiceAssignmentOutput:
        return self.create(data, user_id)

    def assign_many(
        self,
        staff_id: uuid.UUID,
        service_ids: Sequence[uuid.UUID],
        user_id: uuid.UUID,
    ) -> list[ServiceAssignmentOutput]:
        """
        Assign several services to one staff member.

        Each assignment runs in its own savepoint. Successful ones are
        committed; if any failed, PartialFailureError reports which
        services succeeded and why each of the others failed.
        """
        if not service_ids:
            raise ValidationError.for_field("service_ids", "required", "service_ids must not be empty")

        created: list[ServiceAssignment] = []
        failed: dict[uuid.UUID, AppException] = {}
        for service_id in dict.fromkeys(service_ids):
            try:
                payload = parse_input(
                    self.create_schema,
                    {"staff_id": staff_id, "service_id": service_id},
                    self.entity_name,
                )
                entity = self._build_entity(payload)
                with self._db.begin_nested():
                    self._validate_create(entity)
                    self._repo.create(entity, user_id, commit=False)
                created.append(entity)
            except AppException as e:
                failed[service_id] = e

        self._repo.commit("assign service_assignments")
        outputs = [self.to_output(e) for e in created]

        if failed:
            raise PartialFailureError(
                "assign services",
                succeeded=[o.service_id for o in outputs],
                failed=failed,
                staff_id=str(staff_id),
            )
        return outputs

    def deactivate(
        self,
        assignment_id: uuid.UUID,
        user_id: uuid.UUID,
        *,
        end_date: datetime | None = None,
    ) -> ServiceAssignmentOutput:
        return self.to_output(self._repo.end(assignment_id, user_id, end_date=end_date))

    def reactivate(self, assignment_id: uuid.UUID, user_id: uuid.UUID) -> ServiceAssignmentOutput:
        """New active assignment for the pair of an ended one."""
        previous = self._repo.get_by_id(assignment_id)
        if previous.is_current:
            raise ConflictError(
                f"ServiceAssignment {assignment_id} is already active",
                rule="assignment_active",
            )
        return self.create(
            {"staff_id": previous.staff_id, "service_id": previous.service_id},
            user_id,
        )

    # =========================================================================
    # Queries
    # =========================================================================

    def get_active(self, staff_id: uuid.UUID, service_id: uuid.UUID) -> ServiceAssignmentOutput:
        assignment = self._repo.find_active(staff_id, service_id)
        if assignment is None:
            raise NotFoundError("ServiceAssignment", f"{staff_id}/{service_id}", field="staff_id/service_id")
        return self.to_output(assignment)

    def history(self, staff_id: uuid.UUID, service_id: uuid.UUID) -> list[ServiceAssignmentOutput]:
        return [self.to_output(a) for a in self._repo.history(staff_id, service_id)]

    def list_for_staff(self, staff_id: uuid.UUID, *, include_ended: bool = False) -> list[ServiceAssignmentOutput]:
        self._require(Staff, staff_id, "staff_id")
        found = self._repo.find_by_staff_id(staff_id, include_ended=include_ended)
        return [self.to_output(a) for a in found]

    def list_for_service(self, service_id: uuid.UUID, *, include_ended: bool = False) -> list[ServiceAssignmentOutput]:
        self._require(Service, service_id, "service_id")
        found = self._repo.find_by_service_id(service_id, include_ended=include_ended)
        return [self.to_output(a) for a in found]
