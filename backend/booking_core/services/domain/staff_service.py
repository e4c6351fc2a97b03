"""
Staff Service.

Handles a user's positions within businesses:
- Assign a user to a business (at most one active record per pair)
- End (deactivate) a position, keeping it as history
- Reactivate by inserting a new active record
- Update role, permissions and employment details of an active record
- Search the staff of a business by name, email or position

Usage:
    service = StaffService(db)
    staff = service.assign({"business_id": b_id, "user_id": u_id, "role": "employee"}, acting_user_id)
    service.deactivate(staff.id, acting_user_id)
    staff = service.reactivate(staff.id, acting_user_id)
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any, Mapping

from booking_core.models import Business, Staff, User, utcnow
from booking_core.repositories import StaffRepository
from booking_core.schemas import Page, StaffCreate, StaffOutput, StaffUpdate
from booking_core.services.base_service import BaseCRUDService
from shared.config.logging import get_logger
from shared.utils.exceptions import ConflictError, NotFoundError

logger = get_logger(__name__)


class StaffService(BaseCRUDService[Staff, StaffCreate, StaffUpdate, StaffOutput]):
    """
    Business rules:
    - Business and user must both be live
    - A second active record for the same (business, user) is a ConflictError,
      including when two requests race
    - Ended records are history: they cannot be updated or re-ended
    """

    model = Staff
    repository_class = StaffRepository
    create_schema = StaffCreate
    update_schema = StaffUpdate
    output_schema = StaffOutput

    def _build_entity(self, payload: StaffCreate) -> Staff:
        values = payload.model_dump()
        values["start_date"] = values.get("start_date") or utcnow()
        return Staff(is_active=True, end_date=None, **values)

    def _validate_create(self, entity: Staff) -> None:
        self._require(Business, entity.business_id, "business_id")
        self._require(User, entity.user_id, "user_id")

    def _validate_update(self, entity: Staff, changes: dict[str, Any]) -> None:
        if not entity.is_current:
            raise ConflictError(
                f"Staff {entity.id} has ended and cannot be changed",
                rule="staff_ended",
            )

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def assign(self, data: StaffCreate | Mapping[str, Any], user_id: uuid.UUID) -> StaffOutput:
        """Create the active staff record for (business, user)."""
        return self.create(data, user_id)

    def deactivate(
        self,
        staff_id: uuid.UUID,
        user_id: uuid.UUID,
        *,
        end_date: datetime | None = None,
    ) -> StaffOutput:
        """Transition active -> ended. Ending an ended record is a ConflictError."""
        return self.to_output(self._repo.end(staff_id, user_id, end_date=end_date))

    def reactivate(self, staff_id: uuid.UUID, user_id: uuid.UUID) -> StaffOutput:
        """
        Start a new active record modelled on the ended `staff_id`.

        The ended record is left untouched so the history shows both periods.
        """
        previous = self._repo.get_by_id(staff_id)
        if previous.is_current:
            raise ConflictError(f"Staff {staff_id} is already active", rule="staff_active")
        return self.create(
            {
                "business_id": previous.business_id,
                "user_id": previous.user_id,
                "role": previous.role,
                "position": previous.position,
                "permissions": dict(previous.permissions or {}),
                "employment_type": previous.employment_type,
                "commission_rate": previous.commission_rate,
            },
            user_id,
        )

    # =========================================================================
    # Queries
    # =========================================================================

    def get_active(self, business_id: uuid.UUID, user_id: uuid.UUID) -> StaffOutput:
        staff = self._repo.find_active(business_id, user_id)
        if staff is None:
            raise NotFoundError("Staff", f"{business_id}/{user_id}", field="business_id/user_id")
        return self.to_output(staff)

    def history(self, business_id: uuid.UUID, user_id: uuid.UUID) -> list[StaffOutput]:
        """Every live record for the pair, active and ended, oldest first."""
        return [self.to_output(s) for s in self._repo.history(business_id, user_id)]

    def list_by_business(
        self,
        business_id: uuid.UUID,
        page: int | None = None,
        page_size: int | None = None,
        *,
        include_ended: bool = False,
    ) -> Page[StaffOutput]:
        self._require(Business, business_id, "business_id")
        page, page_size = self.clamp_page(page, page_size)
        conditions = () if include_ended else (Staff.is_active.is_(True), Staff.end_date.is_(None))
        result = self._repo.list(page, page_size, {"business_id": business_id}, conditions=conditions)
        return self.to_page(result)

    def search(
        self,
        business_id: uuid.UUID,
        query: str,
        limit: int | None = None,
        *,
        include_ended: bool = False,
    ) -> list[StaffOutput]:
        """Staff of a business whose name, email or position matches `query`."""
        term = self.search_term(query)
        self._require(Business, business_id, "business_id")
        found = self._repo.search(business_id, term, self.clamp_limit(limit), include_ended=include_ended)
        return [self.to_output(s) for s in found]
