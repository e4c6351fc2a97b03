"""
Business Service.

Handles business lifecycle:
- Creation with settings-driven defaults (currency, timezone, country, tier)
- Owner staff record created in the same transaction
- Default business provisioning for newly created users

Usage:
    service = BusinessService(db)
    business = service.create({"user_id": owner_id, "name": "Atelier"}, acting_user_id)
"""

from __future__ import annotations

import uuid
from typing import Any

from booking_core.models import Business, Staff, User, utcnow
from booking_core.repositories import BusinessRepository, StaffRepository
from booking_core.schemas import (
    BusinessCreate,
    BusinessOutput,
    BusinessUpdate,
    Page,
    StaffOutput,
)
from booking_core.services.base_service import BaseCRUDService
from shared.config.constants import StaffRole
from shared.config.logging import get_logger

logger = get_logger(__name__)

DEFAULT_BUSINESS_SUFFIX = "'s Business"


class BusinessService(BaseCRUDService[Business, BusinessCreate, BusinessUpdate, BusinessOutput]):
    """
    Business rules:
    - The owner must be a live user
    - Every business starts with its owner as an active OWNER staff record
    - Deleting a business cascades to its staff, clients, services and appointments
    """

    model = Business
    repository_class = BusinessRepository
    create_schema = BusinessCreate
    update_schema = BusinessUpdate
    output_schema = BusinessOutput

    # =========================================================================
    # Hooks
    # =========================================================================

    def _apply_defaults(self, values: dict[str, Any]) -> dict[str, Any]:
        values["country"] = values.get("country") or self._config.default_country
        values["timezone"] = values.get("timezone") or self._config.default_timezone
        values["currency"] = (values.get("currency") or self._config.default_currency).upper()
        values["subscription_tier"] = (
            values.get("subscription_tier") or self._config.default_subscription_tier
        )
        if values.get("email"):
            values["email"] = values["email"].lower()
        return values

    def _build_entity(self, payload: BusinessCreate) -> Business:
        values = self._apply_defaults(payload.model_dump())
        return Business(is_active=True, is_verified=False, **values)

    def _validate_create(self, entity: Business) -> None:
        self._require(User, entity.user_id, "user_id")

    def _validate_update(self, entity: Business, changes: dict[str, Any]) -> None:
        if changes.get("email"):
            changes["email"] = changes["email"].lower()
        if changes.get("currency"):
            changes["currency"] = changes["currency"].upper()

    def _after_create(self, entity: Business, user_id: uuid.UUID) -> None:
        self.add_owner_staff(entity, user_id)

    # =========================================================================
    # Workflow steps (no commit; the caller owns the transaction)
    # =========================================================================

    def add_owner_staff(self, business: Business, acting_user_id: uuid.UUID) -> Staff:
        staff = Staff(
            business_id=business.id,
            user_id=business.user_id,
            role=StaffRole.OWNER,
            permissions={},
            is_active=True,
            start_date=utcnow(),
        )
        return self._repository(StaffRepository).create(staff, acting_user_id, commit=False)

    def provision_default(self, owner: User, acting_user_id: uuid.UUID) -> Business:
        """Create the default business and owner staff record for `owner`."""
        suffix = DEFAULT_BUSINESS_SUFFIX
        base_name = owner.full_name[: self._rules.max_name_length - len(suffix)]
        business = Business(
            **self._apply_defaults({"user_id": owner.id, "name": f"{base_name}{suffix}"}),
            is_active=True,
            is_verified=False,
        )
        self._repo.create(business, acting_user_id, commit=False)
        self.add_owner_staff(business, acting_user_id)
        logger.info(
            "Default business provisioned",
            business_id=str(business.id),
            user_id=str(owner.id),
        )
        return business

    # =========================================================================
    # Queries
    # =========================================================================

    def list_by_owner(self, user_id: uuid.UUID, page: int | None = None, page_size: int | None = None) -> Page[BusinessOutput]:
        return self.list(page, page_size, {"user_id": user_id})

    def list_staff(self, business_id: uuid.UUID, *, include_ended: bool = False) -> list[StaffOutput]:
        self._repo.get_by_id(business_id)
        staff = self._repository(StaffRepository).find_by_business_id(
            business_id, include_ended=include_ended
        )
        return [StaffOutput.model_validate(s) for s in staff]

    def set_verified(self, business_id: uuid.UUID, verified: bool, user_id: uuid.UUID) -> BusinessOutput:
        return self.update(business_id, {"is_verified": verified}, user_id)
