"""
User Service.

Handles user accounts:
- Create (optionally provisioning a default business and owner staff record,
  all in one transaction)
- Lookup by id, email and external auth id
- Search, activation and external auth linking

Usage:
    service = UserService(db)
    user = service.create({"email": "ana@example.com", "first_name": "Ana", "last_name": "Silva"})
    user = service.get_by_email("ana@example.com")
"""

from __future__ import annotations

import uuid
from typing import Any, Mapping

from booking_core.models import User
from booking_core.repositories import StaffRepository, UserRepository
from booking_core.schemas import (
    BusinessOutput,
    StaffOutput,
    UserCreate,
    UserOutput,
    UserUpdate,
)
from booking_core.services.base_service import BaseCRUDService, parse_input
from booking_core.services.domain.business_service import BusinessService
from shared.config.logging import get_logger, mask_email
from shared.utils.exceptions import AppException, DuplicateEntityError, NotFoundError, ValidationError

logger = get_logger(__name__)


class UserService(BaseCRUDService[User, UserCreate, UserUpdate, UserOutput]):
    """
    Business rules:
    - Email is stored lower-case and unique among live users
    - external_auth_id links a user to one identity-provider account
    - A user that still owns a live business cannot be deleted
    """

    model = User
    repository_class = UserRepository
    create_schema = UserCreate
    update_schema = UserUpdate
    output_schema = UserOutput

    def _build_entity(self, payload: UserCreate) -> User:
        values = payload.model_dump()
        values["email"] = values["email"].lower()
        return User(id=uuid.uuid4(), is_active=True, **values)

    def _validate_update(self, entity: User, changes: dict[str, Any]) -> None:
        if changes.get("email"):
            changes["email"] = changes["email"].lower()

    def create(self, data: UserCreate | Mapping[str, Any], user_id: uuid.UUID | None = None) -> UserOutput:
        """
        Create a user. Without an acting user the account is self-created.

        With `provision_default_business` enabled the default business and
        owner staff record are created in the same transaction: either all
        three records exist afterwards or none do.
        """
        payload = parse_input(self.create_schema, data, self.entity_name)
        user = self._build_entity(payload)
        acting_user_id = user_id or user.id
        try:
            self._repo.create(user, acting_user_id, commit=False)
            if self._config.provision_default_business:
                BusinessService(
                    self._db, ctx=self._ctx, rules=self._rules, config=self._config
                ).provision_default(user, acting_user_id)
            self._repo.commit("create users")
        except AppException as e:
            self._transaction_failed("Create user", e)
            raise

        logger.info("User created", user_id=str(user.id), email=mask_email(user.email))
        return self.to_output(user)

    # =========================================================================
    # Lookups
    # =========================================================================

    def get_by_email(self, email: str) -> UserOutput:
        if not email or not email.strip():
            raise ValidationError.for_field("email", "required", "email is required")
        user = self._repo.find_by_email(email)
        if user is None:
            raise NotFoundError("User", email.strip().lower(), field="email")
        return self.to_output(user)

    def get_by_external_auth_id(self, external_auth_id: str) -> UserOutput:
        if not external_auth_id or not external_auth_id.strip():
            raise ValidationError.for_field("external_auth_id", "required", "external_auth_id is required")
        user = self._repo.find_by_external_auth_id(external_auth_id)
        if user is None:
            raise NotFoundError("User", external_auth_id, field="external_auth_id")
        return self.to_output(user)

    def search(self, query: str, limit: int | None = None) -> list[UserOutput]:
        """Users matching `query` by email or name; limit is clamped to [1, max]."""
        term = self.search_term(query)
        return [self.to_output(u) for u in self._repo.search(term, self.clamp_limit(limit))]

    # =========================================================================
    # Mutations
    # =========================================================================

    def link_external_auth_id(self, user_id: uuid.UUID, external_auth_id: str, acting_user_id: uuid.UUID) -> UserOutput:
        """Attach an identity-provider id; it must not belong to another user."""
        if not external_auth_id or not external_auth_id.strip():
            raise ValidationError.for_field("external_auth_id", "required", "external_auth_id is required")
        existing = self._repo.find_by_external_auth_id(external_auth_id)
        if existing is not None and existing.id != user_id:
            raise DuplicateEntityError(
                "User", "external_auth_id", rule="uq_users_external_auth_id_live"
            )
        self._repo.update(user_id, {"external_auth_id": external_auth_id}, acting_user_id)
        return self.get(user_id)

    def activate(self, user_id: uuid.UUID, acting_user_id: uuid.UUID) -> UserOutput:
        self._repo.update(user_id, {"is_active": True}, acting_user_id)
        return self.get(user_id)

    def deactivate(self, user_id: uuid.UUID, acting_user_id: uuid.UUID) -> UserOutput:
        self._repo.update(user_id, {"is_active": False}, acting_user_id)
        return self.get(user_id)

    # =========================================================================
    # Related records
    # =========================================================================

    def list_businesses(self, user_id: uuid.UUID) -> list[BusinessOutput]:
        """Live businesses owned by the user."""
        self._repo.get_by_id(user_id)
        service = BusinessService(self._db, ctx=self._ctx, rules=self._rules, config=self._config)
        return [service.to_output(b) for b in service.repo.find_by_owner(user_id)]

    def list_positions(self, user_id: uuid.UUID, *, include_ended: bool = False) -> list[StaffOutput]:
        """Staff records of the user across businesses."""
        self._repo.get_by_id(user_id)
        staff = self._repository(StaffRepository).find_by_user_id(user_id, include_ended=include_ended)
        return [StaffOutput.model_validate(s) for s in staff]
