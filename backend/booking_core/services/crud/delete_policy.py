"""
Delete policies and cascading soft delete.

Every parent/child relationship declares what happens to live children
when the parent is soft-deleted:

- CASCADE: children are soft-deleted in the same transaction
- RESTRICT: the delete fails with ConflictError while blocking children exist
- SET_NULL: the child's foreign key is cleared

Nothing is ever hard-deleted, so the audit trail survives.

Usage:
    service = CascadeDeleteService(db, ctx=ctx)
    affected = service.soft_delete(Business, business_id, user_id)
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any

from sqlalchemy.orm import Session

from booking_core.models import (
    Appointment,
    Business,
    Client,
    Service,
    ServiceAssignment,
    ServiceCategory,
    Staff,
    User,
)
from booking_core.repositories import BaseRepository
from shared.config.constants import AppointmentStatus
from shared.config.logging import get_logger
from shared.infrastructure.context import OperationContext
from shared.utils.exceptions import AppException, ConflictError
from shared.utils.validators import DEFAULT_RULES, ValidationRules

logger = get_logger(__name__)


class DeletePolicy(str, Enum):
    CASCADE = "cascade"
    RESTRICT = "restrict"
    SET_NULL = "set_null"


def _open_appointments(model: type) -> Any:
    return model.status.in_(AppointmentStatus.OPEN)


@dataclass(frozen=True)
class Relationship:
    """`child.foreign_key` references `parent.id` under `policy`."""

    parent: type
    child: type
    foreign_key: str
    policy: DeletePolicy
    # Narrows which children count; None means every live child
    only: Callable[[type], Any] | None = None


# Order matters within a parent: appointments go before staff so a business
# delete does not trip the staff -> appointment restriction.
RELATIONSHIPS: tuple[Relationship, ...] = (
    Relationship(User, Business, "user_id", DeletePolicy.RESTRICT),
    Relationship(User, Staff, "user_id", DeletePolicy.CASCADE),
    Relationship(User, Client, "user_id", DeletePolicy.SET_NULL),
    Relationship(Business, Appointment, "business_id", DeletePolicy.CASCADE),
    Relationship(Business, ServiceAssignment, "business_id", DeletePolicy.CASCADE),
    Relationship(Business, Staff, "business_id", DeletePolicy.CASCADE),
    Relationship(Business, Service, "business_id", DeletePolicy.CASCADE),
    Relationship(Business, ServiceCategory, "business_id", DeletePolicy.CASCADE),
    Relationship(Business, Client, "business_id", DeletePolicy.CASCADE),
    Relationship(Staff, ServiceAssignment, "staff_id", DeletePolicy.CASCADE),
    Relationship(Staff, Appointment, "staff_id", DeletePolicy.RESTRICT, _open_appointments),
    Relationship(ServiceCategory, Service, "category_id", DeletePolicy.SET_NULL),
    Relationship(Service, ServiceAssignment, "service_id", DeletePolicy.CASCADE),
    Relationship(Service, Appointment, "service_id", DeletePolicy.RESTRICT, _open_appointments),
    Relationship(Client, Appointment, "client_id", DeletePolicy.RESTRICT, _open_appointments),
)


def relationships_for(parent: type) -> list[Relationship]:
    """Relationships of `parent`, restrictions first."""
    found = [r for r in RELATIONSHIPS if r.parent is parent]
    return sorted(found, key=lambda r: r.policy is not DeletePolicy.RESTRICT)


class CascadeDeleteService:
    """
    Soft-deletes an entity and applies every delete policy below it, in a
    single transaction. Either the whole tree is deleted or nothing is.
    """

    def __init__(
        self,
        db: Session,
        *,
        ctx: OperationContext | None = None,
        rules: ValidationRules = DEFAULT_RULES,
    ):
        self._db = db
        self._ctx = ctx
        self._rules = rules

    def _repo(self, model: type) -> BaseRepository:
        return BaseRepository(model, self._db, ctx=self._ctx, rules=self._rules)

    def soft_delete(
        self,
        model: type,
        entity_id: uuid.UUID,
        user_id: uuid.UUID,
        *,
        commit: bool = True,
    ) -> int:
        """
        Soft delete `entity_id` and its dependents.

        Returns:
            Count of affected records (the entity included)

        Raises:
            NotFoundError: entity absent or already deleted
            ConflictError: a RESTRICT relationship has blocking children
        """
        repo = self._repo(model)
        entity = repo.get_by_id(entity_id)
        try:
            affected = self._delete_tree(model, entity, user_id)
            if commit:
                repo.commit(f"delete {model.table_identity()}")
        except AppException:
            if commit:
                self._db.rollback()
            raise

        logger.info(
            f"{model.ENTITY_NAME} cascade soft deleted",
            entity_id=str(entity_id),
            affected_records=affected,
            user_id=str(user_id),
        )
        return affected

    def _children(self, relationship: Relationship, parent_id: uuid.UUID) -> list[Any]:
        conditions = []
        if relationship.only is not None:
            conditions.append(relationship.only(relationship.child))
        return self._repo(relationship.child).find_all_by(
            *conditions, **{relationship.foreign_key: parent_id}
        )

    def _delete_tree(self, model: type, entity: Any, user_id: uuid.UUID) -> int:
        affected = 0
        for relationship in relationships_for(model):
            children = self._children(relationship, entity.id)
            if not children:
                continue

            if relationship.policy is DeletePolicy.RESTRICT:
                raise ConflictError(
                    f"Cannot delete {model.ENTITY_NAME} {entity.id}: "
                    f"{len(children)} {relationship.child.ENTITY_NAME} record(s) depend on it",
                    rule=f"restrict_{relationship.child.table_identity()}",
                )

            child_repo = self._repo(relationship.child)
            for child in children:
                if relationship.policy is DeletePolicy.CASCADE:
                    affected += self._delete_tree(relationship.child, child, user_id)
                else:
                    child_repo.update(child.id, {relationship.foreign_key: None}, user_id, commit=False)
                    affected += 1

        self._repo(model).soft_delete(entity.id, user_id, commit=False)
        return affected + 1
