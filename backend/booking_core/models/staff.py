"""
Staff: a user's position within a business, with history.
"""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import JSON, ForeignKey, Numeric, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from shared.utils.validators import (
    DEFAULT_RULES,
    ValidationResult,
    ValidationRules,
    check_choice,
    check_length,
    check_range,
    check_required,
)

from .base import Base, EntityMixin, ScopedAssignmentMixin, UniqueRule, register_unique_indexes


class Staff(ScopedAssignmentMixin, EntityMixin, Base):
    """
    At most one active staff record per (business, user).
    Ended records stay as history; reactivation inserts a new row.
    """

    __tablename__ = "staff"

    ENTITY_NAME = "Staff"
    SCOPE_FIELD = "business_id"
    SUBJECT_FIELD = "user_id"
    UNIQUE_RULES = (
        UniqueRule("uq_staff_active_position", ("business_id", "user_id"), active_only=True),
    )

    business_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("businesses.id"), nullable=False, index=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False, index=True
    )
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    position: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    permissions: Mapped[dict[str, Any]] = mapped_column(JSON, default=dict, nullable=False)
    employment_type: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    commission_rate: Mapped[Optional[Decimal]] = mapped_column(Numeric(5, 2), nullable=True)

    def validate(self, rules: ValidationRules = DEFAULT_RULES) -> ValidationResult:
        result = ValidationResult()
        check_required(result, "business_id", self.business_id)
        check_required(result, "user_id", self.user_id)
        if check_required(result, "role", self.role):
            check_choice(result, "role", self.role, rules.staff_roles)
        check_length(result, "position", self.position, rules.max_person_name_length)
        check_choice(result, "employment_type", self.employment_type, rules.employment_types)
        check_range(
            result, "commission_rate", self.commission_rate,
            minimum=0, maximum=rules.max_commission_rate,
        )
        if self.permissions is not None and not isinstance(self.permissions, dict):
            result.add("permissions", "type", "permissions must be an object")
        self._check_period(result)
        return result

    def __repr__(self) -> str:
        return f"<Staff(id={self.id}, business={self.business_id}, user={self.user_id}, {self.state})>"


register_unique_indexes(Staff)
