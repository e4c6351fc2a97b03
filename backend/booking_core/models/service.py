"""
Catalog models: service categories, the services a business offers and which
staff perform them.
"""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Integer, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from shared.utils.validators import (
    DEFAULT_RULES,
    ValidationResult,
    ValidationRules,
    check_currency,
    check_length,
    check_range,
    check_required,
)

from .base import Base, EntityMixin, ScopedAssignmentMixin, UniqueRule, register_unique_indexes


class ServiceCategory(EntityMixin, Base):
    """A named group of services. Name is unique per business among live categories."""

    __tablename__ = "service_categories"

    ENTITY_NAME = "ServiceCategory"
    UNIQUE_RULES = (
        UniqueRule("uq_service_categories_business_name_live", ("business_id", "name")),
    )
    IMMUTABLE_FIELDS = EntityMixin.IMMUTABLE_FIELDS | {"business_id"}

    business_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("businesses.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    display_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def validate(self, rules: ValidationRules = DEFAULT_RULES) -> ValidationResult:
        result = ValidationResult()
        check_required(result, "business_id", self.business_id)
        if check_required(result, "name", self.name):
            check_length(result, "name", self.name, rules.max_person_name_length)
        check_length(result, "description", self.description, rules.max_description_length)
        check_range(result, "display_order", self.display_order, minimum=0)
        return result


class Service(EntityMixin, Base):
    """
    A bookable service. Name is unique per business among live services.
    Price is stored in the business currency unless overridden.
    """

    __tablename__ = "services"

    ENTITY_NAME = "Service"
    IMMUTABLE_FIELDS = EntityMixin.IMMUTABLE_FIELDS | {"business_id"}
    UNIQUE_RULES = (
        UniqueRule("uq_services_business_name_live", ("business_id", "name")),
    )

    business_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("businesses.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    category_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("service_categories.id"), nullable=True, index=True
    )
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    display_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    def validate(self, rules: ValidationRules = DEFAULT_RULES) -> ValidationResult:
        result = ValidationResult()
        check_required(result, "business_id", self.business_id)
        if check_required(result, "name", self.name):
            check_length(result, "name", self.name, rules.max_name_length)
        check_length(result, "description", self.description, rules.max_description_length)
        if check_required(result, "duration_minutes", self.duration_minutes):
            check_range(
                result, "duration_minutes", self.duration_minutes,
                minimum=0, maximum=rules.max_duration_minutes, exclusive_minimum=True,
            )
        if check_required(result, "price", self.price):
            check_range(result, "price", self.price, minimum=0, maximum=rules.max_price)
        check_currency(result, "currency", self.currency, rules)
        check_range(result, "display_order", self.display_order, minimum=0)
        return result


class ServiceAssignment(ScopedAssignmentMixin, EntityMixin, Base):
    """At most one active assignment per (staff, service)."""

    __tablename__ = "service_assignments"

    ENTITY_NAME = "ServiceAssignment"
    IMMUTABLE_FIELDS = EntityMixin.IMMUTABLE_FIELDS | {"business_id"}
    SCOPE_FIELD = "staff_id"
    SUBJECT_FIELD = "service_id"
    UNIQUE_RULES = (
        UniqueRule("uq_service_assignments_active", ("staff_id", "service_id"), active_only=True),
    )

    business_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("businesses.id"), nullable=False, index=True
    )
    staff_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("staff.id"), nullable=False, index=True
    )
    service_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("services.id"), nullable=False, index=True
    )

    def validate(self, rules: ValidationRules = DEFAULT_RULES) -> ValidationResult:
        result = ValidationResult()
        for name in ("business_id", "staff_id", "service_id"):
            check_required(result, name, getattr(self, name))
        self._check_period(result)
        return result


register_unique_indexes(ServiceCategory)
register_unique_indexes(Service)
register_unique_indexes(ServiceAssignment)
