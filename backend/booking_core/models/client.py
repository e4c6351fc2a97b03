"""
Client: a customer of a business, optionally linked to a user account.
"""

from __future__ import annotations

import uuid
from typing import Optional

from sqlalchemy import Boolean, ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from shared.utils.validators import (
    DEFAULT_RULES,
    ValidationResult,
    ValidationRules,
    check_email,
    check_length,
    check_required,
)

from .base import Base, EntityMixin, UniqueRule, register_unique_indexes


class Client(EntityMixin, Base):
    """Email, when present, is unique per business among non-deleted clients."""

    __tablename__ = "clients"

    ENTITY_NAME = "Client"
    IMMUTABLE_FIELDS = EntityMixin.IMMUTABLE_FIELDS | {"business_id"}
    UNIQUE_RULES = (
        UniqueRule("uq_clients_business_email_live", ("business_id", "email")),
    )

    business_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("businesses.id"), nullable=False, index=True
    )
    user_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=True, index=True
    )
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    def validate(self, rules: ValidationRules = DEFAULT_RULES) -> ValidationResult:
        result = ValidationResult()
        check_required(result, "business_id", self.business_id)
        for name in ("first_name", "last_name"):
            if check_required(result, name, getattr(self, name)):
                check_length(result, name, getattr(self, name), rules.max_person_name_length)
        check_email(result, "email", self.email, rules, required=False)
        check_length(result, "phone", self.phone, rules.max_phone_length)
        check_length(result, "notes", self.notes, rules.max_description_length)
        return result


register_unique_indexes(Client)
