"""
User: a person account, identified by email and optionally by an
external authentication provider id.
"""

from __future__ import annotations

from typing import Optional

from sqlalchemy import Boolean, String, Text
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


class User(EntityMixin, Base):
    """
    Global (non-tenant) person account.
    Email is unique among non-deleted users; external_auth_id likewise when set.
    """

    __tablename__ = "users"

    ENTITY_NAME = "User"
    UNIQUE_RULES = (
        UniqueRule("uq_users_email_live", ("email",)),
        UniqueRule("uq_users_external_auth_id_live", ("external_auth_id",)),
    )

    email: Mapped[str] = mapped_column(Text, nullable=False)
    external_auth_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    def validate(self, rules: ValidationRules = DEFAULT_RULES) -> ValidationResult:
        result = ValidationResult()
        check_email(result, "email", self.email, rules)
        for name in ("first_name", "last_name"):
            if check_required(result, name, getattr(self, name)):
                check_length(result, name, getattr(self, name), rules.max_person_name_length)
        check_length(result, "phone", self.phone, rules.max_phone_length)
        if self.external_auth_id is not None and not self.external_auth_id.strip():
            result.add("external_auth_id", "required", "external_auth_id must not be blank")
        return result

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email='{self.email}')>"


register_unique_indexes(User)
