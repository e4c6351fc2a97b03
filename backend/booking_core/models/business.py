"""
Business: the tenant. Every other tenant-owned entity references one.
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
    check_choice,
    check_currency,
    check_email,
    check_length,
    check_required,
    check_timezone,
)

from .base import Base, EntityMixin


class Business(EntityMixin, Base):
    """
    A business owned by a user.
    Currency, timezone and country default from settings when not provided.
    """

    __tablename__ = "businesses"

    ENTITY_NAME = "Business"

    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    display_name: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    business_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    city: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    postal_code: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    country: Mapped[str] = mapped_column(String(100), nullable=False)
    timezone: Mapped[str] = mapped_column(String(64), nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    subscription_tier: Mapped[str] = mapped_column(String(20), nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    is_verified: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def validate(self, rules: ValidationRules = DEFAULT_RULES) -> ValidationResult:
        result = ValidationResult()
        check_required(result, "user_id", self.user_id)
        if check_required(result, "name", self.name):
            check_length(result, "name", self.name, rules.max_name_length)
        check_length(result, "display_name", self.display_name, rules.max_name_length)
        check_length(result, "description", self.description, rules.max_description_length)
        check_email(result, "email", self.email, rules, required=False)
        check_length(result, "phone", self.phone, rules.max_phone_length)
        check_required(result, "country", self.country)
        check_timezone(result, "timezone", self.timezone)
        check_currency(result, "currency", self.currency, rules)
        if check_required(result, "subscription_tier", self.subscription_tier):
            check_choice(result, "subscription_tier", self.subscription_tier, rules.subscription_tiers)
        return result

    def __repr__(self) -> str:
        return f"<Business(id={self.id}, name='{self.name}')>"
