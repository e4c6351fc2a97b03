"""
Shared validators for entity and input validation.

ValidationRules is an immutable rules object built once at startup and
passed to the service layer. All check_* helpers are pure: they append
FieldErrors to a ValidationResult and never raise or touch storage.

Usage:
    rules = ValidationRules.from_settings(settings)
    result = ValidationResult()
    check_required(result, "name", name)
    check_email(result, "email", email, rules)
    result.raise_for_errors("Invalid business")
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal
from functools import lru_cache
from typing import Any, Iterable, TYPE_CHECKING
from zoneinfo import available_timezones

from shared.config.constants import (
    EmploymentType,
    Limits,
    StaffRole,
    SubscriptionTier,
)
from shared.utils.exceptions import FieldError, ValidationError

if TYPE_CHECKING:
    from shared.config.settings import Settings


EMAIL_PATTERN = r"^[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}$"
CURRENCY_PATTERN = r"^[A-Z]{3}$"


@dataclass(frozen=True)
class ValidationRules:
    """Immutable field-level rules shared by every entity."""

    email_pattern: re.Pattern = field(default_factory=lambda: re.compile(EMAIL_PATTERN))
    currency_pattern: re.Pattern = field(default_factory=lambda: re.compile(CURRENCY_PATTERN))
    max_name_length: int = Limits.MAX_NAME_LENGTH
    max_person_name_length: int = Limits.MAX_PERSON_NAME_LENGTH
    max_description_length: int = Limits.MAX_DESCRIPTION_LENGTH
    max_phone_length: int = Limits.MAX_PHONE_LENGTH
    max_duration_minutes: int = Limits.MAX_DURATION_MINUTES
    max_price: Decimal = Decimal(Limits.MAX_PRICE)
    max_commission_rate: Decimal = Decimal(Limits.MAX_COMMISSION_RATE)
    staff_roles: frozenset[str] = frozenset(StaffRole.ALL)
    employment_types: frozenset[str] = frozenset(EmploymentType.ALL)
    subscription_tiers: frozenset[str] = frozenset(SubscriptionTier.ALL)

    @classmethod
    def from_settings(cls, settings: "Settings") -> "ValidationRules":
        """Build the rules object for a configured application."""
        rules = cls()
        if settings.default_subscription_tier not in rules.subscription_tiers:
            raise ValueError(
                f"DEFAULT_SUBSCRIPTION_TIER must be one of {sorted(rules.subscription_tiers)}"
            )
        return rules


DEFAULT_RULES = ValidationRules()


@dataclass
class ValidationResult:
    """Accumulates every field error instead of failing on the first one."""

    errors: list[FieldError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def add(self, field_name: str, rule: str, message: str) -> None:
        self.errors.append(FieldError(field_name, rule, message))

    def merge(self, other: "ValidationResult") -> "ValidationResult":
        self.errors.extend(other.errors)
        return self

    @property
    def fields(self) -> list[str]:
        return [e.field for e in self.errors]

    def raise_for_errors(self, detail: str = "Validation failed", **log_context: Any) -> None:
        if self.errors:
            raise ValidationError(detail, errors=self.errors, **log_context)


# =============================================================================
# Field checks
# =============================================================================


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def check_required(result: ValidationResult, field_name: str, value: Any) -> bool:
    """Value must be present and, for strings, non-blank."""
    if _is_blank(value):
        result.add(field_name, "required", f"{field_name} is required")
        return False
    return True


def check_length(
    result: ValidationResult,
    field_name: str,
    value: str | None,
    max_length: int,
) -> None:
    if value is not None and len(value) > max_length:
        result.add(
            field_name,
            "max_length",
            f"{field_name} must be at most {max_length} characters",
        )


def check_email(
    result: ValidationResult,
    field_name: str,
    value: str | None,
    rules: ValidationRules = DEFAULT_RULES,
    *,
    required: bool = True,
) -> None:
    if _is_blank(value):
        if required:
            result.add(field_name, "required", f"{field_name} is required")
        return
    if not rules.email_pattern.match(value):
        result.add(field_name, "email", f"{field_name} must be a valid email address")


def check_currency(
    result: ValidationResult,
    field_name: str,
    value: str | None,
    rules: ValidationRules = DEFAULT_RULES,
) -> None:
    if not check_required(result, field_name, value):
        return
    if len(value) != Limits.CURRENCY_CODE_LENGTH or not rules.currency_pattern.match(value):
        result.add(
            field_name,
            "currency",
            f"{field_name} must be a {Limits.CURRENCY_CODE_LENGTH}-letter upper-case ISO code",
        )


@lru_cache(maxsize=1)
def _known_timezones() -> frozenset[str]:
    # UTC is always accepted, even without a system tz database
    return frozenset(available_timezones()) | {"UTC"}


def check_timezone(result: ValidationResult, field_name: str, value: str | None) -> None:
    if not check_required(result, field_name, value):
        return
    if value not in _known_timezones():
        result.add(field_name, "timezone", f"{field_name} must be an IANA time zone")


def check_range(
    result: ValidationResult,
    field_name: str,
    value: Any,
    *,
    minimum: Any = None,
    maximum: Any = None,
    exclusive_minimum: bool = False,
) -> None:
    if value is None:
        return
    if minimum is not None:
        if exclusive_minimum and value <= minimum:
            result.add(field_name, "range", f"{field_name} must be greater than {minimum}")
            return
        if not exclusive_minimum and value < minimum:
            result.add(field_name, "range", f"{field_name} must be at least {minimum}")
            return
    if maximum is not None and value > maximum:
        result.add(field_name, "range", f"{field_name} must be at most {maximum}")


def check_choice(
    result: ValidationResult,
    field_name: str,
    value: str | None,
    choices: Iterable[str],
) -> None:
    if value is None:
        return
    allowed = sorted(choices)
    if value not in allowed:
        result.add(
            field_name,
            "choice",
            f"{field_name} must be one of: {', '.join(allowed)}",
        )


def escape_like_pattern(value: str) -> str:
    """
    Escape special characters in LIKE patterns.

    SQL LIKE uses % and _ as wildcards. Escaping them prevents pattern
    injection that could cause full table scans.
    """
    if not value:
        return value

    # Escape the escape character first, then the wildcards
    value = value.replace("\\", "\\\\")
    value = value.replace("%", "\\%")
    value = value.replace("_", "\\_")
    return value
