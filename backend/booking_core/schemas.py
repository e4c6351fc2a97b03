"""
Pydantic schemas for service inputs and outputs.

Create schemas describe a full new entity. Update schemas are partial:
only the fields present in the payload are applied, and an explicit null
clears the field.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Generic, Literal, TypeVar

from pydantic import BaseModel, ConfigDict, EmailStr, Field


# =============================================================================
# Common Types
# =============================================================================

StaffRoleName = Literal["owner", "manager", "employee", "assistant"]
EmploymentTypeName = Literal["full-time", "part-time", "contract", "intern"]
SubscriptionTierName = Literal["free", "basic", "pro", "enterprise"]
AppointmentStatusName = Literal["scheduled", "confirmed", "in_progress", "completed", "cancelled", "no_show"]

T = TypeVar("T")


class InputModel(BaseModel):
    """Inputs reject unknown fields instead of silently dropping them."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


class AuditedOutput(BaseModel):
    """Identity and audit stamps shared by every output."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    created_at: datetime
    created_by: uuid.UUID
    updated_at: datetime
    updated_by: uuid.UUID


class Page(BaseModel, Generic[T]):
    """One page of results plus totals."""

    items: list[T]
    total: int
    page: int
    page_size: int
    total_pages: int


# =============================================================================
# User Schemas
# =============================================================================


class UserCreate(InputModel):
    email: EmailStr
    first_name: str
    last_name: str
    phone: str | None = None
    external_auth_id: str | None = None


class UserUpdate(InputModel):
    email: EmailStr | None = None
    first_name: str | None = None
    last_name: str | None = None
    phone: str | None = None


class UserOutput(AuditedOutput):
    email: str
    first_name: str
    last_name: str
    full_name: str
    phone: str | None = None
    external_auth_id: str | None = None
    is_active: bool


# =============================================================================
# Business Schemas
# =============================================================================


class BusinessCreate(InputModel):
    user_id: uuid.UUID
    name: str
    display_name: str | None = None
    description: str | None = None
    business_type: str | None = None
    email: EmailStr | None = None
    phone: str | None = None
    address: str | None = None
    city: str | None = None
    postal_code: str | None = None
    # Defaults come from settings when omitted
    country: str | None = None
    timezone: str | None = None
    currency: str | None = None
    subscription_tier: SubscriptionTierName | None = None


class BusinessUpdate(InputModel):
    name: str | None = None
    display_name: str | None = None
    description: str | None = None
    business_type: str | None = None
    email: EmailStr | None = None
    phone: str | None = None
    address: str | None = None
    city: str | None = None
    postal_code: str | None = None
    country: str | None = None
    timezone: str | None = None
    currency: str | None = None
    subscription_tier: SubscriptionTierName | None = None
    is_active: bool | None = None
    is_verified: bool | None = None


class BusinessOutput(AuditedOutput):
    user_id: uuid.UUID
    name: str
    display_name: str | None = None
    description: str | None = None
    business_type: str | None = None
    email: str | None = None
    phone: str | None = None
    address: str | None = None
    city: str | None = None
    postal_code: str | None = None
    country: str
    timezone: str
    currency: str
    subscription_tier: str
    is_active: bool
    is_verified: bool


# =============================================================================
# Staff Schemas
# =============================================================================


class StaffCreate(InputModel):
    business_id: uuid.UUID
    user_id: uuid.UUID
    role: StaffRoleName = "employee"
    position: str | None = None
    permissions: dict[str, Any] = Field(default_factory=dict)
    employment_type: EmploymentTypeName | None = None
    commission_rate: Decimal | None = None
    start_date: datetime | None = None


class StaffUpdate(InputModel):
    role: StaffRoleName | None = None
    position: str | None = None
    permissions: dict[str, Any] | None = None
    employment_type: EmploymentTypeName | None = None
    commission_rate: Decimal | None = None


class StaffOutput(AuditedOutput):
    business_id: uuid.UUID
    user_id: uuid.UUID
    role: str
    position: str | None = None
    permissions: dict[str, Any] = Field(default_factory=dict)
    employment_type: str | None = None
    commission_rate: Decimal | None = None
    is_active: bool
    start_date: datetime
    end_date: datetime | None = None
    state: str


# =============================================================================
# Client Schemas
# =============================================================================


class ClientCreate(InputModel):
    business_id: uuid.UUID
    first_name: str
    last_name: str
    email: EmailStr | None = None
    phone: str | None = None
    notes: str | None = None
    user_id: uuid.UUID | None = None


class ClientUpdate(InputModel):
    first_name: str | None = None
    last_name: str | None = None
    email: EmailStr | None = None
    phone: str | None = None
    notes: str | None = None
    user_id: uuid.UUID | None = None
    is_active: bool | None = None


class ClientOutput(AuditedOutput):
    business_id: uuid.UUID
    user_id: uuid.UUID | None = None
    first_name: str
    last_name: str
    full_name: str
    email: str | None = None
    phone: str | None = None
    notes: str | None = None
    is_active: bool


# =============================================================================
# Catalog Schemas
# =============================================================================


class ServiceCategoryCreate(InputModel):
    business_id: uuid.UUID
    name: str
    description: str | None = None
    display_order: int = 0


class ServiceCategoryUpdate(InputModel):
    name: str | None = None
    description: str | None = None
    display_order: int | None = None


class ServiceCategoryOutput(AuditedOutput):
    business_id: uuid.UUID
    name: str
    description: str | None = None
    display_order: int


class ServiceCreate(InputModel):
    business_id: uuid.UUID
    name: str
    duration_minutes: int
    price: Decimal
    description: str | None = None
    category_id: uuid.UUID | None = None
    # Defaults to the business currency
    currency: str | None = None
    display_order: int = 0


class ServiceUpdate(InputModel):
    name: str | None = None
    duration_minutes: int | None = None
    price: Decimal | None = None
    description: str | None = None
    category_id: uuid.UUID | None = None
    currency: str | None = None
    display_order: int | None = None
    is_active: bool | None = None


class ServiceOutput(AuditedOutput):
    business_id: uuid.UUID
    name: str
    description: str | None = None
    category_id: uuid.UUID | None = None
    duration_minutes: int
    price: Decimal
    currency: str
    is_active: bool
    display_order: int


class ServiceAssignmentCreate(InputModel):
    staff_id: uuid.UUID
    service_id: uuid.UUID
    start_date: datetime | None = None


class ServiceAssignmentOutput(AuditedOutput):
    business_id: uuid.UUID
    staff_id: uuid.UUID
    service_id: uuid.UUID
    is_active: bool
    start_date: datetime
    end_date: datetime | None = None
    state: str


# =============================================================================
# Appointment Schemas
# =============================================================================


class AppointmentCreate(InputModel):
    business_id: uuid.UUID
    client_id: uuid.UUID
    staff_id: uuid.UUID
    service_id: uuid.UUID | None = None
    start_time: datetime
    # Derived from the service duration when omitted
    end_time: datetime | None = None
    title: str | None = None
    notes: str | None = None
    # Derived from the service price when omitted
    total_price: Decimal | None = None
    currency: str | None = None


class AppointmentUpdate(InputModel):
    start_time: datetime | None = None
    end_time: datetime | None = None
    title: str | None = None
    notes: str | None = None
    total_price: Decimal | None = None


class AppointmentOutput(AuditedOutput):
    business_id: uuid.UUID
    client_id: uuid.UUID
    staff_id: uuid.UUID
    service_id: uuid.UUID | None = None
    start_time: datetime
    end_time: datetime
    duration_minutes: int
    status: str
    title: str | None = None
    notes: str | None = None
    cancellation_reason: str | None = None
    total_price: Decimal
    currency: str
    confirmed_at: datetime | None = None
    completed_at: datetime | None = None
    cancelled_at: datetime | None = None
