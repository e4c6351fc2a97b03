"""
SQLAlchemy ORM models.

Every entity inherits EntityMixin (identity, audit stamps, soft delete).
Staff and ServiceAssignment also use ScopedAssignmentMixin.
"""

from .base import (
    Base,
    EntityMixin,
    ScopedAssignmentMixin,
    UniqueRule,
    register_unique_indexes,
    rule_predicate,
    utcnow,
    as_utc,
)
from .user import User
from .business import Business
from .staff import Staff
from .client import Client
from .service import Service, ServiceAssignment, ServiceCategory
from .appointment import Appointment

__all__ = [
    # Base
    "Base",
    "EntityMixin",
    "ScopedAssignmentMixin",
    "UniqueRule",
    "register_unique_indexes",
    "rule_predicate",
    "utcnow",
    "as_utc",
    # Entities
    "User",
    "Business",
    "Staff",
    "Client",
    "ServiceCategory",
    "Service",
    "ServiceAssignment",
    "Appointment",
]
