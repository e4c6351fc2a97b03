"""
Repositories: data access for every entity.

BaseRepository is the generic persistence contract; the subclasses add
typed finders. ScopedUniquenessEnforcer maps uniqueness rules to errors.
"""

from booking_core.repositories.base import BaseRepository, PageResult
from booking_core.repositories.uniqueness import ScopedUniquenessEnforcer
from booking_core.repositories.scoped import ScopedAssignmentRepository
from booking_core.repositories.user import UserRepository
from booking_core.repositories.business import BusinessRepository
from booking_core.repositories.staff import StaffRepository
from booking_core.repositories.client import ClientRepository
from booking_core.repositories.catalog import (
    ServiceAssignmentRepository,
    ServiceCategoryRepository,
    ServiceRepository,
)
from booking_core.repositories.appointment import AppointmentRepository

__all__ = [
    "BaseRepository",
    "PageResult",
    "ScopedUniquenessEnforcer",
    "ScopedAssignmentRepository",
    "UserRepository",
    "BusinessRepository",
    "StaffRepository",
    "ClientRepository",
    "ServiceCategoryRepository",
    "ServiceRepository",
    "ServiceAssignmentRepository",
    "AppointmentRepository",
]
