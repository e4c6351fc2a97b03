"""
Application services: base classes, delete policies and domain services.
"""

from booking_core.services.base_service import BaseService, BaseCRUDService, parse_input
from booking_core.services.crud import CascadeDeleteService, DeletePolicy, relationships_for
from booking_core.services.domain import (
    AppointmentService,
    BusinessService,
    CatalogService,
    ClientService,
    ServiceAssignmentService,
    ServiceCategoryService,
    StaffService,
    UserService,
)
from booking_core.services.factory import ServiceFactory

__all__ = [
    "BaseService",
    "BaseCRUDService",
    "parse_input",
    "CascadeDeleteService",
    "DeletePolicy",
    "relationships_for",
    "AppointmentService",
    "BusinessService",
    "CatalogService",
    "ClientService",
    "ServiceAssignmentService",
    "ServiceCategoryService",
    "StaffService",
    "UserService",
    "ServiceFactory",
]
