"""
Domain Services - application layer.

Services contain the workflows and orchestrate repositories.

Structure:
    Transport adapter (thin)
        ↓
    Service (workflows)  ← YOU ARE HERE
        ↓
    Repository (data access)
        ↓
    Model (entity)
"""

from .user_service import UserService
from .business_service import BusinessService
from .staff_service import StaffService
from .client_service import ClientService
from .catalog_service import CatalogService
from .service_category_service import ServiceCategoryService
from .service_assignment_service import ServiceAssignmentService
from .appointment_service import AppointmentService

__all__ = [
    "UserService",
    "BusinessService",
    "StaffService",
    "ClientService",
    "CatalogService",
    "ServiceCategoryService",
    "ServiceAssignmentService",
    "AppointmentService",
]
