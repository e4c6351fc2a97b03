"""
Catalog repositories: service categories, services and their staff assignments.
"""

from __future__ import annotations

import uuid

from sqlalchemy import or_, select

from booking_core.models import Service, ServiceAssignment, ServiceCategory
from booking_core.repositories.base import BaseRepository
from booking_core.repositories.scoped import ScopedAssignmentRepository
from shared.utils.validators import escape_like_pattern


class ServiceCategoryRepository(BaseRepository[ServiceCategory]):
    def __init__(self, db, **kwargs):
        super().__init__(ServiceCategory, db, **kwargs)

    def find_by_business_id(self, business_id: uuid.UUID) -> list[ServiceCategory]:
        categories = self.find_all_by(business_id=business_id)
        return sorted(categories, key=lambda c: (c.display_order, c.name.lower()))

    def find_by_business_and_name(self, business_id: uuid.UUID, name: str) -> ServiceCategory | None:
        return self.find_one_by(business_id=business_id, name=name)


class ServiceRepository(BaseRepository[Service]):
    def __init__(self, db, **kwargs):
        super().__init__(Service, db, **kwargs)

    def find_by_business_id(self, business_id: uuid.UUID, *, active_only: bool = False) -> list[Service]:
        criteria = {"business_id": business_id}
        if active_only:
            criteria["is_active"] = True
        services = self.find_all_by(**criteria)
        return sorted(services, key=lambda s: (s.display_order, s.name.lower()))

    def find_by_business_and_name(self, business_id: uuid.UUID, name: str) -> Service | None:
        return self.find_one_by(business_id=business_id, name=name)

    def find_by_category_id(self, category_id: uuid.UUID) -> list[Service]:
        return self.find_all_by(category_id=category_id)

    def search(self, business_id: uuid.UUID, query: str, limit: int) -> list[Service]:
        """Live services of the business matching name, description or category name."""
        pattern = f"%{escape_like_pattern(query)}%"
        condition = or_(
            Service.name.ilike(pattern, escape="\\"),
            Service.category_id.in_(
                select(ServiceCategory.id).where(
                    ServiceCategory.deleted_at.is_(None),
                    ServiceCategory.name.ilike(pattern, escape="\\"),
                )
            ),
            Service.description.ilike(pattern, escape="\\"),
        )
        return self.find_all_by(condition, limit=limit, business_id=business_id)


class ServiceAssignmentRepository(ScopedAssignmentRepository[ServiceAssignment]):
    def __init__(self, db, **kwargs):
        super().__init__(ServiceAssignment, db, **kwargs)

    def find_by_staff_id(self, staff_id: uuid.UUID, *, include_ended: bool = False) -> list[ServiceAssignment]:
        if include_ended:
            return self.find_all_by(staff_id=staff_id)
        return self.find_active_by_scope(staff_id)

    def find_by_service_id(self, service_id: uuid.UUID, *, include_ended: bool = False) -> list[ServiceAssignment]:
        if include_ended:
            return self.find_all_by(service_id=service_id)
        return self.find_active_by_subject(service_id)
