"""
Service Category Service.

Groups the services of a business under named categories.
"""

from __future__ import annotations

import uuid

from booking_core.models import Business, ServiceCategory
from booking_core.repositories import ServiceCategoryRepository, ServiceRepository
from booking_core.schemas import (
    Page,
    ServiceCategoryCreate,
    ServiceCategoryOutput,
    ServiceCategoryUpdate,
    ServiceOutput,
)
from booking_core.services.base_service import BaseCRUDService
from shared.utils.exceptions import NotFoundError


class ServiceCategoryService(
    BaseCRUDService[ServiceCategory, ServiceCategoryCreate, ServiceCategoryUpdate, ServiceCategoryOutput]
):
    """
    Business rules:
    - Name is unique within the business among live categories
    - Deleting a category leaves its services uncategorized
    """

    model = ServiceCategory
    repository_class = ServiceCategoryRepository
    create_schema = ServiceCategoryCreate
    update_schema = ServiceCategoryUpdate
    output_schema = ServiceCategoryOutput

    def _validate_create(self, entity: ServiceCategory) -> None:
        self._require(Business, entity.business_id, "business_id")

    def find_by_name(self, business_id: uuid.UUID, name: str) -> ServiceCategoryOutput:
        category = self._repo.find_by_business_and_name(business_id, (name or "").strip())
        if category is None:
            raise NotFoundError("ServiceCategory", name, field="name")
        return self.to_output(category)

    def list_by_business(self, business_id: uuid.UUID) -> list[ServiceCategoryOutput]:
        """Categories of a business in display order."""
        self._require(Business, business_id, "business_id")
        return [self.to_output(c) for c in self._repo.find_by_business_id(business_id)]

    def page_by_business(
        self,
        business_id: uuid.UUID,
        page: int | None = None,
        page_size: int | None = None,
    ) -> Page[ServiceCategoryOutput]:
        self._require(Business, business_id, "business_id")
        return self.list(page, page_size, {"business_id": business_id})

    def list_services(self, category_id: uuid.UUID) -> list[ServiceOutput]:
        self._repo.get_by_id(category_id)
        services = self._repository(ServiceRepository).find_by_category_id(category_id)
        return [ServiceOutput.model_validate(s) for s in services]
