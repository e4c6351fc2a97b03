"""
Catalog Service.

Handles the services a business offers: pricing, duration, ordering.
"""

from __future__ import annotations

import uuid
from typing import Any

from booking_core.models import Business, Service, ServiceCategory
from booking_core.repositories import ServiceRepository
from booking_core.schemas import Page, ServiceCreate, ServiceOutput, ServiceUpdate
from booking_core.services.base_service import BaseCRUDService
from shared.utils.exceptions import ValidationError


class CatalogService(BaseCRUDService[Service, ServiceCreate, ServiceUpdate, ServiceOutput]):
    """
    Business rules:
    - Name is unique within the business among live services
    - Currency defaults to the business currency
    - A category, when given, belongs to the same business
    - Deleting a service ends its staff assignments; open appointments block it
    """

    model = Service
    repository_class = ServiceRepository
    create_schema = ServiceCreate
    update_schema = ServiceUpdate
    output_schema = ServiceOutput

    def _build_entity(self, payload: ServiceCreate) -> Service:
        values = payload.model_dump()
        if values.get("currency"):
            values["currency"] = values["currency"].upper()
        return Service(is_active=True, **values)

    def _validate_create(self, entity: Service) -> None:
        business = self._require(Business, entity.business_id, "business_id")
        if not entity.currency:
            entity.currency = business.currency
        self._check_category(entity.category_id, entity.business_id)

    def _validate_update(self, entity: Service, changes: dict[str, Any]) -> None:
        if changes.get("currency"):
            changes["currency"] = changes["currency"].upper()
        if changes.get("category_id") is not None:
            self._check_category(changes["category_id"], entity.business_id)

    def _check_category(self, category_id: uuid.UUID | None, business_id: uuid.UUID) -> None:
        if category_id is None:
            return
        category = self._require(ServiceCategory, category_id, "category_id")
        if category.business_id != business_id:
            raise ValidationError.for_field(
                "category_id", "scope", "category belongs to another business"
            )

    def list_by_business(
        self,
        business_id: uuid.UUID,
        *,
        active_only: bool = False,
    ) -> list[ServiceOutput]:
        """Services of a business in display order."""
        self._require(Business, business_id, "business_id")
        found = self._repo.find_by_business_id(business_id, active_only=active_only)
        return [self.to_output(s) for s in found]

    def page_by_business(
        self,
        business_id: uuid.UUID,
        page: int | None = None,
        page_size: int | None = None,
    ) -> Page[ServiceOutput]:
        self._require(Business, business_id, "business_id")
        return self.list(page, page_size, {"business_id": business_id})

    def search(self, business_id: uuid.UUID, query: str, limit: int | None = None) -> list[ServiceOutput]:
        term = self.search_term(query)
        found = self._repo.search(business_id, term, self.clamp_limit(limit))
        return [self.to_output(s) for s in found]
