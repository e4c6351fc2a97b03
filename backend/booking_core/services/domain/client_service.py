"""
Client Service.

Handles the customers of a business: create, lookup by email, search.
"""

from __future__ import annotations

import uuid
from typing import Any

from booking_core.models import Business, Client, User
from booking_core.repositories import ClientRepository
from booking_core.schemas import ClientCreate, ClientOutput, ClientUpdate, Page
from booking_core.services.base_service import BaseCRUDService
from shared.utils.exceptions import NotFoundError, ValidationError


class ClientService(BaseCRUDService[Client, ClientCreate, ClientUpdate, ClientOutput]):
    """
    Business rules:
    - The business must be live; a linked user must be live too
    - Email, when given, is unique within the business
    - A client with open appointments cannot be deleted
    """

    model = Client
    repository_class = ClientRepository
    create_schema = ClientCreate
    update_schema = ClientUpdate
    output_schema = ClientOutput

    def _build_entity(self, payload: ClientCreate) -> Client:
        values = payload.model_dump()
        if values.get("email"):
            values["email"] = values["email"].lower()
        return Client(is_active=True, **values)

    def _validate_create(self, entity: Client) -> None:
        self._require(Business, entity.business_id, "business_id")
        if entity.user_id is not None:
            self._require(User, entity.user_id, "user_id")

    def _validate_update(self, entity: Client, changes: dict[str, Any]) -> None:
        if changes.get("email"):
            changes["email"] = changes["email"].lower()
        if changes.get("user_id") is not None:
            self._require(User, changes["user_id"], "user_id")

    def find_by_email(self, business_id: uuid.UUID, email: str) -> ClientOutput:
        if not email or not email.strip():
            raise ValidationError.for_field("email", "required", "email is required")
        client = self._repo.find_by_business_and_email(business_id, email)
        if client is None:
            raise NotFoundError("Client", email.strip().lower(), field="email")
        return self.to_output(client)

    def list_by_business(
        self,
        business_id: uuid.UUID,
        page: int | None = None,
        page_size: int | None = None,
    ) -> Page[ClientOutput]:
        self._require(Business, business_id, "business_id")
        return self.list(page, page_size, {"business_id": business_id})

    def search(self, business_id: uuid.UUID, query: str, limit: int | None = None) -> list[ClientOutput]:
        term = self.search_term(query)
        found = self._repo.search(business_id, term, self.clamp_limit(limit))
        return [self.to_output(c) for c in found]
