"""
Client repository.
"""

from __future__ import annotations

import uuid

from sqlalchemy import or_

from booking_core.models import Client
from booking_core.repositories.base import BaseRepository
from shared.utils.validators import escape_like_pattern


class ClientRepository(BaseRepository[Client]):
    def __init__(self, db, **kwargs):
        super().__init__(Client, db, **kwargs)

    def find_by_business_id(self, business_id: uuid.UUID) -> list[Client]:
        return self.find_all_by(business_id=business_id)

    def find_by_business_and_email(self, business_id: uuid.UUID, email: str) -> Client | None:
        return self.find_one_by(business_id=business_id, email=email.strip().lower())

    def find_by_user_id(self, user_id: uuid.UUID) -> list[Client]:
        return self.find_all_by(user_id=user_id)

    def search(self, business_id: uuid.UUID, query: str, limit: int) -> list[Client]:
        """Clients of one business whose name, email or phone contains `query`."""
        pattern = f"%{escape_like_pattern(query)}%"
        condition = or_(
            Client.first_name.ilike(pattern, escape="\\"),
            Client.last_name.ilike(pattern, escape="\\"),
            (Client.first_name + " " + Client.last_name).ilike(pattern, escape="\\"),
            Client.email.ilike(pattern, escape="\\"),
            Client.phone.ilike(pattern, escape="\\"),
        )
        return self.find_all_by(condition, limit=limit, business_id=business_id)
