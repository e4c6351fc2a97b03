"""
Business repository.
"""

from __future__ import annotations

import uuid

from booking_core.models import Business
from booking_core.repositories.base import BaseRepository


class BusinessRepository(BaseRepository[Business]):
    def __init__(self, db, **kwargs):
        super().__init__(Business, db, **kwargs)

    def find_by_owner(self, user_id: uuid.UUID) -> list[Business]:
        """Live businesses owned by `user_id`, oldest first."""
        return self.find_all_by(user_id=user_id)
