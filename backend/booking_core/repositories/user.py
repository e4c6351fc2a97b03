"""
User repository: lookups by email, external auth id and free-text search.
"""

from __future__ import annotations

from sqlalchemy import or_

from booking_core.models import User
from booking_core.repositories.base import BaseRepository
from shared.utils.validators import escape_like_pattern


class UserRepository(BaseRepository[User]):
    def __init__(self, db, **kwargs):
        super().__init__(User, db, **kwargs)

    def find_by_email(self, email: str) -> User | None:
        return self.find_one_by(email=email.strip().lower())

    def find_by_external_auth_id(self, external_auth_id: str) -> User | None:
        return self.find_one_by(external_auth_id=external_auth_id)

    def search(self, query: str, limit: int) -> list[User]:
        """Live users whose email or name contains `query` (case-insensitive)."""
        pattern = f"%{escape_like_pattern(query)}%"
        full_name = User.first_name + " " + User.last_name
        condition = or_(
            User.email.ilike(pattern, escape="\\"),
            User.first_name.ilike(pattern, escape="\\"),
            User.last_name.ilike(pattern, escape="\\"),
            full_name.ilike(pattern, escape="\\"),
        )
        return self.find_all_by(condition, limit=limit)
