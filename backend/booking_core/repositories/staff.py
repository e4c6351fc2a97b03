"""
Staff repository: positions of users within businesses.
"""

from __future__ import annotations

import uuid

from sqlalchemy import or_, select

from booking_core.models import Staff, User
from booking_core.repositories.scoped import ScopedAssignmentRepository
from shared.utils.validators import escape_like_pattern


class StaffRepository(ScopedAssignmentRepository[Staff]):
    def __init__(self, db, **kwargs):
        super().__init__(Staff, db, **kwargs)

    def find_by_business_id(self, business_id: uuid.UUID, *, include_ended: bool = False) -> list[Staff]:
        if include_ended:
            return self.find_all_by(business_id=business_id)
        return self.find_active_by_scope(business_id)

    def find_by_user_id(self, user_id: uuid.UUID, *, include_ended: bool = False) -> list[Staff]:
        if include_ended:
            return self.find_all_by(user_id=user_id)
        return self.find_active_by_subject(user_id)

    def count_active_by_business(self, business_id: uuid.UUID) -> int:
        return self.count({"business_id": business_id}, conditions=self._active_conditions())

    def search(
        self,
        business_id: uuid.UUID,
        query: str,
        limit: int,
        *,
        include_ended: bool = False,
    ) -> list[Staff]:
        """
        Live staff of the business matching the position or the linked
        user's name or email (case-insensitive).
        """
        pattern = f"%{escape_like_pattern(query)}%"
        full_name = User.first_name + " " + User.last_name
        matching_users = select(User.id).where(
            User.deleted_at.is_(None),
            or_(
                User.email.ilike(pattern, escape="\\"),
                User.first_name.ilike(pattern, escape="\\"),
                User.last_name.ilike(pattern, escape="\\"),
                full_name.ilike(pattern, escape="\\"),
            ),
        )
        conditions = [
            or_(Staff.position.ilike(pattern, escape="\\"), Staff.user_id.in_(matching_users)),
        ]
        if not include_ended:
            conditions.extend(self._active_conditions())
        return self.find_all_by(*conditions, limit=limit, business_id=business_id)
