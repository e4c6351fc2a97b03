"""
Repository for scoped assignments: (scope, subject) pairs with at most one
active record and a preserved history of ended ones.
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TypeVar

from sqlalchemy import update

from booking_core.models import ScopedAssignmentMixin, as_utc, utcnow
from booking_core.repositories.base import BaseRepository
from shared.config.logging import get_logger
from shared.utils.exceptions import InvalidTransitionError, ValidationError

logger = get_logger(__name__)

AssignmentT = TypeVar("AssignmentT", bound=ScopedAssignmentMixin)


class ScopedAssignmentRepository(BaseRepository[AssignmentT]):
    """
    State machine per (scope, subject):

        no record --create--> active --end--> ended
        ended --reactivate--> new active record (the ended row is untouched)
    """

    @property
    def _scope(self):
        return getattr(self._model, self._model.SCOPE_FIELD)

    @property
    def _subject(self):
        return getattr(self._model, self._model.SUBJECT_FIELD)

    def _active_conditions(self):
        return (self._model.is_active.is_(True), self._model.end_date.is_(None))

    def find_active(self, scope_id: uuid.UUID, subject_id: uuid.UUID) -> AssignmentT | None:
        """The currently active record for the pair, if any."""
        found = self.find_all_by(
            self._scope == scope_id,
            self._subject == subject_id,
            *self._active_conditions(),
        )
        return found[0] if found else None

    def history(self, scope_id: uuid.UUID, subject_id: uuid.UUID) -> list[AssignmentT]:
        """Every live record for the pair, active and ended, oldest first."""
        return self.find_all_by(self._scope == scope_id, self._subject == subject_id)

    def find_active_by_scope(self, scope_id: uuid.UUID) -> list[AssignmentT]:
        return self.find_all_by(self._scope == scope_id, *self._active_conditions())

    def find_active_by_subject(self, subject_id: uuid.UUID) -> list[AssignmentT]:
        return self.find_all_by(self._subject == subject_id, *self._active_conditions())

    def end(
        self,
        entity_id: uuid.UUID,
        user_id: uuid.UUID,
        *,
        end_date: datetime | None = None,
        commit: bool = True,
    ) -> AssignmentT:
        """
        Transition an active record to ended.

        Ending an already-ended record is an InvalidTransitionError; the
        conditional UPDATE keeps two concurrent calls from both succeeding.
        """
        if user_id is None:
            raise ValidationError.for_field("user_id", "required", "Acting user is required")
        current = self.get_by_id(entity_id)
        now = utcnow()
        end_date = end_date or now
        if current.start_date is not None and as_utc(end_date) < as_utc(current.start_date):
            raise ValidationError.for_field(
                "end_date", "range", "end_date must not be before start_date"
            )

        operation = f"end {self._model.table_identity()}"
        statement = (
            update(self._model)
            .where(
                self._model.id == entity_id,
                self._model.deleted_at.is_(None),
                *self._active_conditions(),
            )
            .values(is_active=False, end_date=end_date, updated_at=now, updated_by=user_id)
            .execution_options(synchronize_session="fetch")
        )
        with self._storage_call(operation, owns_transaction=commit):
            result = self._db.execute(statement)
            if result.rowcount != 1:
                raise InvalidTransitionError(self.entity_name, "ended", "ended")
            if commit:
                self._db.commit()

        logger.info(f"{self.entity_name} ended", entity_id=str(entity_id), user_id=str(user_id))
        return self.get_by_id(entity_id)

