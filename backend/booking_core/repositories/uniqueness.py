"""
Scoped uniqueness enforcement.

Each UniqueRule declared on a model is backed by a partial unique index,
so the storage engine rejects a conflicting row atomically even when two
writers race. The enforcer adds a pre-check for a readable error in the
common case and maps index violations back to the rule that fired.
"""

from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from booking_core.models import UniqueRule, rule_predicate
from shared.config.logging import get_logger
from shared.utils.exceptions import (
    ActiveAssignmentConflictError,
    AppException,
    ConflictError,
    DuplicateEntityError,
    ValidationError,
)

logger = get_logger(__name__)


class ScopedUniquenessEnforcer:
    """
    Enforces a model's UNIQUE_RULES among live (and, for assignments,
    currently active) rows.
    """

    def __init__(self, model: type):
        self._model = model
        self._rules: tuple[UniqueRule, ...] = tuple(model.UNIQUE_RULES)

    @property
    def rules(self) -> tuple[UniqueRule, ...]:
        return self._rules

    def applies_to(self, rule: UniqueRule, entity: Any) -> bool:
        """Whether `entity` in its current state participates in `rule`."""
        if entity.deleted_at is not None:
            return False
        if any(value is None for value in entity.unique_values(rule)):
            # NULLs never collide in a unique index
            return False
        if rule.active_only:
            return entity.is_active is not False and entity.end_date is None
        return True

    def find_conflict(
        self,
        session: Session,
        entity: Any,
        exclude_id: uuid.UUID | None = None,
    ) -> UniqueRule | None:
        """First rule that another live row already satisfies, or None."""
        model = self._model
        for rule in self._rules:
            if not self.applies_to(rule, entity):
                continue
            query = select(model.id).where(rule_predicate(model, rule))
            for column, value in zip(rule.columns, entity.unique_values(rule)):
                query = query.where(getattr(model, column) == value)
            if exclude_id is not None:
                query = query.where(model.id != exclude_id)
            if session.scalar(query.limit(1)) is not None:
                return rule
        return None

    def check(self, session: Session, entity: Any, exclude_id: uuid.UUID | None = None) -> None:
        """Raise the conflict error for the first violated rule."""
        rule = self.find_conflict(session, entity, exclude_id)
        if rule is not None:
            raise self.conflict_error(rule, entity)

    def conflict_error(self, rule: UniqueRule, entity: Any = None) -> ConflictError:
        name = self._model.ENTITY_NAME
        if rule.active_only:
            scope_id = getattr(entity, rule.columns[0], None) if entity is not None else None
            subject_id = getattr(entity, rule.columns[-1], None) if entity is not None else None
            return ActiveAssignmentConflictError(name, scope_id, subject_id, rule=rule.name)
        field = rule.columns[-1]
        value = getattr(entity, field, None) if entity is not None else None
        return DuplicateEntityError(name, field, value, rule=rule.name)

    def find_violations(self, session: Session) -> list[tuple[UniqueRule, tuple[Any, ...], int]]:
        """
        Groups of live rows that break a rule, as (rule, values, count).

        Only possible when the backing index is missing, e.g. a database
        created before the rule existed.
        """
        model = self._model
        violations = []
        for rule in self._rules:
            columns = [getattr(model, column) for column in rule.columns]
            query = (
                select(*columns, func.count())
                .where(rule_predicate(model, rule), *(c.is_not(None) for c in columns))
                .group_by(*columns)
                .having(func.count() > 1)
            )
            for row in session.execute(query).all():
                violations.append((rule, tuple(row[:-1]), row[-1]))
        return violations

    def rule_for_violation(self, exc: IntegrityError) -> UniqueRule | None:
        """Identify which rule an IntegrityError came from."""
        orig = exc.orig
        diag = getattr(orig, "diag", None)
        constraint = getattr(diag, "constraint_name", None)
        message = str(orig)
        table = self._model.table_identity()
        for rule in self._rules:
            if constraint == rule.name or rule.name in message:
                return rule
            # SQLite reports the columns, not the index name
            signature = ", ".join(f"{table}.{column}" for column in rule.columns)
            if f"UNIQUE constraint failed: {signature}" in message:
                return rule
        return None

    def translate(self, exc: IntegrityError, entity: Any = None) -> AppException:
        """Map a storage integrity violation to a domain error."""
        rule = self.rule_for_violation(exc)
        if rule is not None:
            return self.conflict_error(rule, entity)

        message = str(exc.orig).lower()
        name = self._model.ENTITY_NAME
        if "not null" in message or "not-null" in message:
            return ValidationError(f"{name} is missing a required value", entity=name)
        if "foreign key" in message:
            return ConflictError(
                f"{name} references an entity that does not exist",
                rule="foreign_key",
                entity=name,
            )
        logger.error("Unmapped integrity violation", entity=name, error=str(exc.orig))
        return ConflictError(f"{name} violates a storage constraint", entity=name)
