"""
Base class, EntityMixin and ScopedAssignmentMixin for all ORM models.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, ClassVar, Optional

from sqlalchemy import Boolean, DateTime, Index, Uuid, and_
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from shared.utils.validators import ValidationResult, ValidationRules, DEFAULT_RULES


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


@dataclass(frozen=True)
class UniqueRule:
    """
    A uniqueness rule evaluated only among live rows.

    `name` is also the name of the partial unique index backing the rule.
    With `active_only` the rule additionally ignores ended assignments
    (is_active false or end_date set).
    """

    name: str
    columns: tuple[str, ...]
    active_only: bool = False

    @property
    def label(self) -> str:
        return ", ".join(self.columns)


def rule_predicate(model: type, rule: UniqueRule):
    """Row filter under which `rule` applies: the partial index WHERE clause."""
    clause = model.deleted_at.is_(None)
    if rule.active_only:
        clause = and_(clause, model.is_active.is_(True), model.end_date.is_(None))
    return clause


def register_unique_indexes(model: type) -> None:
    """
    Declare one partial unique index per UniqueRule on `model`.

    The index is the atomic guarantee: two concurrent writers can both pass
    a pre-check, but only one of them can commit a conflicting row.
    """
    for rule in model.UNIQUE_RULES:
        predicate = rule_predicate(model, rule)
        Index(
            rule.name,
            *(getattr(model, column) for column in rule.columns),
            unique=True,
            sqlite_where=predicate,
            postgresql_where=predicate,
        )


class EntityMixin:
    """
    Identity, audit stamps and the soft-delete marker shared by every entity.

    Fields added:
    - id: UUID assigned at creation, never reused
    - created_at/created_by: set once on create
    - updated_at/updated_by: refreshed on every update
    - deleted_at/deleted_by: set exactly once on soft delete

    Subclasses implement validate() and may declare UNIQUE_RULES.
    """

    ENTITY_NAME: ClassVar[str] = "Entity"
    UNIQUE_RULES: ClassVar[tuple[UniqueRule, ...]] = ()
    # Attributes that update() may never change
    IMMUTABLE_FIELDS: ClassVar[frozenset[str]] = frozenset(
        {"id", "created_at", "created_by", "updated_at", "updated_by", "deleted_at", "deleted_by"}
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, index=True)
    created_by: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    updated_by: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )
    deleted_by: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)

    @classmethod
    def immutable_fields(cls) -> frozenset[str]:
        return cls.IMMUTABLE_FIELDS

    @classmethod
    def table_identity(cls) -> str:
        """Storage identifier (table name) of the entity."""
        return cls.__tablename__

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def mark_created(self, user_id: uuid.UUID, now: datetime | None = None) -> None:
        now = now or utcnow()
        if self.id is None:
            self.id = uuid.uuid4()
        self.created_at = now
        self.created_by = user_id
        self.updated_at = now
        self.updated_by = user_id

    def mark_updated(self, user_id: uuid.UUID, now: datetime | None = None) -> None:
        self.updated_at = now or utcnow()
        self.updated_by = user_id

    def mark_deleted(self, user_id: uuid.UUID, now: datetime | None = None) -> None:
        if self.deleted_at is not None:
            raise ValueError(f"{self.ENTITY_NAME} {self.id} is already deleted")
        self.deleted_at = now or utcnow()
        self.deleted_by = user_id

    def validate(self, rules: ValidationRules = DEFAULT_RULES) -> ValidationResult:
        """
        Check every field rule; returns all failures, never raises.

        Every mapped entity overrides this with its own field rules. The
        mixin cannot be abstract because DeclarativeBase does not use ABCMeta.
        """
        raise NotImplementedError(f"{type(self).__name__} defines no field rules")

    def unique_values(self, rule: UniqueRule) -> tuple[Any, ...]:
        return tuple(getattr(self, column) for column in rule.columns)

    def __repr__(self) -> str:
        state = "deleted" if self.deleted_at is not None else "live"
        return f"<{self.__class__.__name__}(id={self.id}, {state})>"


class ScopedAssignmentMixin:
    """
    Lifecycle of a (scope, subject) assignment such as staff positions.

    States: active (is_active, no end_date) -> ended. Reactivation never
    reopens an ended row; it inserts a new one so history is preserved.
    """

    SCOPE_FIELD: ClassVar[str]
    SUBJECT_FIELD: ClassVar[str]
    # Changed only by the create, end and reactivate paths
    LIFECYCLE_FIELDS: ClassVar[frozenset[str]] = frozenset({"is_active", "start_date", "end_date"})

    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    @classmethod
    def immutable_fields(cls) -> frozenset[str]:
        # An assignment never moves to another pair
        return super().immutable_fields() | cls.LIFECYCLE_FIELDS | {cls.SCOPE_FIELD, cls.SUBJECT_FIELD}

    @property
    def scope_id(self) -> uuid.UUID:
        return getattr(self, self.SCOPE_FIELD)

    @property
    def subject_id(self) -> uuid.UUID:
        return getattr(self, self.SUBJECT_FIELD)

    @property
    def is_current(self) -> bool:
        return bool(self.is_active) and self.end_date is None and self.deleted_at is None

    @property
    def state(self) -> str:
        return "active" if self.is_current else "ended"

    def _check_period(self, result: ValidationResult) -> None:
        if self.start_date is None:
            result.add("start_date", "required", "start_date is required")
            return
        if self.end_date is not None and as_utc(self.end_date) < as_utc(self.start_date):
            result.add("end_date", "range", "end_date must not be before start_date")
        if self.is_active is False and self.end_date is None:
            result.add("end_date", "required", "an inactive assignment must have an end_date")


def as_utc(value: datetime) -> datetime:
    # SQLite returns naive datetimes; they are stored as UTC
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
