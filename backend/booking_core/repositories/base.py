"""
Base Repository implementation.
Provides the generic persistence contract shared by every entity:
create, get, list, update, soft delete and existence checks.

Soft-deleted rows are invisible to every read. All storage calls run
through `_storage_call`, which honours the operation context (cancellation
and deadline) and translates driver errors into domain errors.

Usage:
    repo = BaseRepository(Business, db, ctx=ctx)
    business = repo.create(Business(name="Atelier", ...), user_id)
    page = repo.list(page=1, page_size=20, filters={"user_id": owner_id})
    repo.update(business.id, {"description": None}, user_id)
    repo.soft_delete(business.id, user_id)
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Generic, Sequence, TypeVar

from sqlalchemy import Select, func, select, text, update
from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from booking_core.models import EntityMixin, utcnow
from booking_core.repositories.uniqueness import ScopedUniquenessEnforcer
from shared.config.logging import get_logger
from shared.config.settings import settings
from shared.infrastructure.context import OperationContext
from shared.utils.exceptions import (
    AppException,
    DatabaseError,
    FieldError,
    NotFoundError,
    OperationCancelledError,
    ValidationError,
)
from shared.utils.validators import DEFAULT_RULES, ValidationRules

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=EntityMixin)


@dataclass
class PageResult(Generic[ModelT]):
    """One page of entities plus the total count across all pages."""

    items: list[ModelT] = field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 0

    @property
    def total_pages(self) -> int:
        if self.page_size <= 0:
            return 0
        return (self.total + self.page_size - 1) // self.page_size


class BaseRepository(Generic[ModelT]):
    """
    Generic repository over one EntityMixin model.

    Writes accept `commit=False` so a service can compose several of them
    into one transaction and commit once at the end.
    """

    def __init__(
        self,
        model: type[ModelT],
        db: Session,
        *,
        ctx: OperationContext | None = None,
        rules: ValidationRules = DEFAULT_RULES,
    ):
        self._model = model
        self._db = db
        self._ctx = ctx or OperationContext()
        self._rules = rules
        self._enforcer = ScopedUniquenessEnforcer(model)

    @property
    def model(self) -> type[ModelT]:
        return self._model

    @property
    def db(self) -> Session:
        return self._db

    @property
    def ctx(self) -> OperationContext:
        return self._ctx

    @property
    def enforcer(self) -> ScopedUniquenessEnforcer:
        return self._enforcer

    @property
    def entity_name(self) -> str:
        return self._model.ENTITY_NAME

    # =========================================================================
    # Storage call guard
    # =========================================================================

    def _dbapi_cancel(self):
        """Function that aborts the statement running on this session's connection."""
        raw = self._db.connection().connection.dbapi_connection
        # psycopg exposes cancel(); sqlite3 exposes interrupt()
        return getattr(raw, "cancel", None) or getattr(raw, "interrupt", None)

    def _apply_statement_timeout(self) -> None:
        if self._db.get_bind().dialect.name != "postgresql":
            return
        timeout_ms = self._ctx.remaining_ms()
        if timeout_ms is None:
            timeout_ms = settings.db_statement_timeout_ms
        if timeout_ms:
            self._db.execute(text(f"SET LOCAL statement_timeout = {int(timeout_ms)}"))

    @contextmanager
    def _storage_call(self, operation: str, *, owns_transaction: bool = False, entity: Any = None) -> Iterator[None]:
        """
        Run storage work under the operation context.

        Rolls back only when this call owns the transaction; otherwise the
        caller's transaction (or savepoint) decides.
        """
        self._ctx.raise_if_cancelled(operation)
        try:
            self._apply_statement_timeout()
            cancel = self._dbapi_cancel()
            if cancel is None:
                yield
            else:
                with self._ctx.watch(cancel):
                    yield
        except AppException:
            if owns_transaction:
                self._db.rollback()
            raise
        except IntegrityError as e:
            if owns_transaction:
                self._db.rollback()
            raise self._enforcer.translate(e, entity) from e
        except DBAPIError as e:
            if owns_transaction:
                self._db.rollback()
            if self._ctx.done:
                reason = "cancelled" if self._ctx.cancelled else "deadline exceeded"
                raise OperationCancelledError(operation, reason=reason, request_id=self._ctx.request_id) from e
            logger.error(f"Database error during {operation}", error=str(e))
            raise DatabaseError(operation, cause=e) from e
        except SQLAlchemyError as e:
            if owns_transaction:
                self._db.rollback()
            logger.error(f"Database error during {operation}", error=str(e))
            raise DatabaseError(operation, cause=e) from e

    def commit(self, operation: str = "commit") -> None:
        """Commit the session's transaction, translating failures."""
        with self._storage_call(operation, owns_transaction=True):
            self._db.commit()

    def rollback(self) -> None:
        self._db.rollback()

    # =========================================================================
    # Queries
    # =========================================================================

    def _live_query(self) -> Select:
        return select(self._model).where(self._model.deleted_at.is_(None))

    def _column(self, name: str):
        column = self._model.__table__.columns.get(name)
        if column is None:
            raise ValidationError.for_field(
                name, "unknown_field", f"{self.entity_name} has no field '{name}'"
            )
        return getattr(self._model, name)

    def _apply_filters(self, query: Select, filters: Mapping[str, Any] | None) -> Select:
        for name, value in (filters or {}).items():
            column = self._column(name)
            query = query.where(column.is_(None) if value is None else column == value)
        return query

    def _ordered(self, query: Select) -> Select:
        # created_at ties are broken by id so paging is stable
        return query.order_by(self._model.created_at, self._model.id)

    def _validate(self, entity: ModelT) -> None:
        result = entity.validate(self._rules)
        result.raise_for_errors(f"Invalid {self.entity_name}", entity=self.entity_name)

    # =========================================================================
    # Create
    # =========================================================================

    def create(self, entity: ModelT, user_id: uuid.UUID, *, commit: bool = True) -> ModelT:
        """
        Persist a new entity stamped with `user_id` as creator.

        Raises ValidationError listing every failing field, or ConflictError
        when a uniqueness rule is violated (including by a concurrent writer).
        """
        if user_id is None:
            raise ValidationError.for_field("user_id", "required", "Acting user is required")
        entity.mark_created(user_id)
        self._validate(entity)

        operation = f"create {self._model.table_identity()}"
        with self._storage_call(operation, owns_transaction=commit, entity=entity):
            self._enforcer.check(self._db, entity)
            self._db.add(entity)
            self._db.flush()
            if commit:
                self._db.commit()

        logger.info(f"{self.entity_name} created", entity_id=str(entity.id), user_id=str(user_id))
        return entity

    # =========================================================================
    # Read
    # =========================================================================

    def find_by_id(self, entity_id: uuid.UUID) -> ModelT | None:
        """Live entity with `entity_id`, or None."""
        if entity_id is None:
            return None
        with self._storage_call(f"get {self._model.table_identity()}"):
            return self._db.scalar(self._live_query().where(self._model.id == entity_id))

    def get_by_id(self, entity_id: uuid.UUID) -> ModelT:
        """Live entity with `entity_id`; NotFoundError when absent or deleted."""
        entity = self.find_by_id(entity_id)
        if entity is None:
            raise NotFoundError(self.entity_name, entity_id)
        return entity

    def find_by_ids(self, entity_ids: Sequence[uuid.UUID]) -> list[ModelT]:
        if not entity_ids:
            return []
        with self._storage_call(f"get {self._model.table_identity()}"):
            query = self._ordered(self._live_query().where(self._model.id.in_(list(entity_ids))))
            return list(self._db.scalars(query).all())

    def find_one_by(self, **criteria: Any) -> ModelT | None:
        with self._storage_call(f"find {self._model.table_identity()}"):
            query = self._ordered(self._apply_filters(self._live_query(), criteria))
            return self._db.scalars(query.limit(1)).first()

    def find_all_by(self, *conditions: Any, limit: int | None = None, **criteria: Any) -> list[ModelT]:
        """All live entities matching equality `criteria` and extra SQL `conditions`."""
        with self._storage_call(f"find {self._model.table_identity()}"):
            query = self._apply_filters(self._live_query(), criteria)
            if conditions:
                query = query.where(*conditions)
            query = self._ordered(query)
            if limit is not None:
                query = query.limit(limit)
            return list(self._db.scalars(query).all())

    def list(
        self,
        page: int = 1,
        page_size: int = 20,
        filters: Mapping[str, Any] | None = None,
        *,
        conditions: Sequence[Any] = (),
    ) -> PageResult[ModelT]:
        """
        One page of live entities ordered by creation time, plus the total.

        Pages are 1-based. Bounds are not clamped here; the service layer
        applies defaults and maximums.
        """
        errors = []
        if page is None or page < 1:
            errors.append(FieldError("page", "range", "page must be at least 1"))
        if page_size is None or page_size < 1:
            errors.append(FieldError("page_size", "range", "page_size must be at least 1"))
        if errors:
            raise ValidationError("Invalid pagination", errors=errors)

        query = self._apply_filters(self._live_query(), filters)
        if conditions:
            query = query.where(*conditions)

        with self._storage_call(f"list {self._model.table_identity()}"):
            total = self._db.scalar(select(func.count()).select_from(query.subquery())) or 0
            items = self._db.scalars(
                self._ordered(query).offset((page - 1) * page_size).limit(page_size)
            ).all()
        return PageResult(items=list(items), total=total, page=page, page_size=page_size)

    def count(
        self,
        filters: Mapping[str, Any] | None = None,
        *,
        conditions: Sequence[Any] = (),
    ) -> int:
        query = self._apply_filters(
            select(func.count()).select_from(self._model).where(self._model.deleted_at.is_(None)),
            filters,
        )
        if conditions:
            query = query.where(*conditions)
        with self._storage_call(f"count {self._model.table_identity()}"):
            return self._db.scalar(query) or 0

    def exists(self, entity_id: uuid.UUID) -> bool:
        return self.exists_by("id", entity_id)

    def exists_by(self, field_name: str, value: Any) -> bool:
        """Whether any live entity has `field_name` equal to `value`."""
        column = self._column(field_name)
        query = (
            select(self._model.id)
            .where(self._model.deleted_at.is_(None), column == value)
            .limit(1)
        )
        with self._storage_call(f"exists {self._model.table_identity()}"):
            return self._db.scalar(query) is not None

    # =========================================================================
    # Update
    # =========================================================================

    def update(
        self,
        entity_id: uuid.UUID,
        changes: Mapping[str, Any],
        user_id: uuid.UUID,
        *,
        commit: bool = True,
    ) -> ModelT:
        """
        Apply a partial update.

        A key present in `changes` sets that field (None clears it); an
        absent key leaves the field untouched. The merged entity is
        re-validated before anything is written. Returns the entity as
        read back from storage.
        """
        if user_id is None:
            raise ValidationError.for_field("user_id", "required", "Acting user is required")
        entity = self.get_by_id(entity_id)

        errors = []
        for name in changes:
            if name in self._model.immutable_fields():
                errors.append(FieldError(name, "immutable", f"{name} cannot be changed"))
            elif self._model.__table__.columns.get(name) is None:
                errors.append(
                    FieldError(name, "unknown_field", f"{self.entity_name} has no field '{name}'")
                )
        if errors:
            raise ValidationError(f"Invalid {self.entity_name} update", errors=errors)

        for name, value in changes.items():
            setattr(entity, name, value)
        entity.mark_updated(user_id)

        result = entity.validate(self._rules)
        if not result.ok:
            # Drop the unflushed changes so the session keeps the stored state
            self._db.expire(entity)
            result.raise_for_errors(f"Invalid {self.entity_name}", entity=self.entity_name)

        operation = f"update {self._model.table_identity()}"
        try:
            with self._storage_call(operation, owns_transaction=commit, entity=entity):
                self._enforcer.check(self._db, entity, exclude_id=entity.id)
                self._db.flush()
                if commit:
                    self._db.commit()
        except AppException:
            if not commit and entity in self._db:
                self._db.expire(entity)
            raise

        logger.info(
            f"{self.entity_name} updated",
            entity_id=str(entity_id),
            user_id=str(user_id),
            fields=sorted(changes),
        )
        return self.get_by_id(entity_id)

    # =========================================================================
    # Soft delete
    # =========================================================================

    def soft_delete(self, entity_id: uuid.UUID, user_id: uuid.UUID, *, commit: bool = True) -> None:
        """
        Mark the entity deleted, exactly once.

        The conditional UPDATE makes concurrent deletes race-safe: only one
        caller sees a matching live row, every other gets NotFoundError.
        """
        if user_id is None:
            raise ValidationError.for_field("user_id", "required", "Acting user is required")
        operation = f"delete {self._model.table_identity()}"
        statement = (
            update(self._model)
            .where(self._model.id == entity_id, self._model.deleted_at.is_(None))
            .values(deleted_at=utcnow(), deleted_by=user_id)
            .execution_options(synchronize_session="fetch")
        )
        with self._storage_call(operation, owns_transaction=commit):
            result = self._db.execute(statement)
            if result.rowcount != 1:
                raise NotFoundError(self.entity_name, entity_id)
            if commit:
                self._db.commit()

        logger.info(f"{self.entity_name} soft deleted", entity_id=str(entity_id), user_id=str(user_id))
