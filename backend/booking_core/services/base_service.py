"""
Base Service Classes.

Provides abstract base classes for application services that:
- Use Repository for data access (not direct queries)
- Parse inputs with Pydantic schemas and return output DTOs
- Apply pagination/search bounds and settings-driven defaults
- Compose multi-step workflows into one transaction

Architecture:
    Transport adapter (thin) → Service (workflows) → Repository (data access) → Model

Usage:
    class ClientService(BaseCRUDService[Client, ClientCreate, ClientUpdate, ClientOutput]):
        model = Client
        create_schema = ClientCreate
        update_schema = ClientUpdate
        output_schema = ClientOutput

        def _validate_create(self, entity: Client) -> None:
            self._require(Business, entity.business_id, "business_id")
"""

from __future__ import annotations

import uuid
from abc import ABC
from typing import Any, ClassVar, Generic, Mapping, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from booking_core.models import EntityMixin
from booking_core.repositories import BaseRepository, PageResult
from booking_core.schemas import Page
from booking_core.services.crud.delete_policy import CascadeDeleteService
from shared.config.constants import Limits
from shared.config.logging import get_logger
from shared.config.settings import Settings, get_settings
from shared.infrastructure.context import OperationContext
from shared.utils.exceptions import AppException, FieldError, NotFoundError, ValidationError
from shared.utils.validators import ValidationRules

logger = get_logger(__name__)

ModelT = TypeVar("ModelT", bound=EntityMixin)
CreateT = TypeVar("CreateT", bound=BaseModel)
UpdateT = TypeVar("UpdateT", bound=BaseModel)
OutputT = TypeVar("OutputT", bound=BaseModel)
SchemaT = TypeVar("SchemaT", bound=BaseModel)


def parse_input(schema: type[SchemaT], data: Any, entity_name: str) -> SchemaT:
    """
    Validate `data` (a mapping or schema instance) against `schema`.

    Every failing field is reported in a single ValidationError.
    """
    if isinstance(data, schema):
        return data
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_unset=True)
    try:
        return schema.model_validate(data)
    except PydanticValidationError as e:
        errors = [
            FieldError(
                ".".join(str(part) for part in err["loc"]) or "__root__",
                err["type"],
                err["msg"],
            )
            for err in e.errors()
        ]
        raise ValidationError(f"Invalid {entity_name} input", errors=errors, entity=entity_name) from e


def clamp_page(page: int | None, page_size: int | None, config: Settings) -> tuple[int, int]:
    """Apply default and maximum page sizes; pages are 1-based."""
    page = page if page is not None and page >= 1 else 1
    if page_size is None or page_size < 1:
        page_size = config.default_page_size
    return page, min(page_size, config.max_page_size)


def clamp_limit(limit: int | None, config: Settings) -> int:
    """Search limit within [1, max], falling back to the default when out of range."""
    if limit is None or limit < 1 or limit > config.max_search_limit:
        return config.default_search_limit
    return limit


class BaseService(ABC):
    """
    Common infrastructure for domain services: session, operation
    context, validation rules and settings.
    """

    def __init__(
        self,
        db: Session,
        *,
        ctx: OperationContext | None = None,
        rules: ValidationRules | None = None,
        config: Settings | None = None,
    ):
        self._db = db
        self._ctx = ctx or OperationContext()
        self._config = config or get_settings()
        self._rules = rules or ValidationRules.from_settings(self._config)

    @property
    def db(self) -> Session:
        """Database session."""
        return self._db

    @property
    def ctx(self) -> OperationContext:
        return self._ctx

    @property
    def config(self) -> Settings:
        return self._config

    def _repository(self, repo_cls: type, *args: Any) -> Any:
        return repo_cls(*args, self._db, ctx=self._ctx, rules=self._rules)

    def _require(self, model: type[EntityMixin], entity_id: uuid.UUID | None, field: str) -> Any:
        """Live entity referenced by `field`; NotFoundError when it is absent."""
        entity = BaseRepository(model, self._db, ctx=self._ctx).find_by_id(entity_id)
        if entity is None:
            raise NotFoundError(model.ENTITY_NAME, entity_id, reference=field)
        return entity

    # =========================================================================
    # Bounds
    # =========================================================================

    def clamp_page(self, page: int | None, page_size: int | None) -> tuple[int, int]:
        return clamp_page(page, page_size, self._config)

    def clamp_limit(self, limit: int | None) -> int:
        return clamp_limit(limit, self._config)

    def search_term(self, query: str | None) -> str:
        term = (query or "").strip()
        if not term:
            raise ValidationError.for_field("query", "required", "Search query must not be empty")
        return term[: Limits.MAX_SEARCH_TERM_LENGTH]

    def _transaction_failed(self, operation: str, error: AppException) -> None:
        self._db.rollback()
        logger.warning(f"{operation} rolled back", error=str(error))


class BaseCRUDService(BaseService, Generic[ModelT, CreateT, UpdateT, OutputT]):
    """
    Base service for entities with CRUD operations.

    Subclasses set the model and schemas and override the hooks:
    - _build_entity(payload): entity from the parsed create payload
    - _validate_create(entity) / _validate_update(entity, changes):
      cross-entity checks such as referenced entities existing
    - _after_create(entity, user_id): extra steps in the same transaction
    """

    model: ClassVar[type[EntityMixin]]
    repository_class: ClassVar[type[BaseRepository] | None] = None
    create_schema: ClassVar[type[BaseModel]]
    update_schema: ClassVar[type[BaseModel]]
    output_schema: ClassVar[type[BaseModel]]

    def __init__(self, db: Session, **kwargs: Any):
        super().__init__(db, **kwargs)
        if self.repository_class is not None:
            self._repo = self._repository(self.repository_class)
        else:
            self._repo = self._repository(BaseRepository, self.model)

    @property
    def repo(self) -> BaseRepository[ModelT]:
        """Repository for data access."""
        return self._repo

    @property
    def entity_name(self) -> str:
        return self.model.ENTITY_NAME

    def to_output(self, entity: ModelT) -> OutputT:
        return self.output_schema.model_validate(entity)

    def to_page(self, result: PageResult[ModelT]) -> Page[OutputT]:
        return Page[self.output_schema](
            items=[self.to_output(e) for e in result.items],
            total=result.total,
            page=result.page,
            page_size=result.page_size,
            total_pages=result.total_pages,
        )

    # =========================================================================
    # Hooks
    # =========================================================================

    def _build_entity(self, payload: CreateT) -> ModelT:
        return self.model(**payload.model_dump())

    def _validate_create(self, entity: ModelT) -> None:
        pass

    def _validate_update(self, entity: ModelT, changes: dict[str, Any]) -> None:
        pass

    def _after_create(self, entity: ModelT, user_id: uuid.UUID) -> None:
        pass

    # =========================================================================
    # Operations
    # =========================================================================

    def create(self, data: CreateT | Mapping[str, Any], user_id: uuid.UUID) -> OutputT:
        """
        Create an entity and any dependent records in one transaction.

        Raises:
            ValidationError: every failing field in one error
            NotFoundError: a referenced entity does not exist
            ConflictError: a uniqueness rule is violated
        """
        payload = parse_input(self.create_schema, data, self.entity_name)
        entity = self._build_entity(payload)
        try:
            self._validate_create(entity)
            self._repo.create(entity, user_id, commit=False)
            self._after_create(entity, user_id)
            self._repo.commit(f"create {self.model.table_identity()}")
        except AppException as e:
            self._transaction_failed(f"Create {self.entity_name}", e)
            raise
        return self.to_output(entity)

    def get(self, entity_id: uuid.UUID) -> OutputT:
        return self.to_output(self._repo.get_by_id(entity_id))

    def list(
        self,
        page: int | None = None,
        page_size: int | None = None,
        filters: Mapping[str, Any] | None = None,
    ) -> Page[OutputT]:
        page, page_size = self.clamp_page(page, page_size)
        return self.to_page(self._repo.list(page, page_size, filters))

    def update(self, entity_id: uuid.UUID, data: UpdateT | Mapping[str, Any], user_id: uuid.UUID) -> OutputT:
        """
        Partial update: only fields present in `data` change; explicit
        nulls clear. Returns the entity as read back from storage.
        """
        payload = parse_input(self.update_schema, data, self.entity_name)
        changes = payload.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationError.for_field("__root__", "required", "No fields to update")
        try:
            entity = self._repo.get_by_id(entity_id)
            self._validate_update(entity, changes)
            updated = self._repo.update(entity_id, changes, user_id, commit=False)
            self._repo.commit(f"update {self.model.table_identity()}")
        except AppException as e:
            self._transaction_failed(f"Update {self.entity_name}", e)
            raise
        return self.to_output(self._repo.get_by_id(updated.id))

    def delete(self, entity_id: uuid.UUID, user_id: uuid.UUID) -> int:
        """Soft delete applying the delete policies; returns affected records."""
        return CascadeDeleteService(self._db, ctx=self._ctx, rules=self._rules).soft_delete(
            self.model, entity_id, user_id
        )

    def exists(self, entity_id: uuid.UUID) -> bool:
        return self._repo.exists(entity_id)

    def count(self, filters: Mapping[str, Any] | None = None) -> int:
        return self._repo.count(filters)
