"""
Service factory.

Builds the validation rules once from settings and hands the same
immutable rules object to every service it creates.

Usage:
    factory = ServiceFactory.from_settings()
    with session_scope() as db:
        users = factory.users(db, ctx=ctx)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TypeVar

from sqlalchemy.orm import Session

from booking_core.services.base_service import BaseService
from booking_core.services.domain import (
    AppointmentService,
    BusinessService,
    CatalogService,
    ClientService,
    ServiceAssignmentService,
    ServiceCategoryService,
    StaffService,
    UserService,
)
from shared.config.settings import Settings, get_settings
from shared.infrastructure.context import OperationContext
from shared.utils.validators import ValidationRules

ServiceT = TypeVar("ServiceT", bound=BaseService)


@dataclass(frozen=True)
class ServiceFactory:
    config: Settings
    rules: ValidationRules

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> "ServiceFactory":
        config = config or get_settings()
        return cls(config=config, rules=ValidationRules.from_settings(config))

    def build(self, service_cls: type[ServiceT], db: Session, ctx: OperationContext | None = None) -> ServiceT:
        return service_cls(db, ctx=ctx, rules=self.rules, config=self.config)

    def users(self, db: Session, ctx: OperationContext | None = None) -> UserService:
        return self.build(UserService, db, ctx)

    def businesses(self, db: Session, ctx: OperationContext | None = None) -> BusinessService:
        return self.build(BusinessService, db, ctx)

    def staff(self, db: Session, ctx: OperationContext | None = None) -> StaffService:
        return self.build(StaffService, db, ctx)

    def clients(self, db: Session, ctx: OperationContext | None = None) -> ClientService:
        return self.build(ClientService, db, ctx)

    def catalog(self, db: Session, ctx: OperationContext | None = None) -> CatalogService:
        return self.build(CatalogService, db, ctx)

    def categories(self, db: Session, ctx: OperationContext | None = None) -> ServiceCategoryService:
        return self.build(ServiceCategoryService, db, ctx)

    def assignments(self, db: Session, ctx: OperationContext | None = None) -> ServiceAssignmentService:
        return self.build(ServiceAssignmentService, db, ctx)

    def appointments(self, db: Session, ctx: OperationContext | None = None) -> AppointmentService:
        return self.build(AppointmentService, db, ctx)
