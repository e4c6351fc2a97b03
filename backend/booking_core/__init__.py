"""
Booking core: entity lifecycle layer for the business-management backend.

Architecture:
    Transport adapter → Service (workflows) → Repository (data access) → Model

- booking_core.models: SQLAlchemy entities sharing EntityMixin (identity,
  audit stamps, soft-delete marker) and their uniqueness rules.
- booking_core.repositories: generic BaseRepository plus per-entity finders,
  ScopedAssignmentRepository and the ScopedUniquenessEnforcer.
- booking_core.schemas: Pydantic input/output DTOs.
- booking_core.services: validation, defaults and multi-step workflows.
"""

__version__ = "0.1.0"
