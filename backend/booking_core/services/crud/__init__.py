"""
CRUD helpers shared by domain services: delete policies and cascading soft delete.
"""

from .delete_policy import (
    CascadeDeleteService,
    DeletePolicy,
    Relationship,
    RELATIONSHIPS,
    relationships_for,
)

__all__ = [
    "CascadeDeleteService",
    "DeletePolicy",
    "Relationship",
    "RELATIONSHIPS",
    "relationships_for",
]
