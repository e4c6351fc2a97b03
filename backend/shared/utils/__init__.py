"""
Utilities module: Exceptions, validators.
"""

from shared.utils.exceptions import (
    ErrorKind,
    FieldError,
    AppException,
    ValidationError,
    NotFoundError,
    ConflictError,
    DuplicateEntityError,
    ActiveAssignmentConflictError,
    InvalidTransitionError,
    PartialFailureError,
    OperationCancelledError,
    InternalError,
    DatabaseError,
)
from shared.utils.validators import (
    ValidationRules,
    ValidationResult,
    DEFAULT_RULES,
    escape_like_pattern,
)

__all__ = [
    # exceptions
    "ErrorKind",
    "FieldError",
    "AppException",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "DuplicateEntityError",
    "ActiveAssignmentConflictError",
    "InvalidTransitionError",
    "PartialFailureError",
    "OperationCancelledError",
    "InternalError",
    "DatabaseError",
    # validators
    "ValidationRules",
    "ValidationResult",
    "DEFAULT_RULES",
    "escape_like_pattern",
]
