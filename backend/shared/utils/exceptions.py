"""
Centralized domain exceptions for consistent error handling.

Every error crossing the core boundary carries a stable machine-readable
kind, a human-readable message and, for validation failures, the list of
offending fields. They subclass HTTPException so a transport adapter can
render them without translation.

Usage:
    from shared.utils.exceptions import NotFoundError, ConflictError, ValidationError

    raise NotFoundError("User", user_id)
    raise ConflictError("Email already registered", rule="uq_users_email_active")
    raise ValidationError.for_field("email", "format", "Invalid email address")
"""

from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any

from fastapi import HTTPException, status

from shared.config.logging import get_logger

logger = get_logger(__name__)


class ErrorKind(str, Enum):
    """Stable error kinds exposed across the core boundary."""

    VALIDATION = "VALIDATION"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    PARTIAL_FAILURE = "PARTIAL_FAILURE"
    INTERNAL = "INTERNAL"
    CANCELLED = "CANCELLED"


@dataclass(frozen=True)
class FieldError:
    """A single failing field and the rule it violated."""

    field: str
    rule: str
    message: str

    def to_dict(self) -> dict[str, str]:
        return asdict(self)


class AppException(HTTPException):
    """
    Base for every error leaving the core. Logs itself on construction,
    tagged with its kind, so services never log and raise the same failure.
    """

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(
        self,
        status_code: int,
        detail: str,
        log_level: str = "warning",
        headers: dict[str, str] | None = None,
        **log_context: Any,
    ):
        log_fn = getattr(logger, log_level, logger.warning)
        log_fn(detail, kind=self.kind.value, status_code=status_code, **log_context)

        super().__init__(status_code=status_code, detail=detail, headers=headers)

    @property
    def message(self) -> str:
        return self.detail

    def to_dict(self) -> dict[str, Any]:
        """Serializable error payload for transport adapters."""
        return {"kind": self.kind.value, "message": self.detail}

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.detail}"


# =============================================================================
# 400 Validation Errors
# =============================================================================


class ValidationError(AppException):
    """
    Input validation error (400).

    Carries every failing field so callers can report them in one response.

    Usage:
        raise ValidationError("Invalid user input", errors=result.errors)
        raise ValidationError.for_field("limit", "range", "Limit must be positive")
    """

    kind = ErrorKind.VALIDATION

    def __init__(
        self,
        detail: str = "Validation failed",
        errors: list[FieldError] | None = None,
        **log_context: Any,
    ):
        self.errors: list[FieldError] = list(errors or [])
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail,
            log_level="warning",
            fields=[e.field for e in self.errors],
            **log_context,
        )

    @classmethod
    def for_field(cls, field: str, rule: str, message: str, **log_context: Any) -> "ValidationError":
        return cls(message, errors=[FieldError(field, rule, message)], **log_context)

    @property
    def fields(self) -> list[str]:
        return [e.field for e in self.errors]

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["fields"] = [e.to_dict() for e in self.errors]
        return payload


# =============================================================================
# 404 Not Found Errors
# =============================================================================


class NotFoundError(AppException):
    """
    Entity absent or soft-deleted (404).

    Usage:
        raise NotFoundError("Business", business_id)
        raise NotFoundError("User", email, field="email")
    """

    kind = ErrorKind.NOT_FOUND

    def __init__(
        self,
        entity: str,
        entity_id: Any = None,
        *,
        field: str = "id",
        **log_context: Any,
    ):
        self.entity = entity
        self.entity_id = entity_id
        self.field = field
        if entity_id is not None:
            detail = f"{entity} with {field} {entity_id} not found"
        else:
            detail = f"{entity} not found"

        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=detail,
            log_level="warning",
            entity=entity,
            entity_id=str(entity_id) if entity_id is not None else None,
            **log_context,
        )


# =============================================================================
# 409 Conflict Errors
# =============================================================================


class ConflictError(AppException):
    """
    Uniqueness or invariant violation (409).

    Usage:
        raise ConflictError("Appointment already completed")
    """

    kind = ErrorKind.CONFLICT

    def __init__(self, detail: str, *, rule: str | None = None, **log_context: Any):
        self.rule = rule
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail,
            log_level="warning",
            rule=rule,
            **log_context,
        )

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        if self.rule:
            payload["rule"] = self.rule
        return payload


class DuplicateEntityError(ConflictError):
    """Entity with the same unique value already exists."""

    def __init__(self, entity: str, field: str, value: Any = None, *, rule: str | None = None, **log_context: Any):
        self.field = field
        if value is not None:
            detail = f"{entity} with {field} '{value}' already exists"
        else:
            detail = f"{entity} with this {field} already exists"
        super().__init__(detail, rule=rule, entity=entity, field=field, **log_context)


class ActiveAssignmentConflictError(ConflictError):
    """A currently-active assignment already exists for the (scope, subject) pair."""

    def __init__(self, entity: str, scope_id: Any, subject_id: Any, *, rule: str | None = None, **log_context: Any):
        self.scope_id = scope_id
        self.subject_id = subject_id
        detail = f"{entity} already has an active record for ({scope_id}, {subject_id})"
        super().__init__(
            detail,
            rule=rule,
            entity=entity,
            scope_id=str(scope_id),
            subject_id=str(subject_id),
            **log_context,
        )


class InvalidTransitionError(ConflictError):
    """Invalid status transition."""

    def __init__(self, entity: str, from_status: str, to_status: str, **log_context: Any):
        detail = f"Invalid transition from '{from_status}' to '{to_status}' for {entity}"
        super().__init__(detail, entity=entity, from_status=from_status, to_status=to_status, **log_context)


# =============================================================================
# 207 Partial Failure
# =============================================================================


class PartialFailureError(AppException):
    """
    A multi-step workflow completed only some of its steps.

    `succeeded` lists what was persisted; `failed` maps each failed step to
    the error that stopped it.
    """

    kind = ErrorKind.PARTIAL_FAILURE

    def __init__(
        self,
        operation: str,
        succeeded: list[Any],
        failed: dict[Any, AppException],
        **log_context: Any,
    ):
        self.operation = operation
        self.succeeded = list(succeeded)
        self.failed = dict(failed)
        detail = (
            f"{operation} partially completed: "
            f"{len(self.succeeded)} succeeded, {len(self.failed)} failed"
        )
        super().__init__(
            status_code=status.HTTP_207_MULTI_STATUS,
            detail=detail,
            log_level="warning",
            operation=operation,
            succeeded=[str(s) for s in self.succeeded],
            failed=[str(f) for f in self.failed],
            **log_context,
        )

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["succeeded"] = [str(s) for s in self.succeeded]
        payload["failed"] = {str(k): v.to_dict() for k, v in self.failed.items()}
        return payload


# =============================================================================
# 408 Cancelled Operations
# =============================================================================


class OperationCancelledError(AppException):
    """The operation context was cancelled or its deadline passed."""

    kind = ErrorKind.CANCELLED

    def __init__(self, operation: str, *, reason: str = "cancelled", **log_context: Any):
        self.operation = operation
        self.reason = reason
        super().__init__(
            status_code=status.HTTP_408_REQUEST_TIMEOUT,
            detail=f"Operation {operation} aborted: {reason}",
            log_level="warning",
            operation=operation,
            **log_context,
        )


# =============================================================================
# 500 Internal Server Errors
# =============================================================================


class InternalError(AppException):
    """
    Unexpected infrastructure fault (500).

    The underlying cause is kept for diagnostics; only a generic
    message is exposed.
    """

    kind = ErrorKind.INTERNAL

    def __init__(
        self,
        detail: str = "Internal server error",
        *,
        cause: BaseException | None = None,
        **log_context: Any,
    ):
        self.cause = cause
        super().__init__(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=detail,
            log_level="error",
            cause=repr(cause) if cause is not None else None,
            **log_context,
        )


class DatabaseError(InternalError):
    """Database operation failed."""

    def __init__(self, operation: str, *, cause: BaseException | None = None, **log_context: Any):
        self.operation = operation
        detail = f"Database error during {operation}. Please try again."
        super().__init__(detail, cause=cause, operation=operation, **log_context)
