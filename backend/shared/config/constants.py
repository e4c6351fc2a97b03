"""
Centralized constants for the booking core.
Avoid magic strings and repeated constants.

Usage:
    from shared.config.constants import StaffRole, AppointmentStatus

    if status == AppointmentStatus.SCHEDULED:
        ...
"""

from typing import Final


# =============================================================================
# Business Roles
# =============================================================================


class StaffRole:
    """Business-context role of a staff record."""

    OWNER: Final[str] = "owner"
    MANAGER: Final[str] = "manager"
    EMPLOYEE: Final[str] = "employee"
    ASSISTANT: Final[str] = "assistant"

    ALL: Final[list[str]] = [OWNER, MANAGER, EMPLOYEE, ASSISTANT]


class EmploymentType:
    """Staff employment type constants."""

    FULL_TIME: Final[str] = "full-time"
    PART_TIME: Final[str] = "part-time"
    CONTRACT: Final[str] = "contract"
    INTERN: Final[str] = "intern"

    ALL: Final[list[str]] = [FULL_TIME, PART_TIME, CONTRACT, INTERN]


class SubscriptionTier:
    """Business subscription tier constants."""

    FREE: Final[str] = "free"
    BASIC: Final[str] = "basic"
    PRO: Final[str] = "pro"
    ENTERPRISE: Final[str] = "enterprise"

    ALL: Final[list[str]] = [FREE, BASIC, PRO, ENTERPRISE]


# =============================================================================
# Appointment Status
# =============================================================================


class AppointmentStatus:
    """Appointment status constants."""

    SCHEDULED: Final[str] = "scheduled"
    CONFIRMED: Final[str] = "confirmed"
    IN_PROGRESS: Final[str] = "in_progress"
    COMPLETED: Final[str] = "completed"
    CANCELLED: Final[str] = "cancelled"
    NO_SHOW: Final[str] = "no_show"

    ALL: Final[list[str]] = [SCHEDULED, CONFIRMED, IN_PROGRESS, COMPLETED, CANCELLED, NO_SHOW]
    OPEN: Final[list[str]] = [SCHEDULED, CONFIRMED, IN_PROGRESS]
    TERMINAL: Final[list[str]] = [COMPLETED, CANCELLED, NO_SHOW]


# Valid appointment status transitions (from -> [allowed to states])
APPOINTMENT_TRANSITIONS: Final[dict[str, list[str]]] = {
    AppointmentStatus.SCHEDULED: [
        AppointmentStatus.CONFIRMED,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    ],
    AppointmentStatus.CONFIRMED: [
        AppointmentStatus.IN_PROGRESS,
        AppointmentStatus.CANCELLED,
        AppointmentStatus.NO_SHOW,
    ],
    AppointmentStatus.IN_PROGRESS: [AppointmentStatus.COMPLETED],
    AppointmentStatus.COMPLETED: [],  # Terminal state
    AppointmentStatus.CANCELLED: [],  # Terminal state
    AppointmentStatus.NO_SHOW: [],  # Terminal state
}


# =============================================================================
# Validation Constants
# =============================================================================


class Limits:
    """Validation limits."""

    # Price limits
    MAX_PRICE: Final[int] = 100_000

    # Durations (minutes)
    MAX_DURATION_MINUTES: Final[int] = 24 * 60

    # String lengths
    MAX_NAME_LENGTH: Final[int] = 200
    MAX_PERSON_NAME_LENGTH: Final[int] = 100
    MAX_DESCRIPTION_LENGTH: Final[int] = 2000
    MAX_PHONE_LENGTH: Final[int] = 50
    MAX_SEARCH_TERM_LENGTH: Final[int] = 100
    CURRENCY_CODE_LENGTH: Final[int] = 3

    # Commission rate (percent)
    MAX_COMMISSION_RATE: Final[int] = 100
