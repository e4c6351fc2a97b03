"""
Shared module for common plumbing used by the booking core.

STRUCTURE:
- shared.infrastructure: Database and operation context
  - db.py: SQLAlchemy engine/sessions, session_scope()
  - context.py: OperationContext (cancellation, deadlines, request id)

- shared.config: Configuration
  - settings.py: Environment config (Pydantic)
  - logging.py: Structured logging
  - constants.py: Staff roles, appointment status, limits

- shared.utils: Utilities
  - exceptions.py: Domain errors with auto-logging
  - validators.py: ValidationRules, ValidationResult, field checks

IMPORT EXAMPLES:
    from shared.infrastructure.db import session_scope
    from shared.infrastructure.context import OperationContext
    from shared.config.settings import settings
    from shared.config.constants import StaffRole, AppointmentStatus
    from shared.utils.exceptions import NotFoundError, ConflictError
    from shared.utils.validators import ValidationRules
"""
