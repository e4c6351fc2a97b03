"""
Infrastructure module: Database and operation context.

Provides:
- Database engine, sessions and transactions (db.py)
- Cancellation / deadline tokens for storage calls (context.py)
"""

from shared.infrastructure.db import (
    build_engine,
    get_engine,
    get_session_factory,
    session_scope,
    init_schema,
)
from shared.infrastructure.context import (
    OperationContext,
    get_request_id,
    request_id_var,
)

__all__ = [
    # db
    "build_engine",
    "get_engine",
    "get_session_factory",
    "session_scope",
    "init_schema",
    # context
    "OperationContext",
    "get_request_id",
    "request_id_var",
]
