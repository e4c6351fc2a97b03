"""
Operation context: cancellation, deadlines and request correlation.

Every storage call made by a repository is checked against the caller's
OperationContext. Cancelling the context aborts the in-flight statement
through the callbacks registered with `watch()` and surfaces
OperationCancelledError to the caller.

Usage:
    ctx = OperationContext(timeout=5.0)
    with ctx.bind():
        service = UserService(db, ctx=ctx)
        service.create(data, acting_user_id)

    # From another thread
    ctx.cancel()
"""

from __future__ import annotations

import threading
import time
import uuid
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar

from shared.config.logging import get_logger
from shared.utils.exceptions import OperationCancelledError

logger = get_logger(__name__)

# Context variable for request ID (thread-safe)
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


def get_request_id() -> str:
    """Get the current request ID."""
    return request_id_var.get()


class OperationContext:
    """
    Cancellation token with an optional deadline.

    Thread-safe: `cancel()` may be called from any thread while the
    owning worker is blocked in a storage call.
    """

    def __init__(
        self,
        request_id: str | None = None,
        *,
        timeout: float | None = None,
        deadline: float | None = None,
    ):
        self.request_id = request_id or str(uuid.uuid4())
        if timeout is not None:
            deadline = time.monotonic() + timeout
        self._deadline = deadline
        self._cancelled = threading.Event()
        self._lock = threading.Lock()
        self._callbacks: list[Callable[[], None]] = []

    @property
    def deadline(self) -> float | None:
        return self._deadline

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    @property
    def expired(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    @property
    def done(self) -> bool:
        return self.cancelled or self.expired

    def remaining_ms(self) -> int | None:
        """Milliseconds until the deadline, or None when there is none."""
        if self._deadline is None:
            return None
        return max(0, int((self._deadline - time.monotonic()) * 1000))

    def cancel(self) -> None:
        """Cancel the context and abort any watched in-flight statement."""
        with self._lock:
            if self._cancelled.is_set():
                return
            self._cancelled.set()
            callbacks = list(self._callbacks)

        logger.info("Operation cancelled", request_id=self.request_id)
        for callback in callbacks:
            try:
                callback()
            except Exception:
                logger.warning(
                    "Cancel callback failed",
                    request_id=self.request_id,
                    exc_info=True,
                )

    def raise_if_cancelled(self, operation: str) -> None:
        if self.cancelled:
            raise OperationCancelledError(operation, reason="cancelled", request_id=self.request_id)
        if self.expired:
            raise OperationCancelledError(operation, reason="deadline exceeded", request_id=self.request_id)

    @contextmanager
    def watch(self, callback: Callable[[], None]) -> Iterator[None]:
        """
        Register `callback` to run if the context is cancelled while the
        block executes. Runs it immediately if already cancelled.
        """
        with self._lock:
            already = self._cancelled.is_set()
            if not already:
                self._callbacks.append(callback)
        if already:
            callback()
        try:
            yield
        finally:
            with self._lock:
                if callback in self._callbacks:
                    self._callbacks.remove(callback)

    @contextmanager
    def bind(self) -> Iterator["OperationContext"]:
        """Publish the request id to logging for the duration of the block."""
        token = request_id_var.set(self.request_id)
        try:
            yield self
        finally:
            request_id_var.reset(token)

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else "expired" if self.expired else "live"
        return f"<OperationContext({self.request_id[:8]}, {state})>"
