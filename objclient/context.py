"""
Cancellable operation context

Every object client operation takes an OperationContext as its first argument.
A context can be cancelled explicitly, can carry a deadline, and cancels all of
its derived contexts when it is cancelled itself. Backends and stream watchdogs
observe the same context, so every cancellation source converges on one signal.

Derived contexts must be cancelled once the work they guard is finished, either
explicitly or by using them as a context manager, otherwise they stay registered
in their parent until the parent is cancelled.
"""

import logging
import threading
import time
from typing import Callable

from .exceptions import StorageCanceledError

logger = logging.getLogger(__name__)

CANCELED_REASON = "operation canceled"
DEADLINE_REASON = "deadline exceeded"


class OperationContext:
    """
    Cancellable, deadline-bearing context of one or more storage operations.

    Thread-safe: it may be cancelled from any thread while other threads wait on it.

    Example:
        >>> ctx = OperationContext.background()
        >>> with ctx.withTimeout(10) as callCtx:
        ...     client.exist(callCtx, "some/key")
    """

    def __init__(self, parent: "OperationContext | None" = None, deadline: float | None = None):
        """
        Initialize a context.

        Args:
            parent: Parent context, its cancellation propagates to this one
            deadline: Absolute time.monotonic() value after which the context is cancelled
        """
        if parent is not None and parent.deadline is not None:
            deadline = parent.deadline if deadline is None else min(deadline, parent.deadline)

        self.deadline = deadline
        self._lock = threading.Lock()
        self._done = threading.Event()
        self._reason: str | None = None
        self._callbacks: dict[int, Callable[[], None]] = {}
        self._nextCallbackId = 0
        self._timer: threading.Timer | None = None
        self._detach: Callable[[], None] | None = None

        if parent is not None:
            self._detach = parent.addCallback(lambda: self._cancel(parent._reason or CANCELED_REASON))

        if deadline is not None and not self._done.is_set():
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                self._cancel(DEADLINE_REASON)
            else:
                self._timer = threading.Timer(remaining, self._cancel, args=(DEADLINE_REASON,))
                self._timer.daemon = True
                self._timer.start()

    @classmethod
    def background(cls) -> "OperationContext":
        """Get a new root context which is never cancelled unless cancel() is called."""
        return cls()

    def withCancel(self) -> "OperationContext":
        """Derive a child context which can be cancelled independently."""
        return OperationContext(parent=self)

    def withTimeout(self, seconds: float) -> "OperationContext":
        """Derive a child context which is cancelled after the given number of seconds."""
        return OperationContext(parent=self, deadline=time.monotonic() + seconds)

    def cancel(self) -> None:
        """Cancel the context and all derived contexts. Idempotent."""
        self._cancel(CANCELED_REASON)

    def _cancel(self, reason: str) -> None:
        with self._lock:
            if self._reason is not None:
                return
            self._reason = reason
            callbacks = list(self._callbacks.values())
            self._callbacks.clear()
            self._done.set()

        if self._timer is not None:
            self._timer.cancel()
        if self._detach is not None:
            self._detach()

        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                logger.warning(f"Cancellation callback failed: {e}")

    @property
    def cancelled(self) -> bool:
        return self._done.is_set()

    def err(self) -> StorageCanceledError | None:
        """
        Get the cancellation error of the context.

        Returns:
            None while the context is alive, a fresh StorageCanceledError afterwards
        """
        if not self._done.is_set():
            return None
        return StorageCanceledError(self._reason or CANCELED_REASON)

    def raiseIfCancelled(self) -> None:
        """
        Raise StorageCanceledError if the context is cancelled.

        Raises:
            StorageCanceledError: If the context was cancelled or its deadline passed
        """
        err = self.err()
        if err is not None:
            raise err

    def remaining(self) -> float | None:
        """Get seconds left until the deadline, None if there is no deadline."""
        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the context is cancelled or the timeout expires. Returns cancelled state."""
        return self._done.wait(timeout)

    def addCallback(self, callback: Callable[[], None]) -> Callable[[], None]:
        """
        Register a callback to run once when the context gets cancelled.

        If the context is already cancelled the callback runs immediately.

        Args:
            callback: Function without arguments

        Returns:
            Function which unregisters the callback
        """
        with self._lock:
            if self._reason is None:
                callbackId = self._nextCallbackId
                self._nextCallbackId += 1
                self._callbacks[callbackId] = callback

                def remove() -> None:
                    with self._lock:
                        self._callbacks.pop(callbackId, None)

                return remove

        callback()
        return lambda: None

    def __enter__(self) -> "OperationContext":
        return self

    def __exit__(self, excType, excValue, traceback) -> None:
        self.cancel()
