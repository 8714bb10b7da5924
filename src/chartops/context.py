"""
Cancellation and deadline handling for calls that talk to a cluster.

A `Context` is handed down from the caller through the install/uninstall engine into every cluster gateway call. It can
be cancelled explicitly from another thread, or it expires when its deadline passes. Child contexts derived with
`Context.with_timeout()` are cancelled together with their parent.
"""

from dataclasses import dataclass
import threading
import time


@dataclass
class ContextCancelledError(Exception):
    """
    Raised when an operation is attempted on, or interrupted by, a cancelled or expired context.
    """

    reason: str

    def __str__(self) -> str:
        return f"context {self.reason}"


class Context:
    """
    A cancellable execution context with an optional deadline.
    """

    CANCELLED = "cancelled"
    DEADLINE_EXCEEDED = "deadline exceeded"

    def __init__(self, deadline: float | None = None, parent: "Context | None" = None) -> None:
        """
        Args:
            deadline: An absolute point in time on the `time.monotonic()` clock after which the context is expired.
            parent: A parent context. Cancelling the parent cancels this context, and the effective deadline is the
                earlier of the two.
        """

        if parent is not None and parent.deadline is not None:
            deadline = parent.deadline if deadline is None else min(deadline, parent.deadline)

        self._event = threading.Event()
        self._parent = parent
        self.deadline = deadline

    def __repr__(self) -> str:
        return f"Context(deadline={self.deadline!r}, cancelled={self.cancelled})"

    @staticmethod
    def background() -> "Context":
        """
        Return a new context that is never cancelled unless `cancel()` is called on it.
        """

        return Context()

    def with_timeout(self, seconds: float) -> "Context":
        """
        Derive a child context that expires after *seconds*.
        """

        return Context(deadline=time.monotonic() + seconds, parent=self)

    def cancel(self) -> None:
        self._event.set()

    @property
    def reason(self) -> str | None:
        """
        Returns why the context is done, or `None` if it is still active.
        """

        if self._event.is_set():
            return self.CANCELLED
        if self._parent is not None and (reason := self._parent.reason) is not None:
            return reason
        if self.deadline is not None and time.monotonic() >= self.deadline:
            return self.DEADLINE_EXCEEDED
        return None

    @property
    def cancelled(self) -> bool:
        return self.reason is not None

    def remaining(self) -> float | None:
        """
        Returns the number of seconds until the deadline, or `None` if the context has no deadline.
        """

        if self.deadline is None:
            return None
        return max(0.0, self.deadline - time.monotonic())

    def check(self) -> None:
        """
        Raises:
            ContextCancelledError: If the context is cancelled or expired.
        """

        if (reason := self.reason) is not None:
            raise ContextCancelledError(reason)

    def wait(self, timeout: float) -> bool:
        """
        Block for up to *timeout* seconds or until the context is cancelled. Returns `True` if the context is done.
        """

        remaining = self.remaining()
        if remaining is not None:
            timeout = min(timeout, remaining)
        self._event.wait(timeout)
        return self.cancelled
