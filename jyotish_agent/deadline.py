"""
Request deadlines.

A Deadline is created once per request from the caller's timeout and
handed to everything that makes a remote call, so an abandoned request
stops issuing work as soon as its budget is spent.
"""

import time
from dataclasses import dataclass

from jyotish_agent.errors import DeadlineExceeded


@dataclass(frozen=True)
class Deadline:
    """A point on the monotonic clock after which the request is abandoned."""
    expires_at: float

    @classmethod
    def after(cls, seconds: float) -> "Deadline":
        return cls(time.monotonic() + seconds)

    def remaining(self) -> float:
        return max(0.0, self.expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        return time.monotonic() >= self.expires_at

    def bound(self, timeout: float | None) -> float:
        """The smaller of a call's own timeout and the time left."""
        remaining = self.remaining()
        return remaining if timeout is None else min(timeout, remaining)

    def check(self, what: str = "request") -> None:
        """
        Raise if the deadline has passed.

        Raises:
            DeadlineExceeded: When no time is left
        """
        if self.expired:
            raise DeadlineExceeded(f"Deadline exceeded before {what} could finish")


def bound_timeout(deadline: Deadline | None, timeout: float | None) -> float | None:
    """Apply an optional deadline to an optional timeout."""
    if deadline is None:
        return timeout
    return deadline.bound(timeout)
