"""Request-scoped deadline."""

import time
from typing import Callable, Optional

from .errors import DeadlineExceededError


class Deadline:
    """Wall-clock budget shared by every upstream call of one request."""

    def __init__(
        self,
        seconds: Optional[float],
        clock: Callable[[], float] = time.monotonic,
    ):
        self.seconds = seconds
        self._clock = clock
        self._expires_at = None if seconds is None else clock() + seconds

    @classmethod
    def unbounded(cls) -> "Deadline":
        return cls(None)

    def remaining(self) -> Optional[float]:
        """Seconds left, or None for an unbounded deadline."""
        if self._expires_at is None:
            return None
        return max(0.0, self._expires_at - self._clock())

    @property
    def expired(self) -> bool:
        return self._expires_at is not None and self._clock() >= self._expires_at

    def check(self) -> None:
        """Raise DeadlineExceededError once the budget is spent."""
        if self.expired:
            raise DeadlineExceededError(self.seconds)
