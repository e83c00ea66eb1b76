import time
from datetime import timedelta

from msgspec import Struct


class Deadline(Struct, frozen=True):
    """
    Absolute point on the monotonic clock after which an operation must give up.

    Deadlines are passed explicitly into every storage call; adapters turn the
    remaining time into the transport's own timeout.
    """

    expires_at: float

    @classmethod
    def after(cls, timeout: float | timedelta) -> "Deadline":
        seconds = timeout.total_seconds() if isinstance(timeout, timedelta) else timeout
        return cls(expires_at=time.monotonic() + seconds)

    def remaining(self) -> float:
        """Seconds left, never negative."""
        return max(0.0, self.expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        return time.monotonic() >= self.expires_at

    def earliest(self, other: "Deadline | None") -> "Deadline":
        if other is None or self.expires_at <= other.expires_at:
            return self
        return other
