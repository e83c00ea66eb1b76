from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import timedelta
from types import TracebackType
from typing import Self

from msgspec import Struct

from convstore.deadline import Deadline
from convstore.exceptions import StorageTimeoutError


class ReadResult(Struct, frozen=True):
    """
    Outcome of a read. `data` is None when the object does not exist, in which
    case `generation` is 0.
    """

    data: bytes | None
    generation: int

    @property
    def exists(self) -> bool:
        return self.data is not None


ABSENT = ReadResult(data=None, generation=0)


class ObjectStore(ABC):
    """
    Byte-level object store with generation-based compare-and-swap.

    Generations are per key, start at 0 for a missing object and strictly
    increase with every successful write.
    """

    @abstractmethod
    def read(self, key: str, *, deadline: Deadline | None = None) -> ReadResult:
        """Returns the object's bytes and generation, or ABSENT if it does not exist."""
        ...

    @abstractmethod
    def write(
        self,
        key: str,
        content_type: str,
        data: bytes,
        expected_generation: int,
        *,
        deadline: Deadline | None = None,
    ) -> int:
        """
        Stores data only if the current generation equals expected_generation
        (0 meaning "must not exist yet") and returns the new generation.

        Raises:
            PreconditionFailedError: if the object changed since expected_generation.
            ObjectStoreError: on any other storage failure.
        """
        ...

    @abstractmethod
    def get_signed_url(
        self,
        key: str,
        method: str,
        ttl: timedelta,
        *,
        deadline: Deadline | None = None,
    ) -> str:
        """Issues a time-limited URL for direct blob access."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Releases client resources. Safe to call more than once."""
        ...

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


def check_deadline(deadline: Deadline | None, operation: str, key: str) -> None:
    """Fails fast when the caller's deadline has already passed."""
    if deadline is not None and deadline.expired:
        raise StorageTimeoutError(f"Deadline exceeded before {operation} of {key}")


def check_expected_generation(expected_generation: int) -> None:
    if expected_generation < 0:
        raise ValueError(f"expected_generation must be non-negative, got {expected_generation}")
