import logging
from collections.abc import Callable
from datetime import timedelta
from typing import final, override

from convstore.deadline import Deadline
from convstore.exceptions import ObjectStoreError, PreconditionFailedError, StorageTimeoutError

from .base import ObjectStore, ReadResult

logger = logging.getLogger(__name__)

# Storage should add at most this much to the handling of a single message
DEFAULT_STORAGE_TIMEOUT = timedelta(milliseconds=100)


@final
class TimeoutObjectStore(ObjectStore):
    """
    Bounds every call to the wrapped store by min(caller deadline, budget).

    The effective deadline is handed to the inner store so the network call
    itself is cut off; nothing keeps running after the wrapper returns.
    """

    inner: ObjectStore
    timeout: timedelta

    def __init__(self, inner: ObjectStore, timeout: timedelta | None = None) -> None:
        if timeout is None or timeout == timedelta(0):
            timeout = DEFAULT_STORAGE_TIMEOUT
        if timeout < timedelta(0):
            raise ValueError(f"timeout must be positive, got {timeout}")
        self.inner = inner
        self.timeout = timeout

    @override
    def read(self, key: str, *, deadline: Deadline | None = None) -> ReadResult:
        return self._bounded("read", key, deadline, lambda d: self.inner.read(key, deadline=d))

    @override
    def write(
        self,
        key: str,
        content_type: str,
        data: bytes,
        expected_generation: int,
        *,
        deadline: Deadline | None = None,
    ) -> int:
        return self._bounded(
            "write",
            key,
            deadline,
            lambda d: self.inner.write(key, content_type, data, expected_generation, deadline=d),
        )

    @override
    def get_signed_url(
        self,
        key: str,
        method: str,
        ttl: timedelta,
        *,
        deadline: Deadline | None = None,
    ) -> str:
        return self._bounded(
            "get_signed_url",
            key,
            deadline,
            lambda d: self.inner.get_signed_url(key, method, ttl, deadline=d),
        )

    @override
    def close(self) -> None:
        self.inner.close()

    def _bounded[T](self, operation: str, key: str, deadline: Deadline | None, call: Callable[[Deadline], T]) -> T:
        effective = Deadline.after(self.timeout).earliest(deadline)
        try:
            return call(effective)
        except PreconditionFailedError:
            raise
        except (StorageTimeoutError, TimeoutError) as e:
            logger.warning("Storage %s of %s timed out after %s", operation, key, self.timeout)
            raise StorageTimeoutError(f"{operation} of {key} timed out after {self.timeout}") from e
        except ObjectStoreError as e:
            # A transport that reports cancellation as a generic failure
            if not effective.expired:
                raise
            logger.warning("Storage %s of %s failed after its deadline: %s", operation, key, e)
            raise StorageTimeoutError(f"{operation} of {key} timed out after {self.timeout}") from e
