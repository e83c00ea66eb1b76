import logging
import threading
from datetime import timedelta
from typing import final, override
from urllib.parse import quote

from convstore.deadline import Deadline
from convstore.exceptions import ObjectStoreError, PreconditionFailedError

from .base import ABSENT, ObjectStore, ReadResult, check_deadline, check_expected_generation

logger = logging.getLogger(__name__)


@final
class InMemoryObjectStore(ObjectStore):
    """
    Object store kept in a dictionary.

    Useful for testing and development. Generations count 1, 2, 3, ... per key.
    Data is lost when the process exits.
    """

    def __init__(self) -> None:
        self._objects: dict[str, tuple[bytes, str, int]] = {}
        self._lock = threading.Lock()
        self._closed = False

    @override
    def read(self, key: str, *, deadline: Deadline | None = None) -> ReadResult:
        self._ensure_open()
        check_deadline(deadline, "read", key)
        with self._lock:
            entry = self._objects.get(key)
        if entry is None:
            return ABSENT
        data, _, generation = entry
        return ReadResult(data=data, generation=generation)

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
        self._ensure_open()
        check_expected_generation(expected_generation)
        check_deadline(deadline, "write", key)
        with self._lock:
            entry = self._objects.get(key)
            current = entry[2] if entry is not None else 0
            if current != expected_generation:
                raise PreconditionFailedError(key, expected_generation)
            new_generation = current + 1
            self._objects[key] = (bytes(data), content_type, new_generation)
        logger.debug("Stored %d bytes at %s (generation %d)", len(data), key, new_generation)
        return new_generation

    @override
    def get_signed_url(
        self,
        key: str,
        method: str,
        ttl: timedelta,
        *,
        deadline: Deadline | None = None,
    ) -> str:
        self._ensure_open()
        check_deadline(deadline, "get_signed_url", key)
        return f"memory://{quote(key)}?method={method.upper()}&ttl={int(ttl.total_seconds())}"

    @override
    def close(self) -> None:
        self._closed = True

    def content_type_of(self, key: str) -> str | None:
        with self._lock:
            entry = self._objects.get(key)
        return entry[1] if entry is not None else None

    def _ensure_open(self) -> None:
        if self._closed:
            raise ObjectStoreError("Object store is closed")
