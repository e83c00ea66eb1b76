import logging
import threading
from datetime import timedelta
from pathlib import Path
from typing import final, override

from convstore.atomic_io import atomic_write_bytes
from convstore.deadline import Deadline
from convstore.exceptions import ObjectStoreError, PreconditionFailedError

from .base import ABSENT, ObjectStore, ReadResult, check_deadline, check_expected_generation

logger = logging.getLogger(__name__)


@final
class LocalObjectStore(ObjectStore):
    """
    Filesystem-backed object store for local development and admin tooling.

    Layout:
    - <root>/objects/<key>: object bytes
    - <root>/generations/<key>: decimal generation of the object

    Compare-and-swap is guarded by an in-process lock only; two processes
    writing the same root concurrently are not detected.
    """

    root: Path

    def __init__(self, root: Path) -> None:
        self.root = root.resolve()
        self._objects_dir = self.root / "objects"
        self._generations_dir = self.root / "generations"
        self._lock = threading.Lock()
        self._closed = False

    @override
    def read(self, key: str, *, deadline: Deadline | None = None) -> ReadResult:
        self._ensure_open()
        check_deadline(deadline, "read", key)
        object_path, generation_path = self._paths_for(key)
        with self._lock:
            if not object_path.is_file():
                return ABSENT
            try:
                data = object_path.read_bytes()
                generation = self._read_generation(generation_path)
            except OSError as e:
                raise ObjectStoreError(f"Failed to read {key}: {e}") from e
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
        object_path, generation_path = self._paths_for(key)
        with self._lock:
            try:
                current = self._read_generation(generation_path) if object_path.is_file() else 0
                if current != expected_generation:
                    raise PreconditionFailedError(key, expected_generation)
                new_generation = current + 1
                # Generation first: after a crash in between, writers holding the old generation still conflict
                atomic_write_bytes(generation_path, str(new_generation))
                atomic_write_bytes(object_path, data)
            except OSError as e:
                raise ObjectStoreError(f"Failed to write {key}: {e}") from e
        logger.debug("Wrote %d bytes (%s) to %s, generation %d", len(data), content_type, object_path, new_generation)
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
        object_path, _ = self._paths_for(key)
        return object_path.as_uri()

    @override
    def close(self) -> None:
        self._closed = True

    # ---------- Internal ----------

    def _paths_for(self, key: str) -> tuple[Path, Path]:
        if "\x00" in key:
            raise ObjectStoreError(f"Key contains a null byte: {key!r}")
        object_path = (self._objects_dir / key).resolve()
        generation_path = (self._generations_dir / key).resolve()
        if not object_path.is_relative_to(self._objects_dir) or not generation_path.is_relative_to(
            self._generations_dir
        ):
            raise ObjectStoreError(f"Key escapes the store root: {key!r}")
        if object_path == self._objects_dir:
            raise ObjectStoreError(f"Key does not name an object: {key!r}")
        return object_path, generation_path

    def _read_generation(self, generation_path: Path) -> int:
        try:
            return int(generation_path.read_text(encoding="utf-8").strip())
        except FileNotFoundError:
            # Object written by hand without a generation file
            return 1
        except ValueError as e:
            raise ObjectStoreError(f"Corrupt generation file {generation_path}: {e}") from e

    def _ensure_open(self) -> None:
        if self._closed:
            raise ObjectStoreError("Object store is closed")
