"""
Google Cloud Storage adapter.

Generations map directly onto GCS object generations, and conditional writes
use `if_generation_match` (0 meaning "object must not exist"). Library-level
retries are disabled: the caller's deadline is the only bound on latency and
concurrent-modification handling belongs to the caller.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING, final, override

from google.api_core import exceptions as api_exceptions
from google.auth import exceptions as auth_exceptions
from requests import exceptions as requests_exceptions

from convstore.deadline import Deadline
from convstore.exceptions import ObjectStoreError, PreconditionFailedError, StorageTimeoutError

from .base import ABSENT, ObjectStore, ReadResult, check_deadline, check_expected_generation

if TYPE_CHECKING:
    from google.cloud.storage import Bucket, Client

logger = logging.getLogger(__name__)

# Used when the caller supplies no deadline
DEFAULT_REQUEST_TIMEOUT = 60.0
MIN_REQUEST_TIMEOUT = 0.001


def _timeout_for(deadline: Deadline | None) -> float:
    if deadline is None:
        return DEFAULT_REQUEST_TIMEOUT
    # Transports reject a zero timeout
    return max(deadline.remaining(), MIN_REQUEST_TIMEOUT)


@final
class GCSObjectStore(ObjectStore):
    """
    Object store backed by a single GCS bucket.

    The client behind a caller-supplied bucket is managed externally and never
    closed here; stores created through `from_bucket_name` own their client.
    """

    def __init__(self, bucket: Bucket, *, owned_client: Client | None = None) -> None:
        self._bucket = bucket
        self._client = owned_client
        self._closed = False

    @classmethod
    def from_bucket_name(cls, bucket_name: str, project: str | None = None) -> GCSObjectStore:
        from google.cloud import storage

        client = storage.Client(project=project)
        return cls(client.bucket(bucket_name), owned_client=client)

    @override
    def read(self, key: str, *, deadline: Deadline | None = None) -> ReadResult:
        self._ensure_open()
        check_deadline(deadline, "read", key)
        try:
            blob = self._bucket.get_blob(key, timeout=_timeout_for(deadline), retry=None)
            if blob is None:
                return ABSENT
            generation = int(blob.generation)

            check_deadline(deadline, "read", key)
            # Pin the download to the generation we just observed
            data = blob.download_as_bytes(
                if_generation_match=generation,
                timeout=_timeout_for(deadline),
                retry=None,
            )
        except api_exceptions.NotFound:
            # Deleted between metadata fetch and download
            return ABSENT
        except api_exceptions.PreconditionFailed as e:
            raise ObjectStoreError(f"{key} changed while it was being read") from e
        except requests_exceptions.Timeout as e:
            raise StorageTimeoutError(f"Read of {key} timed out") from e
        except (
            api_exceptions.GoogleAPICallError,
            auth_exceptions.GoogleAuthError,
            requests_exceptions.RequestException,
        ) as e:
            raise ObjectStoreError(f"Failed to read {key}: {e}") from e

        logger.debug("Read %d bytes from gs://%s/%s (generation %d)", len(data), self._bucket.name, key, generation)
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
        blob = self._bucket.blob(key)
        try:
            blob.upload_from_string(
                data,
                content_type=content_type,
                if_generation_match=expected_generation,
                timeout=_timeout_for(deadline),
                retry=None,
            )
        except api_exceptions.PreconditionFailed as e:
            raise PreconditionFailedError(key, expected_generation) from e
        except requests_exceptions.Timeout as e:
            raise StorageTimeoutError(f"Write of {key} timed out") from e
        except (
            api_exceptions.GoogleAPICallError,
            auth_exceptions.GoogleAuthError,
            requests_exceptions.RequestException,
        ) as e:
            raise ObjectStoreError(f"Failed to write {key}: {e}") from e

        new_generation = int(blob.generation)
        logger.debug(
            "Wrote %d bytes to gs://%s/%s (generation %d -> %d)",
            len(data),
            self._bucket.name,
            key,
            expected_generation,
            new_generation,
        )
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
        blob = self._bucket.blob(key)
        try:
            return blob.generate_signed_url(version="v4", expiration=ttl, method=method.upper())
        except (auth_exceptions.GoogleAuthError, AttributeError) as e:
            # Credentials without a private key, such as user ADC, raise AttributeError
            raise ObjectStoreError(f"Failed to sign URL for {key}: {e}") from e

    @override
    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._client is not None:
            self._client.close()

    def _ensure_open(self) -> None:
        if self._closed:
            raise ObjectStoreError("Object store is closed")
