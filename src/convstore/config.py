# pyright: standard
"""
Environment-driven configuration.

Recognized variables:
- CONVSTORE_BACKEND: "gcs", "local" (default) or "memory"
- CONVSTORE_BUCKET: GCS bucket name (required for "gcs")
- CONVSTORE_PROJECT: GCP project for the storage client
- CONVSTORE_LOCAL_ROOT: root directory of the local backend (default ".convstore")
- CONVSTORE_STORAGE_TIMEOUT_MS: per-operation storage budget (default 100)
"""

import os
from collections.abc import Mapping
from datetime import timedelta
from pathlib import Path
from typing import Literal

import msgspec
from msgspec import Struct

from convstore.exceptions import ConfigurationError
from convstore.objectstore import DEFAULT_STORAGE_TIMEOUT, InMemoryObjectStore, LocalObjectStore, ObjectStore
from convstore.objectstore.timeout import TimeoutObjectStore
from convstore.serialization import convert_settings

ENV_PREFIX = "CONVSTORE_"

type Backend = Literal["gcs", "local", "memory"]


class StoreConfig(Struct, frozen=True):
    backend: Backend = "local"
    bucket: str | None = None
    project: str | None = None
    local_root: str = ".convstore"
    storage_timeout_ms: int = int(DEFAULT_STORAGE_TIMEOUT.total_seconds() * 1000)

    def __post_init__(self) -> None:
        if self.storage_timeout_ms <= 0:
            raise ValueError("storage_timeout_ms must be positive")

    @property
    def storage_timeout(self) -> timedelta:
        return timedelta(milliseconds=self.storage_timeout_ms)


def load_config(environ: Mapping[str, str] | None = None, **overrides: object) -> StoreConfig:
    """
    Builds a StoreConfig from CONVSTORE_* variables. Keyword overrides that are
    not None (typically CLI options) take precedence over the environment.
    """
    env = os.environ if environ is None else environ
    raw: dict[str, object] = {
        key[len(ENV_PREFIX) :].lower(): value for key, value in env.items() if key.startswith(ENV_PREFIX) and value
    }
    raw.update({key: value for key, value in overrides.items() if value is not None})
    raw = {key: value for key, value in raw.items() if key in StoreConfig.__struct_fields__}

    try:
        config = convert_settings(raw, StoreConfig)
    except (msgspec.ValidationError, ValueError) as e:
        raise ConfigurationError(f"Invalid storage configuration: {e}") from e

    if config.backend == "gcs" and not config.bucket:
        raise ConfigurationError(f"{ENV_PREFIX}BUCKET must be set when using the gcs backend")
    return config


def open_store(config: StoreConfig) -> ObjectStore:
    """Creates the configured backend, bounded by the configured storage timeout."""
    inner: ObjectStore
    match config.backend:
        case "gcs":
            from convstore.objectstore.gcs import GCSObjectStore

            assert config.bucket is not None
            inner = GCSObjectStore.from_bucket_name(config.bucket, project=config.project)
        case "local":
            inner = LocalObjectStore(Path(config.local_root))
        case "memory":
            inner = InMemoryObjectStore()
    return TimeoutObjectStore(inner, config.storage_timeout)
