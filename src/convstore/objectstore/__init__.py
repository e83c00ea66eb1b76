from .base import ABSENT, ObjectStore, ReadResult
from .local import LocalObjectStore
from .memory import InMemoryObjectStore
from .timeout import DEFAULT_STORAGE_TIMEOUT, TimeoutObjectStore

__all__ = [
    "ABSENT",
    "DEFAULT_STORAGE_TIMEOUT",
    "InMemoryObjectStore",
    "LocalObjectStore",
    "ObjectStore",
    "ReadResult",
    "TimeoutObjectStore",
]
