class ConvstoreError(Exception):
    """Base exception for all expected convstore errors."""

    message: str
    exit_code: int

    def __init__(self, message: str, exit_code: int = 1):
        super().__init__(message)
        self.message = message
        self.exit_code = exit_code


class ConfigurationError(ConvstoreError):
    """Configuration related errors (env vars, CLI options)."""


class SourceIDValidationError(ConvstoreError):
    """A conversation source identifier is empty or could escape the key namespace."""

    def __init__(self, source_id: object, reason: str):
        super().__init__(f"Invalid source id {source_id!r}: {reason}", exit_code=2)
        self.source_id = source_id
        self.reason = reason


class StorageReadError(ConvstoreError):
    """Reading history failed for a reason other than the object being absent."""


class HistoryParseError(StorageReadError):
    """Stored history bytes could not be decoded."""

    def __init__(self, source_key: str, details: object, line_number: int | None = None):
        location = f"{source_key}:{line_number}" if line_number is not None else source_key
        super().__init__(f"Corrupt history in {location}: {details}")
        self.source_key = source_key
        self.line_number = line_number
        self.details = details


class StorageWriteError(ConvstoreError):
    """Writing history failed."""


class ConcurrentModificationError(StorageWriteError):
    """The stored generation no longer matches the one the caller read."""

    def __init__(self, source_id: str, expected_generation: int):
        super().__init__(
            f"History for {source_id} was modified concurrently (expected generation {expected_generation})",
            exit_code=3,
        )
        self.source_id = source_id
        self.expected_generation = expected_generation


class HistoryEncodeError(StorageWriteError):
    """A message could not be encoded. Indicates a programming error, not an I/O failure."""


class StorageTimeoutError(ConvstoreError):
    """A storage operation exceeded its effective deadline."""

    def __init__(self, message: str):
        super().__init__(message, exit_code=4)


class ObjectStoreError(ConvstoreError):
    """Low-level object store failure."""


class PreconditionFailedError(ObjectStoreError):
    """A conditional write found a different generation than expected."""

    def __init__(self, key: str, expected_generation: int):
        super().__init__(f"Generation precondition failed for {key} (expected {expected_generation})")
        self.key = key
        self.expected_generation = expected_generation
