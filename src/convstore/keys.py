import regex

from convstore.exceptions import SourceIDValidationError

# Path separators, parent-directory sequences or control characters anywhere in the id
_UNSAFE_KEY_PATTERN = regex.compile(r"[/\\\p{Cc}]|\.\.")


def validate_source_id(source_id: str) -> str:
    """
    Rejects source identifiers that are empty or could escape the object-store
    key namespace. Returns the identifier unchanged; it is used verbatim as the
    storage key.

    Raises:
        SourceIDValidationError: if the identifier is not usable as a key.
    """
    if not isinstance(source_id, str):  # pyright: ignore[reportUnnecessaryIsInstance]
        raise SourceIDValidationError(source_id, "must be a string")
    if not source_id.strip():
        raise SourceIDValidationError(source_id, "must not be empty")
    if _UNSAFE_KEY_PATTERN.search(source_id):
        raise SourceIDValidationError(source_id, "must not contain path separators, control characters or '..'")
    return source_id
