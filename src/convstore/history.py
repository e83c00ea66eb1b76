"""
Conversation history persistence on top of a generation-versioned object store.

Each source's history is one JSONL object keyed by the source id. Readers get
the generation they observed; writers hand it back so a concurrent update is
detected instead of overwritten. This layer never retries: combining the
caller's new messages with a changed history is the caller's decision.
"""

import logging
from collections.abc import Sequence
from typing import final

from convstore.codec import CONTENT_TYPE, decode_jsonl, encode_jsonl
from convstore.deadline import Deadline
from convstore.exceptions import (
    ConcurrentModificationError,
    HistoryEncodeError,
    HistoryParseError,
    ObjectStoreError,
    PreconditionFailedError,
    StorageReadError,
    StorageTimeoutError,
    StorageWriteError,
)
from convstore.keys import validate_source_id
from convstore.models import ConversationHistory, Message
from convstore.objectstore import ObjectStore

logger = logging.getLogger(__name__)


@final
class HistoryService:
    store: ObjectStore

    def __init__(self, store: ObjectStore) -> None:
        if store is None:  # pyright: ignore[reportUnnecessaryComparison]
            raise ValueError("HistoryService requires an object store")
        self.store = store

    def get_history(self, source_id: str, *, deadline: Deadline | None = None) -> ConversationHistory:
        """
        Returns all messages for a source in storage order with the observed generation.
        A source that was never written yields an empty history at generation 0.

        Raises:
            SourceIDValidationError: before any storage access, for unusable ids.
            HistoryParseError: if the stored history is corrupt.
            StorageReadError: if the store fails.
            StorageTimeoutError: if the deadline is exceeded.
        """
        validate_source_id(source_id)

        try:
            result = self.store.read(source_id, deadline=deadline)
        except StorageTimeoutError as e:
            raise StorageTimeoutError(f"get_history for {source_id} timed out: {e.message}") from e
        except ObjectStoreError as e:
            raise StorageReadError(f"get_history for {source_id} failed: {e.message}") from e

        if result.data is None:
            logger.debug("No history stored for %s", source_id)
            return ConversationHistory(source_id=source_id, messages=[], generation=0)

        try:
            messages = decode_jsonl(result.data, source_id)
        except HistoryParseError:
            logger.error("Stored history for %s at generation %d is corrupt", source_id, result.generation)
            raise

        logger.debug("Loaded %d messages for %s (generation %d)", len(messages), source_id, result.generation)
        return ConversationHistory(source_id=source_id, messages=messages, generation=result.generation)

    def put_history(
        self,
        source_id: str,
        messages: Sequence[Message],
        expected_generation: int,
        *,
        deadline: Deadline | None = None,
    ) -> int:
        """
        Replaces the stored history with `messages` if the stored generation still
        equals `expected_generation` (0 for a source that does not exist yet).
        Returns the new generation.

        Raises:
            SourceIDValidationError: before any storage access, for unusable ids.
            HistoryEncodeError: if a message cannot be encoded.
            ConcurrentModificationError: if another writer got there first.
            StorageWriteError: if the store fails.
            StorageTimeoutError: if the deadline is exceeded.
        """
        validate_source_id(source_id)
        try:
            data = encode_jsonl(messages)
        except HistoryEncodeError as e:
            logger.error("Refusing to store unencodable history for %s: %s", source_id, e.message)
            raise HistoryEncodeError(f"put_history for {source_id} failed: {e.message}") from e

        try:
            new_generation = self.store.write(source_id, CONTENT_TYPE, data, expected_generation, deadline=deadline)
        except PreconditionFailedError as e:
            logger.warning("Concurrent modification of %s at generation %d", source_id, expected_generation)
            raise ConcurrentModificationError(source_id, expected_generation) from e
        except StorageTimeoutError as e:
            raise StorageTimeoutError(f"put_history for {source_id} timed out: {e.message}") from e
        except ObjectStoreError as e:
            raise StorageWriteError(f"put_history for {source_id} failed: {e.message}") from e

        logger.debug(
            "Stored %d messages for %s (generation %d -> %d)",
            len(messages),
            source_id,
            expected_generation,
            new_generation,
        )
        return new_generation
