"""
Versioned, append-only conversation history stored as JSON Lines in an object store.

Provides:
- Message models (user / assistant messages with text and file parts)
- JSONL codec with additive schema evolution
- Object store backends with generation-based compare-and-swap
- HistoryService for optimistic-concurrency reads and writes
"""

from .appender import append_messages
from .codec import decode_jsonl, encode_jsonl
from .deadline import Deadline
from .exceptions import (
    ConcurrentModificationError,
    ConvstoreError,
    HistoryEncodeError,
    HistoryParseError,
    SourceIDValidationError,
    StorageReadError,
    StorageTimeoutError,
    StorageWriteError,
)
from .history import HistoryService
from .keys import validate_source_id
from .models import (
    AssistantFileDataPart,
    AssistantMessage,
    AssistantTextPart,
    ConversationHistory,
    Message,
    UserFileDataPart,
    UserMessage,
    UserTextPart,
    VideoMetadata,
)

__all__ = [
    "AssistantFileDataPart",
    "AssistantMessage",
    "AssistantTextPart",
    "ConcurrentModificationError",
    "ConversationHistory",
    "ConvstoreError",
    "Deadline",
    "HistoryEncodeError",
    "HistoryParseError",
    "HistoryService",
    "Message",
    "SourceIDValidationError",
    "StorageReadError",
    "StorageTimeoutError",
    "StorageWriteError",
    "UserFileDataPart",
    "UserMessage",
    "UserTextPart",
    "VideoMetadata",
    "append_messages",
    "decode_jsonl",
    "encode_jsonl",
    "validate_source_id",
]
