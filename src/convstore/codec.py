"""
JSON Lines encoding of conversation histories.

Wire records are kept separate from the domain models so the stored format can
evolve additively: optional fields are omitted when empty, absent and null
optional fields decode identically, and unknown fields are ignored. The `role`
and `type` discriminators are mandatory and unknown values fail decoding.
"""

from collections.abc import Iterable
from datetime import UTC, datetime, timedelta

import msgspec
from msgspec import Struct

from convstore.exceptions import HistoryEncodeError, HistoryParseError
from convstore.models import (
    AssistantFileDataPart,
    AssistantMessage,
    AssistantPart,
    AssistantTextPart,
    Message,
    UserFileDataPart,
    UserMessage,
    UserPart,
    UserTextPart,
    VideoMetadata,
)

CONTENT_TYPE = "application/jsonl"

# --- Wire records ---
# Every field except the discriminators may be absent or null and then decodes
# to its zero value; empty strings are omitted on encode.

# Timestamp of a record stored without one
ZERO_TIMESTAMP = datetime(1, 1, 1, tzinfo=UTC)


class VideoMetadataRecord(Struct, frozen=True, rename="camel", omit_defaults=True):
    start_offset: timedelta | None = None
    end_offset: timedelta | None = None
    fps: float | None = None


class UserTextRecord(Struct, frozen=True, tag="text", tag_field="type", omit_defaults=True):
    text: str | None = None


class UserFileDataRecord(Struct, frozen=True, tag="file_data", tag_field="type", rename="camel", omit_defaults=True):
    storage_key: str | None = None
    mime_type: str | None = None
    display_name: str | None = None
    video_metadata: VideoMetadataRecord | None = None


class AssistantTextRecord(Struct, frozen=True, tag="text", tag_field="type", rename="camel", omit_defaults=True):
    text: str | None = None
    thought: bool | None = None
    thought_signature: str | None = None


class AssistantFileDataRecord(
    Struct, frozen=True, tag="file_data", tag_field="type", rename="camel", omit_defaults=True
):
    storage_key: str | None = None
    mime_type: str | None = None
    display_name: str | None = None


type UserPartRecord = UserTextRecord | UserFileDataRecord
type AssistantPartRecord = AssistantTextRecord | AssistantFileDataRecord


class UserRecord(Struct, frozen=True, tag="user", tag_field="role", rename="camel", omit_defaults=True):
    # Field order is the on-disk key order after the discriminator
    message_id: str | None = None
    user_id: str | None = None
    parts: list[UserPartRecord] | None = None
    timestamp: datetime | None = None


class AssistantRecord(Struct, frozen=True, tag="assistant", tag_field="role", rename="camel", omit_defaults=True):
    model_name: str | None = None
    parts: list[AssistantPartRecord] | None = None
    timestamp: datetime | None = None

type MessageRecord = UserRecord | AssistantRecord

_encoder = msgspec.json.Encoder()
_decoder = msgspec.json.Decoder(MessageRecord)

# --- Domain -> wire ---


def _user_part_to_record(part: UserPart) -> UserPartRecord:
    match part:
        case UserTextPart(text=text):
            return UserTextRecord(text=text or None)
        case UserFileDataPart(video_metadata=vm):
            return UserFileDataRecord(
                storage_key=part.storage_key or None,
                mime_type=part.mime_type or None,
                display_name=part.display_name or None,
                video_metadata=VideoMetadataRecord(
                    start_offset=vm.start_offset or None,
                    end_offset=vm.end_offset or None,
                    fps=vm.fps,
                )
                if vm is not None
                else None,
            )
        case _:
            raise HistoryEncodeError(f"Unknown user part type: {type(part).__name__}")


def _assistant_part_to_record(part: AssistantPart) -> AssistantPartRecord:
    match part:
        case AssistantTextPart():
            return AssistantTextRecord(
                text=part.text or None,
                thought=part.thought or None,
                thought_signature=part.thought_signature or None,
            )
        case AssistantFileDataPart():
            return AssistantFileDataRecord(
                storage_key=part.storage_key or None,
                mime_type=part.mime_type or None,
                display_name=part.display_name or None,
            )
        case _:
            raise HistoryEncodeError(f"Unknown assistant part type: {type(part).__name__}")


def message_to_record(message: Message) -> MessageRecord:
    # `parts` and `timestamp` are always written, even when empty
    match message:
        case UserMessage():
            return UserRecord(
                message_id=message.message_id or None,
                user_id=message.user_id or None,
                parts=[_user_part_to_record(p) for p in message.parts],
                timestamp=message.timestamp,
            )
        case AssistantMessage():
            return AssistantRecord(
                model_name=message.model_name or None,
                parts=[_assistant_part_to_record(p) for p in message.parts],
                timestamp=message.timestamp,
            )
        case _:
            raise HistoryEncodeError(f"Unknown message type: {type(message).__name__}")


# --- Wire -> domain ---


def _user_part_from_record(record: UserPartRecord) -> UserPart:
    match record:
        case UserTextRecord():
            return UserTextPart(text=record.text or "")
        case UserFileDataRecord(video_metadata=vm):
            return UserFileDataPart(
                storage_key=record.storage_key or "",
                mime_type=record.mime_type or "",
                display_name=record.display_name or "",
                video_metadata=VideoMetadata(
                    start_offset=vm.start_offset or timedelta(0),
                    end_offset=vm.end_offset or timedelta(0),
                    fps=vm.fps,
                )
                if vm is not None
                else None,
            )


def _assistant_part_from_record(record: AssistantPartRecord) -> AssistantPart:
    match record:
        case AssistantTextRecord():
            return AssistantTextPart(
                text=record.text or "",
                thought=bool(record.thought),
                thought_signature=record.thought_signature or "",
            )
        case AssistantFileDataRecord():
            return AssistantFileDataPart(
                storage_key=record.storage_key or "",
                mime_type=record.mime_type or "",
                display_name=record.display_name or "",
            )


def record_to_message(record: MessageRecord) -> Message:
    match record:
        case UserRecord():
            return UserMessage(
                message_id=record.message_id or "",
                user_id=record.user_id or "",
                parts=[_user_part_from_record(p) for p in record.parts or []],
                timestamp=record.timestamp or ZERO_TIMESTAMP,
            )
        case AssistantRecord():
            return AssistantMessage(
                model_name=record.model_name or "",
                parts=[_assistant_part_from_record(p) for p in record.parts or []],
                timestamp=record.timestamp or ZERO_TIMESTAMP,
            )


# --- Public API ---


def encode_message(message: Message) -> bytes:
    """
    Compact single-line JSON for one message, without the trailing newline.
    """
    try:
        return _encoder.encode(message_to_record(message))
    except (msgspec.EncodeError, TypeError, OverflowError) as e:
        raise HistoryEncodeError(f"Failed to encode {type(message).__name__}: {e}") from e


def decode_message(line: str | bytes, source_key: str = "<memory>", line_number: int | None = None) -> Message:
    """
    Parse a single JSON line into a message.
    """
    try:
        return record_to_message(_decoder.decode(line))
    except msgspec.DecodeError as e:
        raise HistoryParseError(source_key, e, line_number) from e


def encode_jsonl(messages: Iterable[Message]) -> bytes:
    """
    Encodes messages as JSON Lines in the given order. Every record, including
    the last one, is followed by a newline.
    """
    buf = bytearray()
    for message in messages:
        buf += encode_message(message)
        buf += b"\n"
    return bytes(buf)


def decode_jsonl(data: bytes, source_key: str) -> list[Message]:
    """
    Decodes JSON Lines into messages in file order.

    Blank and whitespace-only lines are skipped. Any other malformed line fails
    the whole decode; partially decoded histories are never returned.
    """
    messages: list[Message] = []
    for line_number, line in enumerate(data.split(b"\n"), start=1):
        if not line.strip():
            continue
        messages.append(decode_message(line, source_key, line_number))
    return messages
