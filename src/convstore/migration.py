from __future__ import annotations

import logging
from datetime import datetime
from typing import Literal

import msgspec
from msgspec import Struct

from convstore.exceptions import HistoryParseError, ObjectStoreError, StorageReadError
from convstore.history import HistoryService
from convstore.keys import validate_source_id
from convstore.models import (
    AssistantMessage,
    AssistantTextPart,
    ConversationHistory,
    Message,
    UserMessage,
    UserTextPart,
)

logger = logging.getLogger(__name__)

LEGACY_SUFFIX = ".jsonl"

# --- Legacy Schema (Migration Source) ---


class LegacyMessage(Struct, frozen=True, rename="pascal"):
    """Text-only record written before messages carried parts and discriminated kinds."""

    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime


_legacy_decoder = msgspec.json.Decoder(LegacyMessage)


def legacy_key_for(source_id: str) -> str:
    return f"{source_id}{LEGACY_SUFFIX}"


def parse_legacy_jsonl(data: bytes, source_key: str) -> list[LegacyMessage]:
    records: list[LegacyMessage] = []
    for line_number, line in enumerate(data.split(b"\n"), start=1):
        if not line.strip():
            continue
        try:
            records.append(_legacy_decoder.decode(line))
        except msgspec.DecodeError as e:
            raise HistoryParseError(source_key, e, line_number) from e
    return records


def convert_legacy_message(record: LegacyMessage, user_id: str, model_name: str) -> Message:
    match record.role:
        case "user":
            return UserMessage(user_id=user_id, parts=[UserTextPart(text=record.content)], timestamp=record.timestamp)
        case "assistant":
            return AssistantMessage(
                model_name=model_name,
                parts=[AssistantTextPart(text=record.content)],
                timestamp=record.timestamp,
            )


def migrate_legacy_history(
    service: HistoryService,
    source_id: str,
    *,
    legacy_user_id: str = "",
    legacy_model_name: str = "unknown",
) -> ConversationHistory | None:
    """
    Converts the legacy history stored at `<source_id>.jsonl` into the current
    format under `<source_id>`.

    The new object is only ever created, never replaced: if a current-format
    history already exists, or no legacy history is found, nothing is written
    and None is returned.
    """
    validate_source_id(source_id)

    current = service.get_history(source_id)
    if current.generation != 0:
        logger.info("%s already has a current-format history (generation %d); skipping", source_id, current.generation)
        return None

    legacy_key = legacy_key_for(source_id)
    try:
        legacy = service.store.read(legacy_key)
    except ObjectStoreError as e:
        raise StorageReadError(f"Reading legacy history {legacy_key} failed: {e.message}") from e
    if legacy.data is None:
        logger.info("No legacy history at %s", legacy_key)
        return None

    messages = [
        convert_legacy_message(rec, legacy_user_id, legacy_model_name)
        for rec in parse_legacy_jsonl(legacy.data, legacy_key)
    ]
    generation = service.put_history(source_id, messages, 0)
    logger.info("Migrated %d legacy messages from %s to %s", len(messages), legacy_key, source_id)
    return ConversationHistory(source_id=source_id, messages=messages, generation=generation)
