# pyright: standard

from collections.abc import Mapping

import msgspec

from convstore.codec import message_to_record
from convstore.models import ConversationHistory

_encoder = msgspec.json.Encoder()


def history_to_json(history: ConversationHistory) -> bytes:
    """
    Encode a whole history as one JSON document. Messages appear in their
    stored wire form, so each carries its `role` and camelCase keys.
    """
    return _encoder.encode(
        {
            "source_id": history.source_id,
            "generation": history.generation,
            "messages": [message_to_record(m) for m in history.messages],
        }
    )


def convert_settings[T](values: Mapping[str, object], type_spec: type[T]) -> T:
    """Build a settings struct from string values, coercing "250" to 250 and so on."""
    return msgspec.convert(dict(values), type_spec, strict=False)
