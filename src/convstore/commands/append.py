from datetime import UTC, datetime

from convstore.appender import append_messages
from convstore.config import StoreConfig
from convstore.models import AssistantMessage, AssistantTextPart, Message, UserMessage, UserTextPart
from convstore.runtime import open_service


def append(
    config: StoreConfig,
    source_id: str,
    text: str,
    *,
    user_id: str,
    message_id: str = "",
    reply: str | None = None,
    model: str = "manual",
) -> None:
    now = datetime.now(UTC)
    new_messages: list[Message] = [
        UserMessage(user_id=user_id, parts=[UserTextPart(text=text)], timestamp=now, message_id=message_id)
    ]
    if reply is not None:
        new_messages.append(AssistantMessage(model_name=model, parts=[AssistantTextPart(text=reply)], timestamp=now))

    with open_service(config) as service:
        history = append_messages(service, source_id, new_messages)

    print(f"Appended {len(new_messages)} message(s) to {source_id}; generation is now {history.generation}.")
