from datetime import datetime, timedelta

from msgspec import Struct, field

# --- User parts ---


class VideoMetadata(Struct, frozen=True):
    start_offset: timedelta
    end_offset: timedelta
    fps: float | None = None


class UserTextPart(Struct, frozen=True):
    text: str


class UserFileDataPart(Struct, frozen=True):
    """
    Reference to a blob in the media store. The key is stored verbatim and never
    dereferenced by the history subsystem.
    """

    storage_key: str
    mime_type: str
    display_name: str
    video_metadata: VideoMetadata | None = None


type UserPart = UserTextPart | UserFileDataPart

# --- Assistant parts ---


class AssistantTextPart(Struct, frozen=True):
    text: str
    thought: bool = False
    thought_signature: str = ""


class AssistantFileDataPart(Struct, frozen=True):
    storage_key: str
    mime_type: str
    display_name: str


type AssistantPart = AssistantTextPart | AssistantFileDataPart

# --- Messages ---


class UserMessage(Struct, frozen=True):
    user_id: str
    parts: list[UserPart]
    timestamp: datetime
    # Empty for messages written before identifiers existed
    message_id: str = ""


class AssistantMessage(Struct, frozen=True):
    model_name: str
    parts: list[AssistantPart]
    timestamp: datetime


type Message = UserMessage | AssistantMessage


class ConversationHistory(Struct, frozen=True):
    """
    Snapshot of one source's messages in storage order, plus the generation that
    was observed when it was read. Generation 0 means the object does not exist.
    """

    source_id: str
    messages: list[Message] = field(default_factory=list)
    generation: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.messages
