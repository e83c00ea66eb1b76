# pyright: standard

import time
from datetime import UTC, datetime, timedelta
from typing import override

from convstore.deadline import Deadline
from convstore.exceptions import StorageTimeoutError
from convstore.models import (
    AssistantFileDataPart,
    AssistantMessage,
    AssistantTextPart,
    Message,
    UserFileDataPart,
    UserMessage,
    UserTextPart,
    VideoMetadata,
)
from convstore.objectstore import InMemoryObjectStore, ObjectStore, ReadResult

T1 = datetime(2025, 1, 1, 0, 0, 0, tzinfo=UTC)
T2 = datetime(2025, 1, 1, 0, 0, 5, tzinfo=UTC)


def user_text(text: str, user_id: str = "U1", message_id: str = "", ts: datetime = T1) -> UserMessage:
    return UserMessage(user_id=user_id, parts=[UserTextPart(text=text)], timestamp=ts, message_id=message_id)


def assistant_text(text: str, model_name: str = "gemini-test", ts: datetime = T2) -> AssistantMessage:
    return AssistantMessage(model_name=model_name, parts=[AssistantTextPart(text=text)], timestamp=ts)


def rich_conversation() -> list[Message]:
    """One message of each shape, including every optional field."""
    return [
        UserMessage(
            user_id="U1",
            message_id="m-001",
            parts=[
                UserTextPart(text="look at this"),
                UserFileDataPart(
                    storage_key="media/U1/clip.mp4",
                    mime_type="video/mp4",
                    display_name="clip.mp4",
                    video_metadata=VideoMetadata(
                        start_offset=timedelta(seconds=1, milliseconds=500),
                        end_offset=timedelta(seconds=10),
                        fps=2.5,
                    ),
                ),
                UserFileDataPart(storage_key="media/U1/a.png", mime_type="image/png", display_name="a.png"),
            ],
            timestamp=T1,
        ),
        AssistantMessage(
            model_name="gemini-test",
            parts=[
                AssistantTextPart(text="thinking...", thought=True, thought_signature="sig=="),
                AssistantTextPart(text="Nice clip!"),
                AssistantFileDataPart(storage_key="media/out.png", mime_type="image/png", display_name="out.png"),
            ],
            timestamp=T2,
        ),
        user_text("legacy", user_id="U2"),
    ]


class RecordingObjectStore(ObjectStore):
    """In-memory store that records every call made to it."""

    def __init__(self) -> None:
        self.inner = InMemoryObjectStore()
        self.calls: list[tuple[str, str]] = []

    @override
    def read(self, key: str, *, deadline: Deadline | None = None) -> ReadResult:
        self.calls.append(("read", key))
        return self.inner.read(key, deadline=deadline)

    @override
    def write(
        self,
        key: str,
        content_type: str,
        data: bytes,
        expected_generation: int,
        *,
        deadline: Deadline | None = None,
    ) -> int:
        self.calls.append(("write", key))
        return self.inner.write(key, content_type, data, expected_generation, deadline=deadline)

    @override
    def get_signed_url(self, key: str, method: str, ttl: timedelta, *, deadline: Deadline | None = None) -> str:
        self.calls.append(("get_signed_url", key))
        return self.inner.get_signed_url(key, method, ttl, deadline=deadline)

    @override
    def close(self) -> None:
        self.calls.append(("close", ""))
        self.inner.close()


class SlowObjectStore(ObjectStore):
    """
    Simulates a backend whose calls take `delay` seconds. Like a real transport
    it stops waiting once the deadline it was given runs out.
    """

    def __init__(self, delay: float) -> None:
        self.delay = delay
        self.deadlines: list[Deadline | None] = []
        self.closed = 0

    def _wait(self, operation: str, key: str, deadline: Deadline | None) -> None:
        self.deadlines.append(deadline)
        budget = self.delay if deadline is None else min(self.delay, deadline.remaining())
        time.sleep(budget)
        if budget < self.delay:
            raise StorageTimeoutError(f"{operation} of {key} cancelled")

    @override
    def read(self, key: str, *, deadline: Deadline | None = None) -> ReadResult:
        self._wait("read", key, deadline)
        return ReadResult(data=None, generation=0)

    @override
    def write(
        self,
        key: str,
        content_type: str,
        data: bytes,
        expected_generation: int,
        *,
        deadline: Deadline | None = None,
    ) -> int:
        self._wait("write", key, deadline)
        return expected_generation + 1

    @override
    def get_signed_url(self, key: str, method: str, ttl: timedelta, *, deadline: Deadline | None = None) -> str:
        self._wait("get_signed_url", key, deadline)
        return f"https://example.invalid/{key}"

    @override
    def close(self) -> None:
        self.closed += 1
