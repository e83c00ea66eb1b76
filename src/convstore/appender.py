import logging
import time
from collections.abc import Sequence

from convstore.deadline import Deadline
from convstore.exceptions import ConcurrentModificationError
from convstore.history import HistoryService
from convstore.models import ConversationHistory, Message

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_BACKOFF = 0.1


def append_messages(
    service: HistoryService,
    source_id: str,
    new_messages: Sequence[Message],
    *,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    backoff: float = DEFAULT_BACKOFF,
    deadline: Deadline | None = None,
) -> ConversationHistory:
    """
    Appends messages to a source's history, re-reading and re-appending on
    concurrent modification. Backoff doubles after each conflict (100ms, 200ms, ...)
    and never sleeps past the deadline.

    Returns the history as written, with its new generation.

    Raises:
        ConcurrentModificationError: if every attempt lost the race.
    """
    if max_attempts < 1:
        raise ValueError(f"max_attempts must be at least 1, got {max_attempts}")

    for attempt in range(1, max_attempts + 1):
        current = service.get_history(source_id, deadline=deadline)
        merged: list[Message] = [*current.messages, *new_messages]
        try:
            generation = service.put_history(source_id, merged, current.generation, deadline=deadline)
        except ConcurrentModificationError:
            if attempt == max_attempts:
                raise
            delay = backoff * (2 ** (attempt - 1))
            if deadline is not None:
                delay = min(delay, deadline.remaining())
            logger.warning(
                "Retrying append to %s after conflict (attempt %d/%d, waiting %.3fs)",
                source_id,
                attempt,
                max_attempts,
                delay,
            )
            time.sleep(delay)
            continue
        return ConversationHistory(source_id=source_id, messages=merged, generation=generation)

    raise AssertionError("unreachable")
