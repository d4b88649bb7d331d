"""Unread message counts.

The live count is a pure projection of the room's message stream, not
materialised state, so it cannot drift from the messages themselves.
"""
import logging
from typing import List, Optional

from ..streams import LiveStream, Subscription
from .lifecycle import MessageLifecycle
from .schemas import Message

logger = logging.getLogger(__name__)


def count_unread(messages: List[Message], viewer_id: str) -> int:
    """Count messages not authored by ``viewer_id`` that are sent or delivered."""
    return sum(1 for message in messages if message.is_unread_for(viewer_id))


class UnreadAggregator:
    """Derives unread counts from ``MessageLifecycle``."""

    def __init__(self, lifecycle: MessageLifecycle) -> None:
        self._lifecycle = lifecycle

    def live_unread_count(self, room_id: str, viewer_id: Optional[str]) -> LiveStream[int]:
        """Live unread count for ``viewer_id`` in ``room_id``.

        Updates whenever a contributing message is added or changes status.
        Without a viewer the stream yields a single ``0``.
        """
        if not viewer_id:
            return Subscription.of([0])
        return self._lifecycle.live_messages(room_id).map(
            lambda messages: count_unread(messages, viewer_id)
        )

    async def unread_count(self, room_id: str, viewer_id: Optional[str]) -> int:
        """One-shot unread count; 0 when it cannot be read."""
        if not viewer_id:
            return 0
        stream = self._lifecycle.live_messages(room_id)
        try:
            return count_unread(await stream.next(), viewer_id)
        except Exception as exc:  # pylint: disable=broad-except
            logger.error("Error getting unread count for room %s: %s", room_id, exc)
            return 0
        finally:
            stream.close()
