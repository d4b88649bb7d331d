"""Message lifecycle: send, delivered transition, batch read-marking.

Status progression is monotonic (sent -> delivered -> read):
    - ``send`` writes the message as sent and, in the same atomic batch,
      updates the room's last-message fields.
    - A deferred task owned by the returned ``SentMessage`` handle marks the
      message delivered after a short delay. The transition is best effort:
      it may be cancelled or never run, and it is guarded so it can never
      overwrite a read message.
    - ``mark_room_read`` marks every unread incoming message read in one
      atomic batch.
"""
from __future__ import annotations

import asyncio
import logging
from typing import List, Optional, Set

from pydantic import ValidationError

from ..context import SyncContext
from ..store.schemas import Query, QuerySnapshot
from ..streams import LiveStream
from .schemas import UNREAD_STATUSES, Message, MessageStatus

logger = logging.getLogger(__name__)


def sort_messages_by_time(messages: List[Message]) -> List[Message]:
    """Order messages by ``createdAt`` ascending.

    Messages without a timestamp follow every timestamped message. Ties keep
    their incoming order. Pure: returns a new list.
    """
    timestamped = [message for message in messages if message.createdAt is not None]
    untimestamped = [message for message in messages if message.createdAt is None]
    timestamped.sort(key=lambda message: message.createdAt)
    return timestamped + untimestamped


def messages_from_snapshot(snapshot: QuerySnapshot) -> List[Message]:
    """Parse a query snapshot, skipping malformed message documents."""
    messages: List[Message] = []
    for document in snapshot.documents:
        try:
            messages.append(Message.from_snapshot(document))
        except ValidationError as exc:
            logger.warning("Skipping malformed message %s: %s", document.id, exc)
    return messages


class SentMessage:
    """Handle returned by ``MessageLifecycle.send``.

    Owns the deferred delivered-transition for the message.

    Attributes:
        room_id: Room the message was sent to.
        message_id: Store-assigned ID of the new message.
    """

    def __init__(self, room_id: str, message_id: str, delivery: Optional[asyncio.Task] = None) -> None:
        self.room_id = room_id
        self.message_id = message_id
        self._delivery = delivery

    def __repr__(self) -> str:
        return f"SentMessage(room_id={self.room_id!r}, message_id={self.message_id!r})"

    @property
    def delivery_pending(self) -> bool:
        return self._delivery is not None and not self._delivery.done()

    def cancel(self) -> None:
        """Cancel the pending delivered-transition, if any."""
        if self._delivery is not None and not self._delivery.done():
            self._delivery.cancel()

    async def wait_delivered(self) -> bool:
        """Wait for the delivered-transition to finish.

        Returns:
            True if the message was marked delivered by this handle, False if
            the transition was skipped, cancelled or failed.
        """
        if self._delivery is None:
            return False
        try:
            return await self._delivery
        except asyncio.CancelledError:
            if self._delivery.cancelled():
                return False
            raise


class MessageLifecycle:
    """Owns message writes and status transitions for all rooms.

    Args:
        context: Shared runtime context.
    """

    def __init__(self, context: SyncContext) -> None:
        self._ctx = context
        self._pending: Set[asyncio.Task] = set()

    def _query(self, room_id: str) -> Query:
        return Query(self._ctx.messages_path(room_id))

    def _unread_query(self, room_id: str, viewer_id: str) -> Query:
        return (
            self._query(room_id)
            .where("senderId", "!=", viewer_id)
            .where("status", "in", [status.value for status in UNREAD_STATUSES])
        )

    async def send(self, room_id: str, sender_id: str, text: str) -> SentMessage:
        """Append a message and update the room's last-message fields.

        Both writes are committed as one atomic batch. The returned handle
        schedules the delivered-transition.

        Raises:
            ValueError: If ``room_id`` or ``sender_id`` is empty.
            StoreError: If the batch fails (e.g. the room does not exist).
        """
        if not room_id or not sender_id:
            raise ValueError("room_id and sender_id are required to send a message")

        store = self._ctx.store
        now = self._ctx.now()
        message_id = store.generate_id()

        batch = store.batch()
        batch.set(
            self._ctx.messages_path(room_id),
            message_id,
            {
                "roomId": room_id,
                "senderId": sender_id,
                "text": text,
                "createdAt": now,
                "status": MessageStatus.SENT.value,
                "deliveredAt": None,
                "readAt": None,
            },
        )
        batch.update(
            self._ctx.rooms_path,
            room_id,
            {
                "lastMessageText": text,
                "lastMessageSenderId": sender_id,
                "lastMessageAt": now,
            },
        )
        try:
            await batch.commit()
        except Exception as exc:
            logger.error("Error sending message to room %s: %s", room_id, exc)
            raise

        logger.info("Message %s sent to room %s", message_id, room_id)
        task = asyncio.create_task(self._deliver_later(room_id, message_id))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return SentMessage(room_id, message_id, task)

    async def _deliver_later(self, room_id: str, message_id: str) -> bool:
        await self._ctx.sleep(self._ctx.settings.timing.delivered_delay_seconds)
        return await self.mark_delivered(room_id, message_id)

    async def mark_delivered(self, room_id: str, message_id: str) -> bool:
        """Move a sent message to delivered.

        Only applies while the message is still ``sent``; a delivered or read
        message is left untouched. Failures are logged, never raised.

        Returns:
            True if the message was updated.
        """
        try:
            applied = await self._ctx.store.update(
                self._ctx.messages_path(room_id),
                message_id,
                {
                    "status": MessageStatus.DELIVERED.value,
                    "deliveredAt": self._ctx.now(),
                },
                precondition={"status": MessageStatus.SENT.value},
            )
        except Exception as exc:  # pylint: disable=broad-except
            logger.error("Error marking message %s as delivered: %s", message_id, exc)
            return False
        if applied:
            logger.debug("Message %s marked delivered", message_id)
        return applied

    async def mark_room_read(self, room_id: str, viewer_id: str) -> int:
        """Mark every unread message addressed to ``viewer_id`` as read.

        Messages authored by the viewer are never touched. All updates are
        committed in a single atomic batch.

        Returns:
            Number of messages marked read.
        """
        if not viewer_id:
            return 0
        store = self._ctx.store
        try:
            unread = await store.query(self._unread_query(room_id, viewer_id))
            if not unread:
                return 0
            now = self._ctx.now()
            batch = store.batch()
            for document in unread:
                batch.update(
                    document.path,
                    document.id,
                    {"status": MessageStatus.READ.value, "readAt": now},
                )
            await batch.commit()
        except Exception as exc:
            logger.error("Error marking messages as read in room %s: %s", room_id, exc)
            raise

        logger.info("Marked %d message(s) read in room %s", len(unread), room_id)
        return len(unread)

    def live_messages(self, room_id: str) -> LiveStream[List[Message]]:
        """Live list of the room's messages, oldest first.

        The query asks the store for ``createdAt`` order, but each snapshot is
        sorted again locally since a backend may ignore the ordering.
        """
        query = self._query(room_id).ordered_by("createdAt")
        return self._ctx.store.subscribe_query(query).map(
            lambda snapshot: sort_messages_by_time(messages_from_snapshot(snapshot))
        )

    async def aclose(self) -> None:
        """Cancel every outstanding delivered-transition."""
        tasks = list(self._pending)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._pending.clear()
