"""Room directory: lazy room creation and the live, ordered room list.

Room creation uses a create-if-absent write, so two participants opening a
conversation at the same moment converge on one room document instead of
overwriting each other.

The live room list is re-sorted locally on every snapshot. Backends with
limited compound-query support cannot reliably combine an array-membership
filter with an ordering, so the directory never relies on the store order
beyond using it as the tie-break.
"""
from __future__ import annotations

import logging
from typing import List, Optional

from pydantic import ValidationError

from ..context import SyncContext
from ..store.schemas import Query, QuerySnapshot
from ..streams import LiveStream, Subscription
from .identity import resolve_room_id
from .schemas import ChatRoom

logger = logging.getLogger(__name__)


def sort_rooms_by_recency(rooms: List[ChatRoom]) -> List[ChatRoom]:
    """Order rooms by ``lastMessageAt`` descending.

    Rooms without a last message follow every timestamped room. Ties keep
    their incoming order. Pure: returns a new list.
    """
    timestamped = [room for room in rooms if room.lastMessageAt is not None]
    untimestamped = [room for room in rooms if room.lastMessageAt is None]
    # list.sort is stable with reverse=True, so equal timestamps keep store order.
    timestamped.sort(key=lambda room: room.lastMessageAt, reverse=True)
    return timestamped + untimestamped


def rooms_from_snapshot(snapshot: QuerySnapshot) -> List[ChatRoom]:
    """Parse a query snapshot, skipping malformed room documents."""
    rooms: List[ChatRoom] = []
    for document in snapshot.documents:
        try:
            rooms.append(ChatRoom.from_snapshot(document))
        except ValidationError as exc:
            logger.warning("Skipping malformed room %s: %s", document.id, exc)
    return rooms


class RoomDirectory:
    """Creates rooms on first contact and lists a user's rooms.

    Args:
        context: Shared runtime context.
    """

    def __init__(self, context: SyncContext) -> None:
        self._ctx = context

    def resolve(self, user_a: str, user_b: str) -> str:
        return resolve_room_id(user_a, user_b, self._ctx.settings.rooms.id_separator)

    async def ensure_room(self, current_user_id: str, other_user_id: str) -> str:
        """Return the room ID for the pair, creating the room if absent.

        Never overwrites an existing room.

        Raises:
            ValueError: If either ID is empty.
        """
        room_id = self.resolve(current_user_id, other_user_id)
        created = await self._ctx.store.create_if_absent(
            self._ctx.rooms_path,
            room_id,
            {
                "participants": [current_user_id, other_user_id],
                "lastMessageText": None,
                "lastMessageSenderId": None,
                "lastMessageAt": None,
                "createdAt": self._ctx.now(),
                "typing": {},
            },
        )
        if created:
            logger.info("Created new chat room: %s", room_id)
        return room_id

    async def get_room(self, room_id: str) -> Optional[ChatRoom]:
        snapshot = await self._ctx.store.get(self._ctx.rooms_path, room_id)
        if not snapshot.exists:
            return None
        try:
            return ChatRoom.from_snapshot(snapshot)
        except ValidationError as exc:
            logger.warning("Malformed room %s: %s", room_id, exc)
            return None

    def live_rooms_for(self, user_id: Optional[str]) -> LiveStream[List[ChatRoom]]:
        """Live list of the user's rooms, most recent conversation first.

        An unauthenticated viewer gets an empty stream that ends immediately.
        """
        if not user_id:
            logger.warning("Room list requested without an authenticated user")
            return Subscription.of()

        logger.info("Subscribing to chat rooms for user: %s", user_id)
        query = Query(self._ctx.rooms_path).where("participants", "array-contains", user_id)
        source = self._ctx.store.subscribe_query(query)
        return source.map(lambda snapshot: sort_rooms_by_recency(rooms_from_snapshot(snapshot)))
