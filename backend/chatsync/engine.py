"""ChatSyncEngine: the entry point callers build once per client.

Wires every component over one injected ``SyncContext`` and scopes
per-conversation resources (typing debounce, delivered-transitions, live
streams) to a ``RoomSession`` so they are torn down together when the
conversation is left.

Usage:
    engine = ChatSyncEngine(SyncContext(store=store, identity=provider))
    await engine.auth.sign_in("ada@example.com", "secret1")

    room = await engine.open_room("u2")
    await room.send("hello")
    async for messages in room.live_messages():
        ...
    await room.aclose()
"""
from __future__ import annotations

import logging
from typing import Any, FrozenSet, List, Optional

from .auth.service import AuthSessionGateway
from .context import SyncContext
from .messages.lifecycle import MessageLifecycle, SentMessage
from .messages.schemas import Message
from .messages.unread import UnreadAggregator
from .presence.schemas import UserProfile
from .presence.tracker import PresenceTracker
from .presence.users import UserDirectory
from .rooms.directory import RoomDirectory
from .rooms.schemas import ChatRoom
from .streams import LiveStream, close_all
from .typing_indicator.coordinator import TypingCoordinator, TypingSession

logger = logging.getLogger(__name__)


class ChatSyncEngine:
    """Builds and owns the chat components for one client.

    Attributes:
        rooms: RoomDirectory
        messages: MessageLifecycle
        unread: UnreadAggregator
        users: UserDirectory
        presence: PresenceTracker
        typing: TypingCoordinator
        auth: AuthSessionGateway
    """

    def __init__(self, context: SyncContext) -> None:
        self.context = context
        self.rooms = RoomDirectory(context)
        self.messages = MessageLifecycle(context)
        self.unread = UnreadAggregator(self.messages)
        self.users = UserDirectory(context)
        self.presence = PresenceTracker(context, self.users)
        self.typing = TypingCoordinator(context)
        self.auth = AuthSessionGateway(context, self.users, self.presence)
        self._sessions: List["RoomSession"] = []

    @property
    def current_user_id(self) -> Optional[str]:
        return self.context.current_user_id

    def live_rooms(self) -> LiveStream[List[ChatRoom]]:
        """The signed-in user's rooms; empty and finished without a session."""
        return self.rooms.live_rooms_for(self.current_user_id)

    def live_contacts(self) -> LiveStream[List[UserProfile]]:
        """Every other user, for starting a new conversation."""
        return self.users.live_users_except(self.current_user_id)

    async def open_room(self, other_user_id: str) -> "RoomSession":
        """Ensure the room with ``other_user_id`` exists and enter it.

        Entering marks the room's incoming messages read.

        Raises:
            NotAuthenticatedError: If there is no session.
            ValueError: If ``other_user_id`` is empty.
        """
        user_id = self.context.require_user_id()
        room_id = await self.rooms.ensure_room(user_id, other_user_id)
        session = RoomSession(self, room_id, user_id, other_user_id)
        self._sessions.append(session)
        await session.mark_read()
        return session

    def _forget(self, session: "RoomSession") -> None:
        if session in self._sessions:
            self._sessions.remove(session)

    async def aclose(self) -> None:
        """Leave every open room and cancel outstanding deferred work."""
        for session in list(self._sessions):
            await session.aclose()
        await self.messages.aclose()


class RoomSession:
    """One user's view of one conversation.

    Streams opened through the session are closed by ``aclose()``, which
    also cancels pending delivered-transitions and clears the user's typing
    entry.
    """

    def __init__(self, engine: ChatSyncEngine, room_id: str, user_id: str, other_user_id: str) -> None:
        self._engine = engine
        self.room_id = room_id
        self.user_id = user_id
        self.other_user_id = other_user_id
        self._typing: TypingSession = engine.typing.session(room_id, user_id)
        self._streams: List[LiveStream[Any]] = []
        self._sent: List[SentMessage] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def _track(self, stream: LiveStream[Any]) -> LiveStream[Any]:
        self._streams.append(stream)
        return stream

    async def send(self, text: str) -> SentMessage:
        sent = await self._engine.messages.send(self.room_id, self.user_id, text)
        self._sent = [handle for handle in self._sent if handle.delivery_pending]
        self._sent.append(sent)
        return sent

    async def keystroke(self) -> None:
        await self._typing.keystroke()

    async def mark_read(self) -> int:
        """Mark incoming messages read; failures are logged, not raised."""
        try:
            return await self._engine.messages.mark_room_read(self.room_id, self.user_id)
        except Exception as exc:  # pylint: disable=broad-except
            logger.error("Could not mark room %s read: %s", self.room_id, exc)
            return 0

    def live_messages(self) -> LiveStream[List[Message]]:
        return self._track(self._engine.messages.live_messages(self.room_id))

    def live_typing_users(self) -> LiveStream[FrozenSet[str]]:
        return self._track(self._engine.typing.live_typing_users(self.room_id, self.user_id))

    def live_unread_count(self) -> LiveStream[int]:
        return self._track(self._engine.unread.live_unread_count(self.room_id, self.user_id))

    def live_counterpart_status(self) -> LiveStream[Optional[UserProfile]]:
        return self._track(self._engine.presence.live_status(self.other_user_id))

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        for sent in self._sent:
            sent.cancel()
        self._sent.clear()
        close_all(self._streams)
        await self._typing.aclose()
        self._engine._forget(self)
        logger.debug("Left room %s", self.room_id)
