"""Ephemeral "user is typing" signals.

Each room document carries a ``typing`` map of user ID -> last typing
activity. Entries are only trusted inside the typing window (3 seconds by
default) measured against the clock when a consumer reads the stream, so a
stale entry disappears from the live view even if it was never deleted.

Write volume is bounded on the sending side by ``TypingSession``: the first
keystroke of an idle period publishes ``True``, later keystrokes only restart
the idle timer, and timer expiry publishes ``False``.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, FrozenSet, Optional

from ..context import SyncContext
from ..store.schemas import DELETE_FIELD, DocumentSnapshot, as_utc
from ..streams import LiveStream

logger = logging.getLogger(__name__)


def fresh_typing_users(
    typing: Dict[str, Any],
    viewer_id: Optional[str],
    now: datetime,
    window: timedelta,
) -> FrozenSet[str]:
    """Users with a typing timestamp younger than ``window``, minus the viewer.

    Naive timestamps are read as UTC; non-timestamp values are ignored.
    """
    now = as_utc(now)
    return frozenset(
        user_id
        for user_id, started in typing.items()
        if user_id != viewer_id and isinstance(started, datetime) and now - as_utc(started) < window
    )


class TypingCoordinator:
    """Publishes and reads typing signals.

    Args:
        context: Shared runtime context.
    """

    def __init__(self, context: SyncContext) -> None:
        self._ctx = context

    @property
    def _window(self) -> timedelta:
        return timedelta(seconds=self._ctx.settings.timing.typing_window_seconds)

    async def set_typing(self, room_id: str, user_id: str, is_typing: bool) -> bool:
        """Refresh or remove ``user_id``'s typing entry on the room.

        Returns:
            True if the write succeeded. Failures are logged, not raised.
        """
        if not room_id or not user_id:
            return False
        value = self._ctx.now() if is_typing else DELETE_FIELD
        try:
            await self._ctx.store.update(self._ctx.rooms_path, room_id, {f"typing.{user_id}": value})
        except Exception as exc:  # pylint: disable=broad-except
            logger.error("Error updating typing status in room %s: %s", room_id, exc)
            return False
        return True

    def live_typing_users(self, room_id: str, viewer_id: Optional[str]) -> LiveStream[FrozenSet[str]]:
        """Live set of users currently typing in the room, excluding the viewer."""

        def _typing_users(snapshot: DocumentSnapshot) -> FrozenSet[str]:
            typing = snapshot.get("typing")
            if not isinstance(typing, dict):
                return frozenset()
            return fresh_typing_users(typing, viewer_id, self._ctx.now(), self._window)

        return self._ctx.store.subscribe_document(self._ctx.rooms_path, room_id).map(_typing_users)

    def session(self, room_id: str, user_id: str) -> "TypingSession":
        return TypingSession(self, room_id, user_id, self._ctx.settings.timing.typing_idle_seconds)

    async def idle_wait(self, seconds: float) -> None:
        await self._ctx.sleep(seconds)


class TypingSession:
    """Debounces local keystrokes for one user in one room.

    Lifecycle:
      * ``keystroke()`` on every local edit.
      * ``aclose()`` when leaving the room; it cancels the idle timer and
        always clears the user's typing entry.
    """

    def __init__(self, coordinator: TypingCoordinator, room_id: str, user_id: str, idle_seconds: float) -> None:
        self._coordinator = coordinator
        self.room_id = room_id
        self.user_id = user_id
        self._idle_seconds = idle_seconds
        self._is_typing = False
        self._idle_task: Optional[asyncio.Task] = None
        self._closed = False

    @property
    def is_typing(self) -> bool:
        return self._is_typing

    async def keystroke(self) -> None:
        """Register local typing activity."""
        if self._closed:
            return
        self._cancel_idle_timer()
        self._idle_task = asyncio.create_task(self._expire_after_idle())
        if not self._is_typing:
            self._is_typing = True
            await self._coordinator.set_typing(self.room_id, self.user_id, True)

    async def _expire_after_idle(self) -> None:
        await self._coordinator.idle_wait(self._idle_seconds)
        self._is_typing = False
        await self._coordinator.set_typing(self.room_id, self.user_id, False)

    def _cancel_idle_timer(self) -> None:
        if self._idle_task is not None and not self._idle_task.done():
            self._idle_task.cancel()
        self._idle_task = None

    async def aclose(self) -> None:
        """Stop the idle timer and clear the typing entry."""
        if self._closed:
            return
        self._closed = True
        task = self._idle_task
        self._cancel_idle_timer()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._is_typing = False
        await self._coordinator.set_typing(self.room_id, self.user_id, False)
