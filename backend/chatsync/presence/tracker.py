"""Online / last-seen presence.

A user counts as online if their ``isOnline`` flag is set or their last
presence write is younger than the online grace period (5 minutes by
default). Presence writes are best effort: failures are logged and never
block navigation or messaging.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Optional

from pydantic import ValidationError

from ..context import SyncContext
from ..errors import DocumentNotFoundError
from ..store.schemas import DocumentSnapshot, as_utc
from ..streams import LiveStream
from .schemas import UserProfile
from .users import UserDirectory

logger = logging.getLogger(__name__)


class PresenceTracker:
    """Publishes and interprets user presence.

    Args:
        context: Shared runtime context.
        users: Directory used to provision a user's document when they come
            online for the first time.
    """

    def __init__(self, context: SyncContext, users: UserDirectory) -> None:
        self._ctx = context
        self._users = users

    @property
    def _grace(self) -> timedelta:
        return timedelta(minutes=self._ctx.settings.timing.online_grace_minutes)

    async def set_online(self, user_id: Optional[str], online: bool) -> bool:
        """Write ``isOnline`` and refresh ``lastSeenAt``.

        Returns:
            True if the write succeeded. Failures are logged, not raised.
        """
        if not user_id:
            return False
        try:
            if online:
                await self._users.ensure_user(user_id)
            await self._ctx.store.update(
                self._ctx.users_path,
                user_id,
                {"isOnline": online, "lastSeenAt": self._ctx.now()},
            )
        except DocumentNotFoundError:
            logger.warning("No user document to mark offline: %s", user_id)
            return False
        except Exception as exc:  # pylint: disable=broad-except
            logger.error("Error updating user status for %s: %s", user_id, exc)
            return False
        logger.debug("User %s is now %s", user_id, "online" if online else "offline")
        return True

    def live_status(self, user_id: str) -> LiveStream[Optional[UserProfile]]:
        """Live profile of ``user_id``; None while the document is missing."""

        def _profile(snapshot: DocumentSnapshot) -> Optional[UserProfile]:
            try:
                return UserProfile.from_snapshot(snapshot)
            except ValidationError as exc:
                logger.warning("Malformed user document %s: %s", snapshot.id, exc)
                return None

        return self._ctx.store.subscribe_document(self._ctx.users_path, user_id).map(_profile)

    def compute_online(self, user: Optional[UserProfile]) -> bool:
        if user is None:
            return False
        if user.isOnline:
            return True
        if user.lastSeenAt is None:
            return False
        return as_utc(self._ctx.now()) - user.lastSeenAt < self._grace

    def describe_last_seen(self, user: Optional[UserProfile]) -> str:
        """Human-readable presence line.

        Returns:
            ``"Online"``, ``"Last seen just now"``, ``"Last seen N minutes
            ago"``, ``"Last seen N hours ago"``, ``"Last seen N days ago"`` or
            ``"Last seen unknown"``.
        """
        if user is not None and user.isOnline:
            return "Online"
        if user is None or user.lastSeenAt is None:
            return "Last seen unknown"
        return describe_elapsed(self._ctx.now(), user.lastSeenAt)


def describe_elapsed(now: datetime, last_seen: datetime) -> str:
    elapsed = max(as_utc(now) - as_utc(last_seen), timedelta(0))
    minutes = int(elapsed.total_seconds() // 60)
    if minutes < 1:
        return "Last seen just now"
    if minutes < 60:
        return f"Last seen {minutes} minutes ago"
    hours = minutes // 60
    if hours < 24:
        return f"Last seen {hours} hours ago"
    return f"Last seen {hours // 24} days ago"
