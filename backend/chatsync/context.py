"""Injected runtime context shared by every chatsync component.

There are no process-wide singletons: the store handle, the identity
provider, settings, the clock and the sleep primitive all travel in one
explicitly constructed ``SyncContext``. Tests substitute a fixed clock and a
recording ``sleep``.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from .auth.provider import IdentityProvider
from .config import SyncSettings
from .errors import NotAuthenticatedError
from .store.base import DocumentStore


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SyncContext:
    """Handles and policies shared by the components of one client.

    Attributes:
        store: Backing document store.
        identity: Authentication provider holding the current session.
        settings: Collection names, timings and retry policy.
        clock: Returns the current time as an aware UTC datetime.
        sleep: Awaitable delay used for retries and deferred transitions.
    """
    store: DocumentStore
    identity: IdentityProvider
    settings: SyncSettings = field(default_factory=SyncSettings)
    clock: Callable[[], datetime] = utc_now
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    def now(self) -> datetime:
        return self.clock()

    @property
    def current_user_id(self) -> Optional[str]:
        user = self.identity.current_user
        return user.uid if user is not None else None

    def require_user_id(self) -> str:
        """Return the signed-in user's id.

        Raises:
            NotAuthenticatedError: If there is no session.
        """
        user_id = self.current_user_id
        if not user_id:
            raise NotAuthenticatedError()
        return user_id

    # Collection paths

    @property
    def users_path(self) -> str:
        return self.settings.collections.users

    @property
    def rooms_path(self) -> str:
        return self.settings.collections.rooms

    def messages_path(self, room_id: str) -> str:
        return f"{self.settings.collections.rooms}/{room_id}/{self.settings.collections.messages}"
