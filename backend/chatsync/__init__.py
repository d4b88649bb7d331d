"""chatsync: real-time two-party conversation synchronization.

Turns document-store mutations and snapshot pushes into chat semantics:
canonical room addressing, sent/delivered/read message status, typing
windows, unread counts, online/last-seen presence and a retrying session
gateway.

Modules:
    - rooms: room identity and the live room directory
    - messages: message lifecycle and unread counts
    - presence: user documents and online/last-seen presence
    - typing_indicator: typing signals and keystroke debouncing
    - auth: identity provider port and the session gateway
    - store: document store port and the in-memory store
"""
from .config import SyncSettings, configure_logging, load_settings
from .context import SyncContext
from .engine import ChatSyncEngine, RoomSession

__all__ = [
    "ChatSyncEngine",
    "RoomSession",
    "SyncContext",
    "SyncSettings",
    "configure_logging",
    "load_settings",
]
