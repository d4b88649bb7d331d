"""Two-party rooms: canonical IDs and the live room directory."""
from .directory import RoomDirectory, sort_rooms_by_recency
from .identity import resolve_room_id
from .schemas import ChatRoom

__all__ = ["ChatRoom", "RoomDirectory", "resolve_room_id", "sort_rooms_by_recency"]
