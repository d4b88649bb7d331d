"""Pydantic schemas for two-party chat rooms.

Room documents live in the rooms collection under their canonical pair key
(see ``chatsync.rooms.identity``). The last-message fields are denormalised
onto the room so room lists can be ordered without reading messages.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..store.schemas import DocumentSnapshot, as_utc


class ChatRoom(BaseModel):
    """A two-party conversation container.

    Attributes:
        id: Canonical pair key of the two participants.
        participants: The two participant user IDs.
        lastMessageText: Text of the most recent message, if any.
        lastMessageSenderId: Sender of the most recent message, if any.
        lastMessageAt: When the most recent message was sent, if any.
        createdAt: When the room was first created.
        typing: User ID -> last typing activity timestamp.
    """
    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., description="Canonical room ID")
    participants: List[str] = Field(default_factory=list, description="Participant user IDs")
    lastMessageText: Optional[str] = Field(default=None, description="Most recent message text")
    lastMessageSenderId: Optional[str] = Field(default=None, description="Most recent sender")
    lastMessageAt: Optional[datetime] = Field(default=None, description="Most recent message time")
    createdAt: Optional[datetime] = Field(default=None, description="Creation time")
    typing: Dict[str, Any] = Field(default_factory=dict, description="Typing activity per user")

    @field_validator("lastMessageAt", "createdAt")
    @classmethod
    def _timestamps_as_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value)

    @classmethod
    def from_snapshot(cls, snapshot: DocumentSnapshot) -> "ChatRoom":
        return cls(**{**(snapshot.data or {}), "id": snapshot.id})

    def counterpart_of(self, viewer_id: str) -> Optional[str]:
        """Return the participant that is not ``viewer_id``.

        Rooms with a malformed participant list degrade to their first
        listed participant instead of failing.
        """
        for participant in self.participants:
            if participant != viewer_id:
                return participant
        return self.participants[0] if self.participants else None
