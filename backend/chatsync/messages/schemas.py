"""Pydantic schemas for chat messages.

Messages are created once and afterwards only their status fields change.
Status only ever moves forward: sent -> delivered -> read.
"""
from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..store.schemas import DocumentSnapshot, as_utc


class MessageStatus(str, Enum):
    """Delivery state of a message.

    Attributes:
        SENT: Written to the store.
        DELIVERED: Reached the recipient's side.
        READ: Seen by the recipient.
    """
    SENT = "sent"
    DELIVERED = "delivered"
    READ = "read"


# Statuses that still count as unread for the recipient.
UNREAD_STATUSES = (MessageStatus.SENT, MessageStatus.DELIVERED)


class Message(BaseModel):
    """A single message in a room.

    Attributes:
        id: Store-assigned message ID.
        roomId: Room this message belongs to.
        senderId: Author's user ID.
        text: Message content.
        createdAt: When the message was sent.
        status: Current delivery state.
        deliveredAt: When it became delivered, if it has.
        readAt: When it was read, if it has been.
    """
    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., description="Message ID")
    roomId: str = Field(..., description="Room ID this message belongs to")
    senderId: str = Field(..., description="User ID of the sender")
    text: str = Field(default="", description="Message content")
    createdAt: Optional[datetime] = Field(default=None, description="Send time")
    status: MessageStatus = Field(default=MessageStatus.SENT, description="Delivery state")
    deliveredAt: Optional[datetime] = Field(default=None, description="Delivery time")
    readAt: Optional[datetime] = Field(default=None, description="Read time")

    @field_validator("createdAt", "deliveredAt", "readAt")
    @classmethod
    def _timestamps_as_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value)

    @classmethod
    def from_snapshot(cls, snapshot: DocumentSnapshot) -> "Message":
        return cls(**{**(snapshot.data or {}), "id": snapshot.id})

    def is_unread_for(self, viewer_id: str) -> bool:
        """True if this message still counts as unread for ``viewer_id``."""
        return self.senderId != viewer_id and self.status in UNREAD_STATUSES
