"""Pydantic schemas for user profiles and presence."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..store.schemas import DocumentSnapshot, as_utc


class UserProfile(BaseModel):
    """A user document.

    Attributes:
        id: User ID (same as the auth provider uid).
        displayName: Human-readable name shown in conversation lists.
        email: Account email.
        isOnline: Presence flag written by the user's own client.
        lastSeenAt: Last presence write, if any.
        createdAt: When the document was provisioned.
    """
    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., description="User ID")
    displayName: str = Field(default="User", description="Display name")
    email: str = Field(default="Unknown", description="Account email")
    isOnline: bool = Field(default=False, description="Online flag")
    lastSeenAt: Optional[datetime] = Field(default=None, description="Last activity")
    createdAt: Optional[datetime] = Field(default=None, description="Creation time")

    @field_validator("lastSeenAt", "createdAt")
    @classmethod
    def _timestamps_as_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return as_utc(value)

    @classmethod
    def from_snapshot(cls, snapshot: DocumentSnapshot) -> Optional["UserProfile"]:
        if not snapshot.exists:
            return None
        return cls(**{**(snapshot.data or {}), "id": snapshot.id})
