"""User documents and online/last-seen presence."""
from .schemas import UserProfile
from .tracker import PresenceTracker
from .users import UserDirectory

__all__ = ["PresenceTracker", "UserDirectory", "UserProfile"]
