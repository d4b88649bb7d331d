"""Abstract IdentityProvider interface.

Every authentication back-end must implement this interface so the session
gateway stays provider-agnostic. Providers report failures by raising
``IdentityProviderError`` with a short machine code (``"user-not-found"``,
``"network-request-failed"``, ...); the gateway maps codes to user-facing
messages.
"""
from abc import ABC, abstractmethod
from typing import Optional

from pydantic import BaseModel, Field


class AuthUser(BaseModel):
    """The identity behind an authenticated session.

    Attributes:
        uid: Opaque user identifier assigned by the provider.
        email: Email the credential was created with.
        displayName: Profile name, if one was set.
    """
    uid: str = Field(..., min_length=1, description="Provider user ID")
    email: Optional[str] = Field(default=None, description="Account email")
    displayName: Optional[str] = Field(default=None, description="Profile display name")


class IdentityProviderError(Exception):
    """Raised by providers for any failed call.

    Attributes:
        code: Provider error code, e.g. ``"email-already-in-use"``.
    """

    def __init__(self, code: str, message: str = ""):
        self.code = code
        self.message = message or code
        super().__init__(f"[{code}] {self.message}")


class IdentityProvider(ABC):
    """Abstract base class for identity providers."""

    @property
    @abstractmethod
    def current_user(self) -> Optional[AuthUser]:
        """The signed-in user, or None when there is no session."""

    @abstractmethod
    async def create_user(self, email: str, password: str) -> AuthUser:
        """Create a credential and sign it in."""

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> AuthUser:
        """Sign in with an existing credential."""

    @abstractmethod
    async def sign_out(self) -> None:
        """Invalidate the current session."""

    @abstractmethod
    async def update_display_name(self, display_name: str) -> None:
        """Set the current user's profile name."""
