"""Session gateway: account creation, sign-in and sign-out.

Flow for every provider call:
1. Validate the credentials locally (no network, no retry).
2. Call the provider up to ``auth.max_attempts`` times, pausing
   ``auth.retry_delay_seconds`` between attempts.
3. Classify only the final failure into an ``AuthErrorKind`` with one fixed
   user-facing message per kind.

Presence and profile-name writes around the session are best effort.
"""
import logging
import re
from typing import Awaitable, Callable, Optional, Tuple, TypeVar

from ..context import SyncContext
from ..errors import AuthenticationError, AuthErrorKind, CredentialValidationError
from ..presence.tracker import PresenceTracker
from ..presence.users import UserDirectory
from .provider import AuthUser, IdentityProviderError

logger = logging.getLogger(__name__)

T = TypeVar("T")

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")

# Provider error code -> classification
_CODE_KINDS = {
    "network-request-failed": AuthErrorKind.NETWORK,
    "email-already-in-use": AuthErrorKind.DUPLICATE_ACCOUNT,
    "weak-password": AuthErrorKind.WEAK_CREDENTIAL,
    "invalid-email": AuthErrorKind.MALFORMED_INPUT,
    "user-disabled": AuthErrorKind.DISABLED_ACCOUNT,
    "user-not-found": AuthErrorKind.NOT_FOUND,
    "wrong-password": AuthErrorKind.WRONG_CREDENTIAL,
    "invalid-credential": AuthErrorKind.WRONG_CREDENTIAL,
    "operation-not-allowed": AuthErrorKind.OPERATION_NOT_ALLOWED,
}

ERROR_MESSAGES = {
    AuthErrorKind.NETWORK: "Network connection failed. Please check your internet connection and try again.",
    AuthErrorKind.DUPLICATE_ACCOUNT: "An account with this email already exists. Please sign in instead.",
    AuthErrorKind.WEAK_CREDENTIAL: "Password is too weak. Please use a stronger password.",
    AuthErrorKind.MALFORMED_INPUT: "Invalid email address format.",
    AuthErrorKind.DISABLED_ACCOUNT: "This account has been disabled. Please contact support.",
    AuthErrorKind.NOT_FOUND: "No account found with this email. Please sign up first.",
    AuthErrorKind.WRONG_CREDENTIAL: "Incorrect password. Please try again.",
    AuthErrorKind.OPERATION_NOT_ALLOWED: "Email/password accounts are not enabled. Please contact support.",
}


def classify_error(exc: Exception) -> Tuple[AuthErrorKind, str]:
    """Map a provider failure to ``(kind, user-facing message)``."""
    if isinstance(exc, IdentityProviderError):
        kind = _CODE_KINDS.get(exc.code, AuthErrorKind.UNCLASSIFIED)
    elif isinstance(exc, (ConnectionError, TimeoutError)):
        kind = AuthErrorKind.NETWORK
    else:
        kind = AuthErrorKind.UNCLASSIFIED
    if kind is AuthErrorKind.UNCLASSIFIED:
        return kind, f"Authentication failed: {exc}"
    return kind, ERROR_MESSAGES[kind]


class AuthSessionGateway:
    """Wraps the identity provider with validation, retries and classification.

    Args:
        context: Shared runtime context.
        users: Used to write the profile of new accounts.
        presence: Marks the user online on sign-in and offline on sign-out.
    """

    def __init__(self, context: SyncContext, users: UserDirectory, presence: PresenceTracker) -> None:
        self._ctx = context
        self._users = users
        self._presence = presence

    @property
    def current_user(self) -> Optional[AuthUser]:
        return self._ctx.identity.current_user

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def validate_credentials(self, email: str, password: str) -> None:
        """Reject malformed credentials before any network attempt.

        Raises:
            CredentialValidationError: Invalid email format or short password.
        """
        if not EMAIL_PATTERN.match(email or ""):
            raise CredentialValidationError("Invalid email format", field="email")
        min_length = self._ctx.settings.auth.min_password_length
        if len(password or "") < min_length:
            raise CredentialValidationError(
                f"Password must be at least {min_length} characters", field="password"
            )

    # ------------------------------------------------------------------
    # Retry
    # ------------------------------------------------------------------

    async def _with_retries(self, label: str, call: Callable[[], Awaitable[T]]) -> T:
        max_attempts = self._ctx.settings.auth.max_attempts
        delay = self._ctx.settings.auth.retry_delay_seconds
        attempt = 0
        while True:
            attempt += 1
            logger.info("%s attempt %d of %d", label, attempt, max_attempts)
            try:
                return await call()
            except Exception as exc:  # pylint: disable=broad-except
                if attempt >= max_attempts:
                    kind, message = classify_error(exc)
                    logger.error("%s failed after %d attempt(s): %s", label, attempt, exc)
                    raise AuthenticationError(kind, message, attempts=attempt) from exc
                logger.warning(
                    "%s retry %d/%d failed, waiting %s seconds: %s",
                    label, attempt, max_attempts, delay, exc,
                )
                await self._ctx.sleep(delay)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def create_account(self, email: str, password: str, display_name: str) -> AuthUser:
        """Create an account, set its profile name and write its user document.

        The display-name update and the user-document write are best effort
        once the provider has created the account.

        Raises:
            CredentialValidationError: Malformed input (no network attempt).
            AuthenticationError: Provider failure after retries.
        """
        logger.info("Starting account creation for: %s", email)
        self.validate_credentials(email, password)
        identity = self._ctx.identity

        user = await self._with_retries(
            "Account creation", lambda: identity.create_user(email, password)
        )
        logger.info("Account created: %s", user.uid)

        try:
            await identity.update_display_name(display_name)
            logger.info("Display name updated successfully")
        except Exception as exc:  # pylint: disable=broad-except
            logger.warning("Failed to update display name (non-critical): %s", exc)

        try:
            await self._users.save_profile(user.uid, email, display_name)
        except Exception as exc:  # pylint: disable=broad-except
            # The account exists; its document is provisioned on next reference.
            logger.warning("Failed to save user document for %s (non-critical): %s", user.uid, exc)
        return user

    async def sign_in(self, email: str, password: str) -> AuthUser:
        """Sign in and mark the user online.

        Raises:
            CredentialValidationError: Malformed input (no network attempt).
            AuthenticationError: Provider failure after retries.
        """
        logger.info("Attempting sign in for: %s", email)
        self.validate_credentials(email, password)
        identity = self._ctx.identity

        user = await self._with_retries("Sign-in", lambda: identity.sign_in(email, password))
        await self._presence.set_online(user.uid, True)
        logger.info("User signed in successfully: %s", user.uid)
        return user

    async def sign_out(self) -> None:
        """Mark the user offline (best effort), then end the session."""
        user_id = self._ctx.current_user_id
        if user_id:
            await self._presence.set_online(user_id, False)
        await self._ctx.identity.sign_out()
        logger.info("User signed out successfully")
