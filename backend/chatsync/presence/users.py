"""User documents: provisioning, lookup and the contact list.

User documents are created on first reference by the user's own session
(account creation, going online, or looking up one's own profile). Looking
up somebody else's missing document yields None rather than fabricating a
profile for them.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from ..context import SyncContext
from ..store.schemas import Query, QuerySnapshot
from ..streams import LiveStream, Subscription
from .schemas import UserProfile

logger = logging.getLogger(__name__)


def _default_name(email: Optional[str]) -> str:
    if email and "@" in email:
        return email.split("@", 1)[0]
    return "User"


class UserDirectory:
    """Reads and provisions user documents.

    Args:
        context: Shared runtime context.
    """

    def __init__(self, context: SyncContext) -> None:
        self._ctx = context

    def _profile_fields(self, email: Optional[str], display_name: Optional[str]) -> Dict[str, Any]:
        now = self._ctx.now()
        return {
            "email": email or "Unknown",
            "displayName": display_name or _default_name(email),
            "createdAt": now,
            "lastSeenAt": now,
            "isOnline": True,
        }

    async def ensure_user(
        self,
        user_id: str,
        email: Optional[str] = None,
        display_name: Optional[str] = None,
    ) -> bool:
        """Create the user document if it does not exist yet.

        When ``user_id`` is the signed-in user, missing email/name are taken
        from the session.

        Returns:
            True if a document was created.
        """
        session = self._ctx.identity.current_user
        if session is not None and session.uid == user_id:
            email = email or session.email
            display_name = display_name or session.displayName
        created = await self._ctx.store.create_if_absent(
            self._ctx.users_path, user_id, self._profile_fields(email, display_name)
        )
        if created:
            logger.info("Created user document: %s", user_id)
        return created

    async def save_profile(self, user_id: str, email: str, display_name: str) -> None:
        """Write (merge) the profile of a freshly created account."""
        await self._ctx.store.set(
            self._ctx.users_path,
            user_id,
            self._profile_fields(email, display_name),
            merge=True,
        )
        logger.info("User document saved: %s", user_id)

    async def get_user(self, user_id: str) -> Optional[UserProfile]:
        """Return the user's profile.

        The signed-in user's own document is provisioned on first reference.
        Another user's missing document returns None.
        """
        snapshot = await self._ctx.store.get(self._ctx.users_path, user_id)
        if not snapshot.exists:
            if user_id != self._ctx.current_user_id:
                logger.warning("User document not found: %s", user_id)
                return None
            await self.ensure_user(user_id)
            snapshot = await self._ctx.store.get(self._ctx.users_path, user_id)
        try:
            return UserProfile.from_snapshot(snapshot)
        except ValidationError as exc:
            logger.warning("Malformed user document %s: %s", user_id, exc)
            return None

    def live_users_except(self, viewer_id: Optional[str]) -> LiveStream[List[UserProfile]]:
        """Live list of every other user, for starting new conversations."""
        if not viewer_id:
            return Subscription.of()

        def _others(snapshot: QuerySnapshot) -> List[UserProfile]:
            users: List[UserProfile] = []
            for document in snapshot.documents:
                if document.id == viewer_id:
                    continue
                try:
                    users.append(UserProfile(**{**(document.data or {}), "id": document.id}))
                except ValidationError as exc:
                    logger.warning("Skipping malformed user %s: %s", document.id, exc)
            return users

        return self._ctx.store.subscribe_query(Query(self._ctx.users_path)).map(_others)
