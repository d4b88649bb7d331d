"""Helpers for consuming live streams and faking the identity provider in tests."""
import asyncio
from unittest.mock import MagicMock

from chatsync.auth.provider import AuthUser, IdentityProvider


async def next_value(stream, timeout: float = 1.0):
    """Return the stream's next value, failing the test instead of hanging."""
    return await asyncio.wait_for(stream.next(), timeout=timeout)


async def latest_value(stream, timeout: float = 1.0):
    """Drain every queued value and return the newest one."""
    value = await next_value(stream, timeout)
    while True:
        try:
            value = await asyncio.wait_for(stream.next(), timeout=0.01)
        except asyncio.TimeoutError:
            return value


def make_identity(uid="u1", email="u1@example.com", display_name="Una"):
    """IdentityProvider mock; async methods become AsyncMocks via the spec."""
    identity = MagicMock(spec=IdentityProvider)
    identity.current_user = (
        AuthUser(uid=uid, email=email, displayName=display_name) if uid else None
    )
    return identity


async def settle(rounds: int = 5) -> None:
    """Let scheduled tasks run until they block or finish."""
    for _ in range(rounds):
        await asyncio.sleep(0)
