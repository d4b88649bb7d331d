"""Live, push-driven value streams.

Every live view in chatsync (rooms, messages, typing, presence, unread
counts) is a ``LiveStream``: an async iterator fed by the document store's
snapshot pushes, with an explicit ``close()`` that unsubscribes.

Usage:
    stream = directory.live_rooms_for("u1")
    async for rooms in stream:
        render(rooms)
    ...
    stream.close()

Derived views are built with ``stream.map(transform)``. The transform runs
when the consumer pulls the next value, so time-dependent projections (typing
freshness) are evaluated at read time, not at push time.
"""
from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Generic, Iterable, List, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
U = TypeVar("U")

# Queue marker that wakes a pending consumer once the stream is closed.
_CLOSED = object()


class LiveStream(ABC, Generic[T]):
    """Abstract live value stream.

    Implementations are single-consumer async iterators. Iteration ends
    (``StopAsyncIteration``) once the stream is closed and drained.
    """

    @abstractmethod
    async def next(self) -> T:
        """Wait for and return the next value.

        Raises:
            StopAsyncIteration: If the stream is closed.
        """

    @abstractmethod
    def close(self) -> None:
        """Unsubscribe. Safe to call more than once."""

    @property
    @abstractmethod
    def closed(self) -> bool:
        """True once ``close()`` has been called or the source ended."""

    def map(self, transform: Callable[[T], U]) -> "LiveStream[U]":
        return MappedStream(self, transform)

    def __aiter__(self) -> "LiveStream[T]":
        return self

    async def __anext__(self) -> T:
        return await self.next()

    async def __aenter__(self) -> "LiveStream[T]":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.close()


class Subscription(LiveStream[T]):
    """Queue-backed stream fed by a producer through ``push()``.

    Args:
        on_close: Called once when the subscription is closed, used by the
            producer to drop its reference (unsubscribe).
    """

    def __init__(self, on_close: Optional[Callable[["Subscription[T]"], None]] = None) -> None:
        self._queue: asyncio.Queue = asyncio.Queue()
        self._on_close = on_close
        self._closed = False

    @classmethod
    def of(cls, values: Iterable[T] = ()) -> "Subscription[T]":
        """Return an already-closed subscription that yields ``values`` then ends."""
        subscription: Subscription[T] = cls()
        for value in values:
            subscription.push(value)
        subscription.close()
        return subscription

    @property
    def closed(self) -> bool:
        return self._closed

    def push(self, value: T) -> None:
        if self._closed:
            return
        self._queue.put_nowait(value)

    async def next(self) -> T:
        if self._closed and self._queue.empty():
            raise StopAsyncIteration
        value = await self._queue.get()
        if value is _CLOSED:
            raise StopAsyncIteration
        return value

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_CLOSED)
        if self._on_close is not None:
            try:
                self._on_close(self)
            except Exception as exc:  # pylint: disable=broad-except
                logger.warning("Subscription close callback failed: %s", exc)


class MappedStream(LiveStream[U]):
    """Applies a pure transform to every value of a source stream.

    Closing the mapped stream closes its source.
    """

    def __init__(self, source: LiveStream[Any], transform: Callable[[Any], U]) -> None:
        self._source = source
        self._transform = transform

    @property
    def closed(self) -> bool:
        return self._source.closed

    async def next(self) -> U:
        value = await self._source.next()
        return self._transform(value)

    def close(self) -> None:
        self._source.close()


def close_all(streams: List[LiveStream[Any]]) -> None:
    """Close every stream in ``streams`` and empty the list."""
    for stream in streams:
        stream.close()
    streams.clear()
