"""Tests for unread message counts."""
import pytest

from chatsync.messages.lifecycle import MessageLifecycle
from chatsync.messages.schemas import Message, MessageStatus
from chatsync.messages.unread import UnreadAggregator, count_unread
from chatsync.rooms.directory import RoomDirectory
from helpers import next_value


@pytest.fixture
def lifecycle(context):
    return MessageLifecycle(context)


@pytest.fixture
def unread(lifecycle):
    return UnreadAggregator(lifecycle)


def _message(sender, status):
    return Message(id=f"{sender}-{status}", roomId="u1_u2", senderId=sender, status=status)


class TestCountUnread:
    """Tests for the pure count."""

    def test_counts_incoming_sent_and_delivered(self):
        messages = [
            _message("u2", MessageStatus.SENT),
            _message("u2", MessageStatus.DELIVERED),
            _message("u2", MessageStatus.READ),
            _message("u1", MessageStatus.SENT),
        ]
        assert count_unread(messages, "u1") == 2

    def test_own_messages_never_count(self):
        messages = [_message("u1", MessageStatus.SENT), _message("u1", MessageStatus.DELIVERED)]
        assert count_unread(messages, "u1") == 0

    def test_empty(self):
        assert count_unread([], "u1") == 0


class TestLiveUnreadCount:
    """Tests for the live projection."""

    @pytest.mark.asyncio
    async def test_counts_then_clears_after_read(self, context, lifecycle, unread):
        room_id = await RoomDirectory(context).ensure_room("u1", "u2")
        for text in ("a", "b", "c"):
            (await lifecycle.send(room_id, "u2", text)).cancel()

        stream = unread.live_unread_count(room_id, "u1")
        assert await next_value(stream) == 3

        await lifecycle.mark_room_read(room_id, "u1")
        assert await next_value(stream) == 0
        stream.close()

    @pytest.mark.asyncio
    async def test_sender_sees_zero(self, context, lifecycle, unread):
        room_id = await RoomDirectory(context).ensure_room("u1", "u2")
        (await lifecycle.send(room_id, "u1", "mine")).cancel()
        stream = unread.live_unread_count(room_id, "u1")
        assert await next_value(stream) == 0
        stream.close()

    @pytest.mark.asyncio
    async def test_updates_on_new_message(self, context, lifecycle, unread):
        room_id = await RoomDirectory(context).ensure_room("u1", "u2")
        stream = unread.live_unread_count(room_id, "u1")
        assert await next_value(stream) == 0
        (await lifecycle.send(room_id, "u2", "hey")).cancel()
        assert await next_value(stream) == 1
        stream.close()

    @pytest.mark.asyncio
    async def test_without_viewer_yields_single_zero(self, unread, store):
        stream = unread.live_unread_count("u1_u2", None)
        assert [count async for count in stream] == [0]
        assert store.subscriber_count() == 0


class TestOneShotUnreadCount:
    """Tests for UnreadAggregator.unread_count."""

    @pytest.mark.asyncio
    async def test_reads_current_count_and_unsubscribes(self, context, lifecycle, unread, store):
        room_id = await RoomDirectory(context).ensure_room("u1", "u2")
        (await lifecycle.send(room_id, "u2", "one")).cancel()
        assert await unread.unread_count(room_id, "u1") == 1
        assert store.subscriber_count() == 0

    @pytest.mark.asyncio
    async def test_no_viewer(self, unread):
        assert await unread.unread_count("u1_u2", "") == 0
