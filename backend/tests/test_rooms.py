"""Tests for room identity and the room directory."""
from datetime import datetime, timedelta, timezone

import pytest

from chatsync.context import SyncContext
from chatsync.rooms.directory import RoomDirectory, sort_rooms_by_recency
from chatsync.rooms.identity import resolve_room_id
from chatsync.rooms.schemas import ChatRoom
from chatsync.store.memory import InMemoryDocumentStore
from helpers import latest_value, next_value

T0 = datetime(2026, 1, 1, tzinfo=timezone.utc)


class TestResolveRoomId:
    """Tests for canonical room addressing."""

    @pytest.mark.parametrize(
        "user_a,user_b",
        [("u1", "u2"), ("alice", "Bob"), ("x", "x"), ("zeta-9", "alpha_1"), ("10", "9")],
    )
    def test_symmetric(self, user_a, user_b):
        assert resolve_room_id(user_a, user_b) == resolve_room_id(user_b, user_a)

    def test_sorted_and_joined(self):
        assert resolve_room_id("u2", "u1") == "u1_u2"

    def test_custom_separator(self):
        assert resolve_room_id("b", "a", separator=":") == "a:b"

    @pytest.mark.parametrize("user_a,user_b", [("", "u2"), ("u1", ""), (None, "u2")])
    def test_empty_id_rejected(self, user_a, user_b):
        with pytest.raises(ValueError):
            resolve_room_id(user_a, user_b)


class TestSortRoomsByRecency:
    """Tests for the pure client-side room ordering."""

    def test_most_recent_first_and_untimestamped_last(self):
        rooms = [
            ChatRoom(id="none-1"),
            ChatRoom(id="old", lastMessageAt=T0),
            ChatRoom(id="none-2"),
            ChatRoom(id="new", lastMessageAt=T0 + timedelta(minutes=5)),
        ]
        ordered = [room.id for room in sort_rooms_by_recency(rooms)]
        assert ordered == ["new", "old", "none-1", "none-2"]

    def test_ties_keep_incoming_order(self):
        rooms = [ChatRoom(id=name, lastMessageAt=T0) for name in ("b", "a", "c")]
        assert [room.id for room in sort_rooms_by_recency(rooms)] == ["b", "a", "c"]

    def test_mixed_naive_and_aware_timestamps(self):
        rooms = [
            ChatRoom(id="naive", lastMessageAt="2026-01-01T00:10:00"),
            ChatRoom(id="aware", lastMessageAt=T0),
        ]
        assert [room.id for room in sort_rooms_by_recency(rooms)] == ["naive", "aware"]

    def test_does_not_mutate_input(self):
        rooms = [ChatRoom(id="a"), ChatRoom(id="b", lastMessageAt=T0)]
        sort_rooms_by_recency(rooms)
        assert [room.id for room in rooms] == ["a", "b"]


class TestChatRoomCounterpart:
    """Tests for counterpart resolution and degraded rooms."""

    def test_other_participant(self):
        room = ChatRoom(id="u1_u2", participants=["u1", "u2"])
        assert room.counterpart_of("u1") == "u2"
        assert room.counterpart_of("u2") == "u1"

    def test_single_participant_falls_back_to_first(self):
        assert ChatRoom(id="r", participants=["u1"]).counterpart_of("u1") == "u1"

    def test_no_participants(self):
        assert ChatRoom(id="r").counterpart_of("u1") is None


class TestEnsureRoom:
    """Tests for lazy, create-if-absent room creation."""

    @pytest.mark.asyncio
    async def test_creates_room_without_last_message(self, context, store, clock):
        directory = RoomDirectory(context)
        room_id = await directory.ensure_room("u1", "u2")
        assert room_id == "u1_u2"
        room = await directory.get_room(room_id)
        assert room.participants == ["u1", "u2"]
        assert room.lastMessageAt is None
        assert room.lastMessageText is None
        assert room.createdAt == clock()

    @pytest.mark.asyncio
    async def test_same_room_from_either_side(self, context):
        directory = RoomDirectory(context)
        assert await directory.ensure_room("u2", "u1") == await directory.ensure_room("u1", "u2")

    @pytest.mark.asyncio
    async def test_existing_room_not_overwritten(self, context, store):
        directory = RoomDirectory(context)
        room_id = await directory.ensure_room("u1", "u2")
        await store.update("chat_rooms", room_id, {"lastMessageText": "hello", "lastMessageAt": T0})
        await directory.ensure_room("u2", "u1")
        room = await directory.get_room(room_id)
        assert room.lastMessageText == "hello"
        assert room.lastMessageAt == T0

    @pytest.mark.asyncio
    async def test_empty_participant_rejected(self, context):
        with pytest.raises(ValueError):
            await RoomDirectory(context).ensure_room("u1", "")

    @pytest.mark.asyncio
    async def test_get_missing_room(self, context):
        assert await RoomDirectory(context).get_room("nope") is None


class TestLiveRooms:
    """Tests for the live, locally sorted room list."""

    @pytest.fixture
    def limited_context(self, identity, settings, clock, sleeper):
        store = InMemoryDocumentStore(ignore_ordering=True)
        return SyncContext(store=store, identity=identity, settings=settings, clock=clock, sleep=sleeper)

    @pytest.mark.asyncio
    async def test_new_room_sorts_after_timestamped_rooms(self, limited_context):
        store = limited_context.store
        directory = RoomDirectory(limited_context)
        await directory.ensure_room("u1", "u2")
        await directory.ensure_room("u1", "u3")
        await store.update("chat_rooms", "u1_u3", {"lastMessageAt": T0})

        stream = directory.live_rooms_for("u1")
        rooms = await next_value(stream)
        assert [room.id for room in rooms] == ["u1_u3", "u1_u2"]
        stream.close()

    @pytest.mark.asyncio
    async def test_resorted_on_every_snapshot(self, limited_context):
        store = limited_context.store
        directory = RoomDirectory(limited_context)
        await directory.ensure_room("u1", "u2")
        await directory.ensure_room("u1", "u3")
        stream = directory.live_rooms_for("u1")
        await next_value(stream)

        await store.update("chat_rooms", "u1_u3", {"lastMessageAt": T0})
        await store.update("chat_rooms", "u1_u2", {"lastMessageAt": T0 + timedelta(seconds=1)})
        rooms = await latest_value(stream)
        assert [room.id for room in rooms] == ["u1_u2", "u1_u3"]
        stream.close()

    @pytest.mark.asyncio
    async def test_only_rooms_of_the_user(self, context):
        directory = RoomDirectory(context)
        await directory.ensure_room("u1", "u2")
        await directory.ensure_room("u3", "u4")
        stream = directory.live_rooms_for("u1")
        assert [room.id for room in await next_value(stream)] == ["u1_u2"]
        stream.close()

    @pytest.mark.asyncio
    async def test_malformed_room_skipped(self, context, store):
        await store.set("chat_rooms", "bad", {"participants": ["u1"], "lastMessageAt": "not a date"})
        await RoomDirectory(context).ensure_room("u1", "u2")
        stream = RoomDirectory(context).live_rooms_for("u1")
        assert [room.id for room in await next_value(stream)] == ["u1_u2"]
        stream.close()

    @pytest.mark.asyncio
    async def test_unauthenticated_viewer_gets_empty_finished_stream(self, context, store):
        stream = RoomDirectory(context).live_rooms_for(None)
        assert [rooms async for rooms in stream] == []
        assert store.subscriber_count() == 0
