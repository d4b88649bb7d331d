"""Tests for live stream primitives."""
import asyncio
from unittest.mock import MagicMock

import pytest

from chatsync.streams import Subscription, close_all
from helpers import next_value


class TestSubscription:
    """Tests for the queue-backed Subscription."""

    @pytest.mark.asyncio
    async def test_values_arrive_in_push_order(self):
        sub = Subscription()
        sub.push(1)
        sub.push(2)
        assert await next_value(sub) == 1
        assert await next_value(sub) == 2

    @pytest.mark.asyncio
    async def test_close_ends_iteration_after_draining(self):
        sub = Subscription()
        sub.push("a")
        sub.close()
        assert [value async for value in sub] == ["a"]

    @pytest.mark.asyncio
    async def test_close_wakes_waiting_consumer(self):
        sub = Subscription()
        waiter = asyncio.create_task(sub.next())
        await asyncio.sleep(0)
        sub.close()
        with pytest.raises(StopAsyncIteration):
            await asyncio.wait_for(waiter, timeout=1)

    @pytest.mark.asyncio
    async def test_push_after_close_is_ignored(self):
        sub = Subscription()
        sub.close()
        sub.push("late")
        with pytest.raises(StopAsyncIteration):
            await sub.next()

    def test_on_close_called_once(self):
        on_close = MagicMock()
        sub = Subscription(on_close=on_close)
        sub.close()
        sub.close()
        on_close.assert_called_once_with(sub)
        assert sub.closed

    @pytest.mark.asyncio
    async def test_of_yields_values_then_ends(self):
        sub = Subscription.of([0])
        assert sub.closed
        assert [value async for value in sub] == [0]

    @pytest.mark.asyncio
    async def test_empty_of_ends_immediately(self):
        assert [value async for value in Subscription.of()] == []


class TestMappedStream:
    """Tests for derived streams."""

    @pytest.mark.asyncio
    async def test_map_transforms_each_value(self):
        sub = Subscription()
        doubled = sub.map(lambda value: value * 2)
        sub.push(3)
        assert await next_value(doubled) == 6

    @pytest.mark.asyncio
    async def test_transform_runs_at_read_time(self):
        calls = []
        sub = Subscription()
        mapped = sub.map(lambda value: calls.append(value) or value)
        sub.push("x")
        assert calls == []
        await next_value(mapped)
        assert calls == ["x"]

    def test_closing_mapped_closes_source(self):
        sub = Subscription()
        mapped = sub.map(str).map(len)
        mapped.close()
        assert sub.closed
        assert mapped.closed

    @pytest.mark.asyncio
    async def test_async_context_manager_closes(self):
        sub = Subscription()
        async with sub.map(str) as stream:
            sub.push(1)
            assert await next_value(stream) == "1"
        assert sub.closed

    def test_close_all_empties_list(self):
        streams = [Subscription(), Subscription()]
        originals = list(streams)
        close_all(streams)
        assert streams == []
        assert all(stream.closed for stream in originals)
