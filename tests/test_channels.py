"""
Tests for message channels.

Tests for:
- FIFO delivery
- Capacity and back-pressure
- Close and end-of-stream semantics
"""

import asyncio

import pytest

from blockgraph.channels import DEFAULT_CHANNEL_CAPACITY, Channel
from blockgraph.errors import ChannelClosedError


class TestChannel:
    """Tests for Channel."""

    def test_defaults(self):
        channel = Channel("c")
        assert channel.capacity == DEFAULT_CHANNEL_CAPACITY == 100
        assert not channel.closed
        assert channel.qsize() == 0

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            Channel("c", capacity=0)

    @pytest.mark.asyncio
    async def test_fifo_order(self):
        """Test messages are received exactly once, in send order."""
        channel = Channel("c")
        for i in range(5):
            await channel.send(f"m{i}")

        received = [await channel.receive() for _ in range(5)]

        assert received == ["m0", "m1", "m2", "m3", "m4"]
        assert channel.qsize() == 0
        assert channel.sent_count == 5
        assert channel.received_count == 5

    @pytest.mark.asyncio
    async def test_receive_waits_for_send(self):
        """Test receive blocks until a message arrives."""
        channel = Channel("c")
        receiver = asyncio.create_task(channel.receive())
        await asyncio.sleep(0)
        assert not receiver.done()

        await channel.send("x")

        assert await asyncio.wait_for(receiver, 1.0) == "x"

    @pytest.mark.asyncio
    async def test_send_waits_when_full(self):
        """Test send blocks while the buffer is at capacity."""
        channel = Channel("c", capacity=1)
        await channel.send("first")
        sender = asyncio.create_task(channel.send("second"))
        await asyncio.sleep(0)
        assert not sender.done()

        assert await channel.receive() == "first"
        await asyncio.wait_for(sender, 1.0)
        assert await channel.receive() == "second"

    @pytest.mark.asyncio
    async def test_send_rejects_non_string(self):
        channel = Channel("c")
        with pytest.raises(TypeError):
            await channel.send(b"bytes")

    @pytest.mark.asyncio
    async def test_send_after_close_fails(self):
        channel = Channel("c")
        await channel.close()

        with pytest.raises(ChannelClosedError) as exc_info:
            await channel.send("x")
        assert exc_info.value.channel_name == "c"

    @pytest.mark.asyncio
    async def test_receive_drains_before_end_of_stream(self):
        """Test buffered messages are still delivered after close."""
        channel = Channel("c")
        await channel.send("a")
        await channel.send("b")
        await channel.close()

        assert await channel.receive() == "a"
        assert await channel.receive() == "b"
        with pytest.raises(ChannelClosedError):
            await channel.receive()

    @pytest.mark.asyncio
    async def test_close_wakes_waiting_receiver(self):
        """Test a blocked receiver is released by close."""
        channel = Channel("c")
        receiver = asyncio.create_task(channel.receive())
        await asyncio.sleep(0)

        await channel.close()

        with pytest.raises(ChannelClosedError):
            await asyncio.wait_for(receiver, 1.0)

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self):
        channel = Channel("c")
        await channel.close()
        await channel.close()
        assert channel.closed

    @pytest.mark.asyncio
    async def test_async_iteration_stops_at_end_of_stream(self):
        """Test `async for` yields every message and then stops."""
        channel = Channel("c")
        for message in ("x", "y", "z"):
            await channel.send(message)
        await channel.close()

        received = [message async for message in channel]

        assert received == ["x", "y", "z"]
