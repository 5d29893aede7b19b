"""
Message channels exported as capability handles.

A Channel is a buffered FIFO of strings shared between the component that
created it (the producer, and the only party allowed to close it) and any
component that received it through configuration.

Close semantics:
    close() marks the channel closed and wakes every waiter. Senders fail
    with ChannelClosedError from then on; receivers keep draining buffered
    messages and get ChannelClosedError once the buffer is empty
    (end-of-stream). `async for` iteration stops at end-of-stream.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import AsyncIterator

from .errors import ChannelClosedError

logger = logging.getLogger(__name__)

DEFAULT_CHANNEL_CAPACITY = 100


class Channel:
    """
    Bounded, closable message channel.

    Example:
        channel = Channel("component2_b_exports_channel")
        await channel.send("hi")
        message = await channel.receive()

        async for message in channel:
            handle(message)
    """

    def __init__(self, name: str, capacity: int = DEFAULT_CHANNEL_CAPACITY):
        """
        Initialize channel.

        Args:
            name: Name used in logs and errors
            capacity: Maximum number of buffered messages (send waits when full)
        """
        if capacity < 1:
            raise ValueError("Channel capacity must be at least 1")
        self.name = name
        self.capacity = capacity
        self._buffer: deque[str] = deque()
        self._condition = asyncio.Condition()
        self._closed = False
        self.sent_count = 0
        self.received_count = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def qsize(self) -> int:
        """Number of buffered messages."""
        return len(self._buffer)

    async def send(self, message: str) -> None:
        """
        Append a message, waiting while the buffer is full.

        Raises:
            ChannelClosedError: If the channel is (or becomes) closed
            TypeError: If message is not a string
        """
        if not isinstance(message, str):
            raise TypeError(f"Channel messages must be str, got {type(message).__name__}")

        async with self._condition:
            await self._condition.wait_for(
                lambda: self._closed or len(self._buffer) < self.capacity
            )
            if self._closed:
                raise ChannelClosedError(self.name)
            self._buffer.append(message)
            self.sent_count += 1
            self._condition.notify_all()

    async def receive(self) -> str:
        """
        Remove and return the oldest message, waiting while empty.

        Raises:
            ChannelClosedError: If the channel is closed and drained
        """
        async with self._condition:
            await self._condition.wait_for(lambda: self._closed or bool(self._buffer))
            if not self._buffer:
                raise ChannelClosedError(self.name)
            message = self._buffer.popleft()
            self.received_count += 1
            self._condition.notify_all()
            return message

    async def close(self) -> None:
        """Close the channel. Idempotent."""
        async with self._condition:
            if self._closed:
                return
            self._closed = True
            self._condition.notify_all()
        logger.debug(
            f"[channel] Closed {self.name} | sent={self.sent_count} | "
            f"pending={len(self._buffer)}"
        )

    async def __aiter__(self) -> AsyncIterator[str]:
        while True:
            try:
                yield await self.receive()
            except ChannelClosedError:
                return

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"Channel(name='{self.name}', {state}, buffered={len(self._buffer)})"
