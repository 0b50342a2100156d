"""A bounded multi-consumer broadcast channel for asyncio."""

from __future__ import annotations

import asyncio
import weakref
from collections import deque
from typing import Generic, TypeVar

T = TypeVar("T")


class ChannelClosed(Exception):
    """The channel is closed, or has no one left to deliver to."""


class Lagged(Exception):
    """A receiver fell behind and missed ``count`` messages."""

    def __init__(self, count: int) -> None:
        super().__init__(f"receiver lagged by {count} messages")
        self.count = count


class Broadcast(Generic[T]):
    """Every value sent is delivered to every receiver subscribed at the time.

    The channel keeps at most ``capacity`` values; receivers that fall further
    behind get :class:`Lagged` and skip to the oldest retained value.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        self._buffer: deque[T] = deque(maxlen=capacity)
        self._next_seq = 0
        self._closed = False
        self._receivers: weakref.WeakSet[BroadcastReceiver[T]] = weakref.WeakSet()
        self._waiters: list[asyncio.Future[None]] = []

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, value: T) -> int:
        """Broadcast a value; return the number of receivers it goes to."""
        if self._closed:
            raise ChannelClosed("channel is closed")
        receivers = len(self._receivers)
        if receivers == 0:
            raise ChannelClosed("no active receivers")
        self._buffer.append(value)
        self._next_seq += 1
        self._wake()
        return receivers

    def subscribe(self) -> BroadcastReceiver[T]:
        """Create a receiver that sees every value sent from now on."""
        receiver = BroadcastReceiver(self, self._next_seq)
        self._receivers.add(receiver)
        return receiver

    def close(self) -> None:
        """Close the channel; receivers drain what is left, then get ChannelClosed."""
        self._closed = True
        self._wake()

    def _oldest_seq(self) -> int:
        return self._next_seq - len(self._buffer)

    def _wake(self) -> None:
        waiters, self._waiters = self._waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(None)

    async def _wait(self) -> None:
        waiter = asyncio.get_running_loop().create_future()
        self._waiters.append(waiter)
        await waiter


class BroadcastReceiver(Generic[T]):
    """The receiving end of a :class:`Broadcast` subscription."""

    def __init__(self, channel: Broadcast[T], position: int) -> None:
        self._channel = channel
        self._position = position

    async def recv(self) -> T:
        """Wait for the next value."""
        channel = self._channel
        while True:
            oldest = channel._oldest_seq()
            if self._position < oldest:
                missed = oldest - self._position
                self._position = oldest
                raise Lagged(missed)
            if self._position < channel._next_seq:
                value = channel._buffer[self._position - oldest]
                self._position += 1
                return value
            if channel._closed:
                raise ChannelClosed("channel is closed")
            await channel._wait()