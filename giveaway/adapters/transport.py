from __future__ import annotations

import abc
import asyncio
from dataclasses import dataclass
from typing import Callable, Optional, Protocol, runtime_checkable

from giveaway.errors import TransportError

__all__ = [
    "Envelope",
    "Subscription",
    "QueueSubscription",
    "Transport",
    "TransportError",
]


# --------------------------- #
# Inbound frames              #
# --------------------------- #


@dataclass(frozen=True, slots=True)
class Envelope:
    """
    One inbound payload as handed to a session.

    topic:       topic it was published under
    payload:     raw bytes, undecoded
    received_at: local UNIX seconds at delivery (used for late-message checks)
    """

    topic: str
    payload: bytes
    received_at: float


# --------------------------- #
# Subscription channel        #
# --------------------------- #


class Subscription(abc.ABC):
    """
    Per-topic inbound channel, drained by exactly one session task.

    Semantics:
      - Best effort: envelopes may be missing or duplicated.
      - No ordering guarantee across senders.
      - close() is idempotent and wakes a pending get(); after close, get()
        raises TransportError.
    """

    __slots__ = ("_topic",)

    def __init__(self, topic: str):
        self._topic = topic

    @property
    def topic(self) -> str:
        return self._topic

    @property
    @abc.abstractmethod
    def closed(self) -> bool: ...

    @abc.abstractmethod
    async def get(self) -> Envelope:
        """Wait for the next envelope."""
        ...

    @abc.abstractmethod
    def get_nowait(self) -> Optional[Envelope]:
        """Next already-delivered envelope, or None if none is queued."""
        ...

    @abc.abstractmethod
    async def close(self) -> None: ...

    async def __aenter__(self) -> "Subscription":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()


class QueueSubscription(Subscription):
    """
    asyncio.Queue-backed subscription. Transports call `deliver()`; the
    session task calls `get()`/`get_nowait()`.
    """

    __slots__ = ("_queue", "_closed", "_on_close")

    def __init__(self, topic: str, *, on_close: Optional[Callable[["QueueSubscription"], None]] = None):
        super().__init__(topic)
        # None is the close marker that wakes a pending get()
        self._queue: asyncio.Queue[Optional[Envelope]] = asyncio.Queue()
        self._closed = False
        self._on_close = on_close

    @property
    def closed(self) -> bool:
        return self._closed

    def deliver(self, env: Envelope) -> None:
        if self._closed:
            return
        self._queue.put_nowait(env)

    async def get(self) -> Envelope:
        if self._closed:
            raise TransportError(f"subscription to {self.topic} is closed")
        env = await self._queue.get()
        if env is None:
            raise TransportError(f"subscription to {self.topic} is closed")
        return env

    def get_nowait(self) -> Optional[Envelope]:
        try:
            return self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None

    async def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(None)
        if self._on_close is not None:
            self._on_close(self)


# --------------------------- #
# Transport capability        #
# --------------------------- #


@runtime_checkable
class Transport(Protocol):
    """
    The pub/sub capability a session needs from the outside world.

    Constructed once by the caller, started once, shared by any number of
    sessions (multiplexed by topic), stopped by the caller. Implementations
    raise TransportError for connect/publish/subscribe failures and never
    retry on the caller's behalf.
    """

    async def start(self) -> None: ...

    async def stop(self) -> None: ...

    async def publish(self, topic: str, data: bytes) -> None: ...

    async def subscribe(self, topic: str) -> Subscription: ...
