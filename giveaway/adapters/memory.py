"""
In-process pub/sub transport.

`MemoryHub` stands in for the gossip network: every `MemoryTransport`
attached to the same hub sees what the others publish (and its own
publications, as a real relay network echoes them). Used by the CLI's local
draw and by tests; anything that speaks the Transport protocol can replace it.

    hub = MemoryHub()
    a, b = MemoryTransport(hub), MemoryTransport(hub)
    await a.start(); await b.start()
    sub = await b.subscribe("/nft-giveaway/1/commits/proto")
    await a.publish("/nft-giveaway/1/commits/proto", b"...")
    env = await sub.get()
"""

from __future__ import annotations

import logging
import time
from collections import defaultdict, deque
from typing import Callable, DefaultDict, Deque, List, Optional, Set

from giveaway.adapters.transport import Envelope, QueueSubscription, Subscription
from giveaway.errors import TransportError

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class MemoryHub:
    """
    Topic → live subscriptions, across every attached transport.

    `history` keeps the last N publications in `published` for inspection;
    the default of 0 records nothing.
    """

    def __init__(self, *, clock: Clock = time.time, history: int = 0) -> None:
        if history < 0:
            raise ValueError("history must be >= 0")
        self._clock = clock
        self._subs: DefaultDict[str, List[QueueSubscription]] = defaultdict(list)
        self.published: Deque[tuple[str, bytes]] = deque(maxlen=history)

    def attach(self, sub: QueueSubscription) -> None:
        self._subs[sub.topic].append(sub)

    def detach(self, sub: QueueSubscription) -> None:
        subs = self._subs.get(sub.topic)
        if subs and sub in subs:
            subs.remove(sub)

    def subscriber_count(self, topic: str) -> int:
        return len(self._subs.get(topic, ()))

    def inject(self, topic: str, payload: bytes, *, received_at: Optional[float] = None) -> int:
        """
        Deliver `payload` to every subscriber of `topic`. Returns the number
        of deliveries. Tests use `received_at` to simulate slow delivery.
        """
        ts = self._clock() if received_at is None else received_at
        env = Envelope(topic=topic, payload=bytes(payload), received_at=ts)
        subs = list(self._subs.get(topic, ()))
        for sub in subs:
            sub.deliver(env)
        return len(subs)


class MemoryTransport:
    """
    Transport bound to a MemoryHub.

    Lifecycle: start() → publish/subscribe → stop(). Using it outside that
    window raises TransportError, like a disconnected network node would.
    """

    def __init__(self, hub: MemoryHub) -> None:
        self._hub = hub
        self._started = False
        self._subs: Set[QueueSubscription] = set()

    @property
    def started(self) -> bool:
        return self._started

    async def start(self) -> None:
        self._started = True

    async def stop(self) -> None:
        for sub in list(self._subs):
            await sub.close()
        self._started = False

    async def publish(self, topic: str, data: bytes) -> None:
        if not self._started:
            raise TransportError("publish on a stopped transport")
        self._hub.published.append((topic, bytes(data)))
        n = self._hub.inject(topic, data)
        logger.debug("published %d bytes on %s to %d subscribers", len(data), topic, n)

    async def subscribe(self, topic: str) -> Subscription:
        if not self._started:
            raise TransportError("subscribe on a stopped transport")
        sub = QueueSubscription(topic, on_close=self._release)
        self._subs.add(sub)
        self._hub.attach(sub)
        return sub

    def _release(self, sub: QueueSubscription) -> None:
        self._subs.discard(sub)
        self._hub.detach(sub)


__all__ = [
    "MemoryHub",
    "MemoryTransport",
]
