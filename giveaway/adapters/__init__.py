"""
Transport adapters.

- transport.py : the Transport capability and subscription channels.
- gossip.py    : topic naming and the commit/reveal wire codec.
- memory.py    : in-process hub used for local draws and tests.
"""

from giveaway.adapters.memory import MemoryHub, MemoryTransport
from giveaway.adapters.transport import Envelope, Subscription, Transport

__all__ = ["Envelope", "Subscription", "Transport", "MemoryHub", "MemoryTransport"]
