"""
Giveaway gossip: commitment & reveal messages over a Transport.

This module wires the commit–reveal draw into a generic pub/sub transport:
- Builds the canonical, versioned topic names for a namespace.
- Encodes local Commitment/Reveal records as JSON frames.
- Decodes and shape-checks inbound frames into typed records.

Design notes
------------
* Topic tells the kind. Commit and reveal traffic never share a topic, so a
  receiver never guesses the message type from content.

      /<namespace>/1/commits/proto
      /<namespace>/1/reveals/proto

* Encoding: JSON via `msgspec`, field names camelCased on the wire
  (`senderId`, `commitment` | `secret`, `timestamp`). Decoding is typed and
  strict about required fields; unknown extra fields are ignored.

* Validation is shape-only (sizes, hex digest form). Whether a reveal matches
  its commitment is decided once, at the end of the reveal phase.

Usage
-----
    gossip = GiveawayGossip(transport, namespace="nft-giveaway")
    await gossip.open()
    await gossip.announce_commit(commitment)
    env = await gossip.commits.get()
    c = gossip.decode_commit(env)          # raises MalformedMessage
"""

from __future__ import annotations

import logging
from typing import Optional

import msgspec

from giveaway.adapters.transport import Envelope, Subscription, Transport
from giveaway.constants import (
    COMMITS_LEAF,
    MAX_PAYLOAD_BYTES,
    MAX_SECRET_LEN,
    MAX_SENDER_ID_LEN,
    REVEALS_LEAF,
    TOPIC_ENCODING,
    TOPIC_VERSION,
)
from giveaway.errors import MalformedMessage, TransportError
from giveaway.types.core import Commitment, Reveal

logger = logging.getLogger(__name__)


# ---- Topics ----


def commit_topic(namespace: str) -> str:
    return f"/{namespace}/{TOPIC_VERSION}/{COMMITS_LEAF}/{TOPIC_ENCODING}"


def reveal_topic(namespace: str) -> str:
    return f"/{namespace}/{TOPIC_VERSION}/{REVEALS_LEAF}/{TOPIC_ENCODING}"


# ---- Message types ----


class CommitMsg(msgspec.Struct, rename="camel"):
    sender_id: str
    commitment: str   # hex SHA-256 of the secret
    timestamp: int    # sender clock, unix millis (informational)


class RevealMsg(msgspec.Struct, rename="camel"):
    sender_id: str
    secret: str
    timestamp: int    # sender clock, unix millis (informational)


_ENC = msgspec.json.Encoder()
_DEC_COMMIT = msgspec.json.Decoder(CommitMsg)
_DEC_REVEAL = msgspec.json.Decoder(RevealMsg)


# ---- Codec ----


def encode_commit(c: Commitment) -> bytes:
    return _ENC.encode(
        CommitMsg(sender_id=c.sender_id, commitment=c.commitment_hash, timestamp=c.published_at)
    )


def encode_reveal(r: Reveal) -> bytes:
    return _ENC.encode(RevealMsg(sender_id=r.sender_id, secret=r.secret, timestamp=r.published_at))


def _check_size(topic: str, payload: bytes, max_bytes: int) -> None:
    if len(payload) > max_bytes:
        raise MalformedMessage(topic, f"payload {len(payload)} bytes > {max_bytes}")


def _check_sender(topic: str, sender_id: str) -> None:
    if not sender_id or len(sender_id) > MAX_SENDER_ID_LEN:
        raise MalformedMessage(topic, "senderId empty or too long")


def decode_commit(payload: bytes, *, topic: str = "", max_bytes: int = MAX_PAYLOAD_BYTES) -> Commitment:
    """Decode a commit frame into a Commitment, or raise MalformedMessage."""
    _check_size(topic, payload, max_bytes)
    try:
        msg = _DEC_COMMIT.decode(payload)
    except msgspec.DecodeError as e:
        raise MalformedMessage(topic, str(e)) from e
    _check_sender(topic, msg.sender_id)
    try:
        return Commitment(
            sender_id=msg.sender_id,
            commitment_hash=msg.commitment.lower(),
            published_at=msg.timestamp,
        )
    except (TypeError, ValueError) as e:
        raise MalformedMessage(topic, str(e)) from e


def decode_reveal(payload: bytes, *, topic: str = "", max_bytes: int = MAX_PAYLOAD_BYTES) -> Reveal:
    """Decode a reveal frame into a Reveal, or raise MalformedMessage."""
    _check_size(topic, payload, max_bytes)
    try:
        msg = _DEC_REVEAL.decode(payload)
    except msgspec.DecodeError as e:
        raise MalformedMessage(topic, str(e)) from e
    _check_sender(topic, msg.sender_id)
    if len(msg.secret) > MAX_SECRET_LEN:
        raise MalformedMessage(topic, "secret too long")
    try:
        return Reveal(sender_id=msg.sender_id, secret=msg.secret, published_at=msg.timestamp)
    except (TypeError, ValueError) as e:
        raise MalformedMessage(topic, str(e)) from e


# ---- Session-facing adapter ----


class GiveawayGossip:
    """
    Per-session view over a shared Transport.

    Parameters
    ----------
    transport: Transport
        Started pub/sub transport; may be shared with other sessions.
    namespace: str
        Topic namespace for this session.
    max_payload_bytes: int
        Inbound frames above this size are rejected as malformed.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        namespace: str,
        max_payload_bytes: int = MAX_PAYLOAD_BYTES,
    ) -> None:
        self._transport = transport
        self.commit_topic = commit_topic(namespace)
        self.reveal_topic = reveal_topic(namespace)
        self._max = max_payload_bytes
        self._commits: Optional[Subscription] = None
        self._reveals: Optional[Subscription] = None

    @property
    def commits(self) -> Subscription:
        if self._commits is None:
            raise TransportError("commit subscription not open")
        return self._commits

    @property
    def reveals(self) -> Subscription:
        if self._reveals is None:
            raise TransportError("reveal subscription not open")
        return self._reveals

    async def open(self) -> None:
        """Open both inbound channels. Reveals queue up until the session drains them."""
        if self._commits is None:
            self._commits = await self._call(self._transport.subscribe(self.commit_topic))
        if self._reveals is None:
            self._reveals = await self._call(self._transport.subscribe(self.reveal_topic))

    async def close(self) -> None:
        for sub in (self._commits, self._reveals):
            if sub is not None:
                await sub.close()

    # ---- Local announce (publish) ----

    async def announce_commit(self, c: Commitment) -> None:
        await self._call(self._transport.publish(self.commit_topic, encode_commit(c)))

    async def announce_reveal(self, r: Reveal) -> None:
        await self._call(self._transport.publish(self.reveal_topic, encode_reveal(r)))

    async def _call(self, aw):
        try:
            return await aw
        except TransportError:
            raise
        except OSError as e:
            raise TransportError(str(e)) from e

    # ---- Inbound decode ----

    def decode_commit(self, env: Envelope) -> Commitment:
        return decode_commit(env.payload, topic=env.topic, max_bytes=self._max)

    def decode_reveal(self, env: Envelope) -> Reveal:
        return decode_reveal(env.payload, topic=env.topic, max_bytes=self._max)


__all__ = [
    "commit_topic",
    "reveal_topic",
    "CommitMsg",
    "RevealMsg",
    "encode_commit",
    "encode_reveal",
    "decode_commit",
    "decode_reveal",
    "GiveawayGossip",
]
