"""
Giveaway draw errors.

A small, typed hierarchy of exceptions raised by the commit → reveal → select
pipeline. Callers can catch the base `GiveawayError` to handle everything, or
the concrete subclasses for more granular control.

Only `TransportError`, `EmptyParticipants`, `SessionCancelled` and
`PhaseError` escape the coordinator. `MalformedMessage`, `InvalidReveal` and
`DuplicateContribution` describe conditions the protocol recovers from by
dropping the offending message; they are raised only by the strict helpers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


class GiveawayError(Exception):
    """Base class for all giveaway draw errors."""
    pass


class TransportError(GiveawayError):
    """Publish/subscribe/connect failure. Fatal to the run."""
    pass


@dataclass(frozen=True)
class MalformedMessage(GiveawayError):
    """
    Raised when a payload cannot be decoded into the expected message shape.

    Attributes:
        topic: Topic the payload arrived on.
        reason: Decoder or validator explanation.
    """
    topic: str
    reason: str

    def __str__(self) -> str:  # pragma: no cover - trivial formatting
        return f"MalformedMessage: topic={self.topic} reason={self.reason}"


@dataclass(frozen=True)
class InvalidReveal(GiveawayError):
    """
    Raised when a reveal has no matching commitment or fails hash verification.

    Attributes:
        sender_id: Sender of the reveal.
        expected: Recorded commitment hash (None if no commitment was recorded).
        got: Commitment hash recomputed from the revealed secret.
    """
    sender_id: str
    expected: Optional[str]
    got: str

    def __str__(self) -> str:  # pragma: no cover - trivial formatting
        if self.expected is None:
            return f"InvalidReveal: sender={self.sender_id} has no commitment"
        return (
            f"InvalidReveal: sender={self.sender_id} expected={self.expected} "
            f"got={self.got}"
        )


class EmptyParticipants(GiveawayError, ValueError):
    """Winner selection was asked to pick from an empty participant list."""

    def __str__(self) -> str:  # pragma: no cover - trivial formatting
        return "EmptyParticipants: participant list must not be empty"


@dataclass(frozen=True)
class DuplicateContribution(GiveawayError):
    """
    A second commitment or reveal from an already-recorded sender.

    Attributes:
        kind: "commitment" or "reveal".
        sender_id: The repeating sender.
    """
    kind: str
    sender_id: str

    def __str__(self) -> str:  # pragma: no cover - trivial formatting
        return f"DuplicateContribution: {self.kind} from sender={self.sender_id}"


@dataclass(frozen=True)
class SessionCancelled(GiveawayError):
    """
    Terminal signal for a session that ended without a result.

    Attributes:
        session_id: The cancelled session.
        reason: Optional explanation (e.g. 'caller-abort', 'transport').
    """
    session_id: str
    reason: Optional[str] = None

    def __str__(self) -> str:  # pragma: no cover - trivial formatting
        base = f"SessionCancelled: session={self.session_id}"
        return f"{base} reason={self.reason}" if self.reason else base


class PhaseError(GiveawayError, RuntimeError):
    """State machine misuse: starting twice, foreign owner, wrong phase."""
    pass


__all__ = [
    "GiveawayError",
    "TransportError",
    "MalformedMessage",
    "InvalidReveal",
    "EmptyParticipants",
    "DuplicateContribution",
    "SessionCancelled",
    "PhaseError",
]
