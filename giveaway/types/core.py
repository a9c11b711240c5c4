from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Mapping, Tuple

"""
Core typed records for giveaway draws.

These are intentionally minimal and free of heavy dependencies so they can be
shared across submodules (commit/reveal collection, verification, selection,
archive, CLI and tests).

Types provided:
  • Participant     — opaque identifier of an eligible entrant
  • Commitment      — a sender's hash commitment to a secret
  • Reveal          — a sender's disclosed secret
  • GiveawayResult  — the publishable outcome of a draw
  • AuditTranscript — the commitments and verified reveals behind a result
"""

Participant = str

# Internal constants (kept local to avoid import cycles)
_HEX64 = 64
_HEXDIGITS = frozenset("0123456789abcdef")


def _require_str(name: str, v: Any) -> None:
    if not isinstance(v, str):
        raise TypeError(f"{name} must be str")


def _require_nonneg_int(name: str, v: Any) -> None:
    if not isinstance(v, int) or isinstance(v, bool):
        raise TypeError(f"{name} must be int")
    if v < 0:
        raise ValueError(f"{name} must be non-negative (got {v})")


def _require_hex_digest(name: str, v: Any) -> None:
    _require_str(name, v)
    if len(v) != _HEX64 or not set(v) <= _HEXDIGITS:
        raise ValueError(f"{name} must be {_HEX64} lowercase hex characters")


# ---- Records -----------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Commitment:
    """
    A sender's commitment for a session.

    Fields:
      sender_id        — opaque sender identifier (a chain address in practice)
      commitment_hash  — lowercase hex SHA-256 of the secret
      published_at     — sender clock, integer milliseconds since epoch
    """

    sender_id: str
    commitment_hash: str
    published_at: int

    def __post_init__(self) -> None:  # type: ignore[override]
        _require_str("sender_id", self.sender_id)
        if not self.sender_id:
            raise ValueError("sender_id must be non-empty")
        _require_hex_digest("commitment_hash", self.commitment_hash)
        _require_nonneg_int("published_at", self.published_at)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "senderId": self.sender_id,
            "commitment": self.commitment_hash,
            "timestamp": self.published_at,
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "Commitment":
        return cls(
            sender_id=d["senderId"],
            commitment_hash=d["commitment"],
            published_at=d["timestamp"],
        )


@dataclass(frozen=True, slots=True)
class Reveal:
    """
    A sender's reveal for a session.

    Fields:
      sender_id     — must match the sender of an earlier Commitment
      secret        — the preimage of that commitment
      published_at  — sender clock, integer milliseconds since epoch
    """

    sender_id: str
    secret: str
    published_at: int

    def __post_init__(self) -> None:  # type: ignore[override]
        _require_str("sender_id", self.sender_id)
        if not self.sender_id:
            raise ValueError("sender_id must be non-empty")
        _require_str("secret", self.secret)
        _require_nonneg_int("published_at", self.published_at)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "senderId": self.sender_id,
            "secret": self.secret,
            "timestamp": self.published_at,
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "Reveal":
        return cls(
            sender_id=d["senderId"],
            secret=d["secret"],
            published_at=d["timestamp"],
        )


# ---- Outputs -----------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class GiveawayResult:
    """
    The publishable outcome of one draw.

    Fields:
      winner             — participants[winner_index]
      timestamp          — integer milliseconds; also bound into verification_hash
      participants       — ordered snapshot of the eligible entrants
      random_seed        — hex SHA-256 of the combined entropy
      verification_hash  — hex SHA-256 over everything that went into the draw
    """

    winner: Participant
    timestamp: int
    participants: Tuple[Participant, ...]
    random_seed: str
    verification_hash: str

    def __post_init__(self) -> None:  # type: ignore[override]
        _require_str("winner", self.winner)
        _require_nonneg_int("timestamp", self.timestamp)
        if not isinstance(self.participants, tuple):
            object.__setattr__(self, "participants", tuple(self.participants))
        for p in self.participants:
            _require_str("participant", p)
        _require_hex_digest("random_seed", self.random_seed)
        _require_hex_digest("verification_hash", self.verification_hash)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "winner": self.winner,
            "timestamp": self.timestamp,
            "participants": list(self.participants),
            "randomSeed": self.random_seed,
            "verificationHash": self.verification_hash,
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "GiveawayResult":
        return cls(
            winner=d["winner"],
            timestamp=d["timestamp"],
            participants=tuple(d["participants"]),
            random_seed=d["randomSeed"],
            verification_hash=d["verificationHash"],
        )


@dataclass(frozen=True, slots=True)
class AuditTranscript:
    """
    Everything a third party needs, next to a GiveawayResult, to recompute
    its random_seed and verification_hash.

    Fields:
      organizer_id   — sender id of the coordinator that produced the result
      commitments    — all recorded commitments, ordered by sender id
      valid_reveals  — verified reveals, ordered by sender id
    """

    organizer_id: str
    commitments: Tuple[Commitment, ...]
    valid_reveals: Tuple[Reveal, ...]

    def __post_init__(self) -> None:  # type: ignore[override]
        _require_str("organizer_id", self.organizer_id)
        object.__setattr__(self, "commitments", _by_sender(self.commitments))
        object.__setattr__(self, "valid_reveals", _by_sender(self.valid_reveals))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "organizerId": self.organizer_id,
            "commitments": [c.to_dict() for c in self.commitments],
            "validReveals": [r.to_dict() for r in self.valid_reveals],
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "AuditTranscript":
        return cls(
            organizer_id=d["organizerId"],
            commitments=tuple(Commitment.from_dict(c) for c in d.get("commitments", ())),
            valid_reveals=tuple(Reveal.from_dict(r) for r in d.get("validReveals", ())),
        )


def _by_sender(items: Iterable[Any]) -> Tuple[Any, ...]:
    return tuple(sorted(items, key=lambda x: x.sender_id))


__all__ = [
    "Participant",
    "Commitment",
    "Reveal",
    "GiveawayResult",
    "AuditTranscript",
]
