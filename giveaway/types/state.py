from __future__ import annotations

import secrets
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

from giveaway.errors import DuplicateContribution, EmptyParticipants, PhaseError
from giveaway.types.core import Commitment, GiveawayResult, Participant, Reveal


class Phase(str, Enum):
    """Lifecycle phases of a giveaway session."""

    IDLE = "idle"
    COMMITTING = "committing"
    REVEALING = "revealing"
    COMPLETE = "complete"
    CANCELLED = "cancelled"

    @property
    def terminal(self) -> bool:
        return self in (Phase.COMPLETE, Phase.CANCELLED)


@dataclass(frozen=True, slots=True)
class SessionProgress:
    """
    Caller-facing snapshot of a running session.

    Fields:
      session_id   — the session
      phase        — current phase
      commitments  — commitments recorded so far (own included)
      reveals      — reveals recorded so far (own included, unverified)
      remaining_s  — seconds left in the current phase (0 outside COMMITTING/REVEALING)
    """

    session_id: str
    phase: Phase
    commitments: int
    reveals: int
    remaining_s: float


@dataclass(slots=True)
class GiveawaySession:
    """
    Run-scoped aggregate for one draw.

    Tracks:
      • participants     — ordered, fixed for the run
      • organizer_id     — sender id of the local coordinator
      • namespace        — topic namespace for this run's gossip
      • commit_deadline  — UNIX seconds; commits received at/after are late
      • reveal_deadline  — UNIX seconds; reveals received at/after are late
      • commitments      — sender_id → first-seen Commitment
      • reveals          — sender_id → first-seen Reveal (committed senders only)
      • phase / result   — state machine position and final output

    A session is mutated only by the coordinator that claimed it.
    """

    session_id: str
    participants: Tuple[Participant, ...]
    organizer_id: str
    namespace: str
    commit_deadline: float
    reveal_deadline: float
    commitments: Dict[str, Commitment] = field(default_factory=dict)
    reveals: Dict[str, Reveal] = field(default_factory=dict)
    phase: Phase = Phase.IDLE
    result: Optional[GiveawayResult] = None
    owner: Optional[object] = None

    def __post_init__(self) -> None:
        self.participants = tuple(self.participants)
        if not self.participants:
            raise EmptyParticipants()
        if not self.organizer_id:
            raise ValueError("organizer_id must be non-empty")
        if self.reveal_deadline <= self.commit_deadline:
            raise ValueError("reveal_deadline must be after commit_deadline")

    @classmethod
    def create(
        cls,
        participants: Iterable[Participant],
        *,
        organizer_id: str,
        commit_window_s: float,
        reveal_window_s: float,
        namespace: str,
        now: Optional[float] = None,
        session_id: Optional[str] = None,
    ) -> "GiveawaySession":
        """Build a session whose phases start at `now` (default: wall clock)."""
        if commit_window_s <= 0 or reveal_window_s <= 0:
            raise ValueError("phase windows must be > 0")
        t0 = time.time() if now is None else now
        return cls(
            session_id=session_id or secrets.token_hex(8),
            participants=tuple(participants),
            organizer_id=organizer_id,
            namespace=namespace,
            commit_deadline=t0 + commit_window_s,
            reveal_deadline=t0 + commit_window_s + reveal_window_s,
        )

    # ---------- ownership -----------------------------------------------------

    def claim(self, owner: object) -> None:
        """Bind this session to exactly one coordinator for its lifetime."""
        if self.owner is not None and self.owner is not owner:
            raise PhaseError(f"session {self.session_id} is owned by another coordinator")
        self.owner = owner

    # ---------- contributions -------------------------------------------------

    def add_commitment(self, c: Commitment, *, strict: bool = False) -> bool:
        """
        Record a commitment if its sender has none yet. First seen wins.

        Returns False for a duplicate, or raises DuplicateContribution when
        `strict` is set.
        """
        if c.sender_id in self.commitments:
            if strict:
                raise DuplicateContribution("commitment", c.sender_id)
            return False
        self.commitments[c.sender_id] = c
        return True

    def add_reveal(self, r: Reveal, *, strict: bool = False) -> bool:
        """
        Record a reveal from a committed sender that has not revealed yet.

        Reveals from uncommitted senders are always dropped (False). A repeat
        reveal returns False, or raises DuplicateContribution when `strict`.
        """
        if r.sender_id not in self.commitments:
            return False
        if r.sender_id in self.reveals:
            if strict:
                raise DuplicateContribution("reveal", r.sender_id)
            return False
        self.reveals[r.sender_id] = r
        return True

    def commitment_list(self) -> List[Commitment]:
        return [self.commitments[k] for k in sorted(self.commitments)]

    def reveal_list(self) -> List[Reveal]:
        return [self.reveals[k] for k in sorted(self.reveals)]

    # ---------- progress ------------------------------------------------------

    def remaining_s(self, now: float) -> float:
        if self.phase is Phase.COMMITTING:
            return max(0.0, self.commit_deadline - now)
        if self.phase is Phase.REVEALING:
            return max(0.0, self.reveal_deadline - now)
        return 0.0

    def progress(self, now: float) -> SessionProgress:
        return SessionProgress(
            session_id=self.session_id,
            phase=self.phase,
            commitments=len(self.commitments),
            reveals=len(self.reveals),
            remaining_s=self.remaining_s(now),
        )


__all__ = [
    "Phase",
    "SessionProgress",
    "GiveawaySession",
]
