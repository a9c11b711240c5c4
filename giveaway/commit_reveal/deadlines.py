# Copyright (c) giveaway-draw authors.
# SPDX-License-Identifier: MIT
"""
Phase windows for a single giveaway session.

Unlike a recurring beacon, a draw has exactly one commit window and one
reveal window, both anchored to when the session was created:

    [start, commit_deadline)           → COMMITTING
    [commit_deadline, reveal_deadline) → REVEALING
    [reveal_deadline, ...)             → closed

Acceptance is judged on when a message was *received*, not on when the
session task gets around to it, so a slow event loop cannot accept a
just-late message. Reveals received before the commit deadline (e.g. from a
peer whose clock runs ahead) are held and accepted; only the reveal deadline
closes the reveal window.

All helpers are pure: the caller provides `now` so tests stay deterministic.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto

from giveaway.types.state import GiveawaySession


class Window(Enum):
    """Nominal window at a given instant."""
    COMMIT = auto()
    REVEAL = auto()
    CLOSED = auto()


@dataclass(frozen=True, slots=True)
class PhaseWindows:
    """Absolute boundaries (UNIX seconds) for one session."""
    commit_deadline: float
    reveal_deadline: float

    def __post_init__(self) -> None:
        if self.reveal_deadline <= self.commit_deadline:
            raise ValueError("reveal_deadline must be after commit_deadline")

    @classmethod
    def for_session(cls, session: GiveawaySession) -> "PhaseWindows":
        return cls(session.commit_deadline, session.reveal_deadline)

    # ---- classification ----

    def window_at(self, now: float) -> Window:
        if now < self.commit_deadline:
            return Window.COMMIT
        if now < self.reveal_deadline:
            return Window.REVEAL
        return Window.CLOSED

    def deadline_for(self, window: Window) -> float:
        if window is Window.COMMIT:
            return self.commit_deadline
        if window is Window.REVEAL:
            return self.reveal_deadline
        raise ValueError("closed window has no deadline")

    def time_to_deadline(self, now: float, window: Window) -> float:
        """Seconds until `window` closes (0 if already closed)."""
        return max(0.0, self.deadline_for(window) - now)

    # ---- acceptance rules ----

    def can_accept_commit(self, received_at: float) -> bool:
        """True iff a commitment received at `received_at` is on time."""
        return received_at < self.commit_deadline

    def can_accept_reveal(self, received_at: float) -> bool:
        """True iff a reveal received at `received_at` is on time."""
        return received_at < self.reveal_deadline

    def describe(self) -> str:
        """Human-readable layout for diagnostics and logs."""
        return (
            f"commit until {self.commit_deadline:.3f}, "
            f"reveal until {self.reveal_deadline:.3f}"
        )


__all__ = [
    "Window",
    "PhaseWindows",
]
