"""
giveaway.types
--------------

Typed records shared by the commit–reveal pipeline, the wire codec, the
archive and the CLI. Re-exported here so callers can import from one path.
"""

from __future__ import annotations

from .core import AuditTranscript, Commitment, GiveawayResult, Participant, Reveal
from .state import GiveawaySession, Phase, SessionProgress

__all__ = [
    "Participant",
    "Commitment",
    "Reveal",
    "GiveawayResult",
    "AuditTranscript",
    "Phase",
    "SessionProgress",
    "GiveawaySession",
]
