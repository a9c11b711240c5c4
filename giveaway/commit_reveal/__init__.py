# Copyright (c) giveaway-draw authors.
# SPDX-License-Identifier: MIT
"""
giveaway.commit_reveal
======================

Commit–reveal protocol for a single giveaway draw.

Typical flow (wall-clock driven):
    1) Publish a commitment during the session's **commit** window.
    2) Publish the secret during the **reveal** window.
    3) Verify reveals against commitments and derive the winner.

Submodules:
    - commit.py      : hashing, commitment construction and checks.
    - verify.py      : reveal-vs-commitment filtering.
    - select.py      : seed derivation, winner index, result sealing/verification.
    - deadlines.py   : commit/reveal window arithmetic.
    - coordinator.py : the per-session phase machine over a Transport.
"""

from __future__ import annotations

from giveaway.commit_reveal.commit import commit, generate_secret, verify_commitment
from giveaway.commit_reveal.coordinator import PhaseCoordinator, select_winner
from giveaway.commit_reveal.select import (build_result, verify_result,
                                           verify_transcript)
from giveaway.commit_reveal.verify import verify_reveals

__all__ = [
    "commit",
    "generate_secret",
    "verify_commitment",
    "verify_reveals",
    "build_result",
    "verify_result",
    "verify_transcript",
    "PhaseCoordinator",
    "select_winner",
]
