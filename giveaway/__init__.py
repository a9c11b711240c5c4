"""
Verifiable giveaway draws.

A group of peers picks one winner from a participant list without anyone
being able to bias the pick: every peer commits to a secret, then reveals
it, and the winner is derived from the verified reveals alone. Anyone holding
the published result can re-check it offline.

Only light, stable exports are surfaced here to avoid import cycles.
"""

from __future__ import annotations

from .version import __version__

__all__ = ["__version__"]
