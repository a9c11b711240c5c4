"""Participant list input: one entrant per line."""

from __future__ import annotations

from pathlib import Path
from typing import List, Union

from giveaway.errors import EmptyParticipants
from giveaway.types.core import Participant


def parse_participants(text: str) -> List[Participant]:
    """
    Split `text` into participants: one per line, surrounding whitespace
    trimmed, blank lines dropped. Order is preserved and duplicates are kept,
    since the list order and contents are part of what gets hashed.
    """
    return [line.strip() for line in text.splitlines() if line.strip()]


def load_participants(path: Union[str, Path]) -> List[Participant]:
    """Read a participants file; raises EmptyParticipants if nothing is left."""
    participants = parse_participants(Path(path).read_text(encoding="utf-8"))
    if not participants:
        raise EmptyParticipants()
    return participants


__all__ = ["parse_participants", "load_participants"]
