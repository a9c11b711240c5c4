# Copyright (c) giveaway-draw authors.
# SPDX-License-Identifier: MIT
"""
Verify reveals against the commitments recorded for a session.

For every reveal we look up the commitment from the same sender and
recompute commit(secret). A reveal survives only if both exist and match.

Failures are *excluded*, never raised: a cheating or buggy sender must not
be able to stall a draw. Callers that want a hard error for one reveal use
`check_reveal(...)`.
"""

from __future__ import annotations

import logging
from typing import Iterable, List, Mapping, Optional, Union

from giveaway.commit_reveal.commit import commit
from giveaway.errors import InvalidReveal
from giveaway.metrics import METRICS, Metrics
from giveaway.types.core import Commitment, Reveal

logger = logging.getLogger(__name__)

CommitmentsLike = Union[Mapping[str, Commitment], Iterable[Commitment]]


def _index(commitments: CommitmentsLike) -> Mapping[str, Commitment]:
    if isinstance(commitments, Mapping):
        return commitments
    out: dict[str, Commitment] = {}
    for c in commitments:
        # first seen wins, same policy as the session maps
        out.setdefault(c.sender_id, c)
    return out


def check_reveal(commitments: CommitmentsLike, reveal: Reveal) -> None:
    """
    Strict single-reveal check.

    Raises
    ------
    InvalidReveal
        If the sender has no commitment, or the secret does not hash to it.
    """
    idx = _index(commitments)
    got = commit(reveal.secret)
    c = idx.get(reveal.sender_id)
    if c is None:
        raise InvalidReveal(reveal.sender_id, None, got)
    if got != c.commitment_hash:
        raise InvalidReveal(reveal.sender_id, c.commitment_hash, got)


def verify_reveals(
    commitments: CommitmentsLike,
    reveals: Iterable[Reveal],
    *,
    metrics: Optional[Metrics] = None,
) -> List[Reveal]:
    """
    Return the valid subset of `reveals`, ordered by sender id.

    Parameters
    ----------
    commitments : mapping sender_id → Commitment, or an iterable of Commitment
    reveals : iterable of Reveal (one per sender is expected; later repeats are ignored)
    """
    m = metrics or METRICS
    idx = _index(commitments)
    valid: dict[str, Reveal] = {}
    seen: set[str] = set()
    for r in reveals:
        # first reveal per sender is the only one judged, valid or not
        if r.sender_id in seen:
            continue
        seen.add(r.sender_id)
        try:
            check_reveal(idx, r)
        except InvalidReveal as e:
            logger.debug("excluding reveal: %s", e)
            m.record_reveal("invalid")
            continue
        valid[r.sender_id] = r
    return [valid[k] for k in sorted(valid)]


__all__ = [
    "check_reveal",
    "verify_reveals",
]
