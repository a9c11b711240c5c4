# Copyright (c) giveaway-draw authors.
# SPDX-License-Identifier: MIT
"""
Deterministic winner selection from verified reveals.

Pipeline
--------
1. entropy        = concat( sorted(secret.encode("utf-8") for each valid reveal) )
2. random_seed    = SHA-256(entropy)                                  (hex)
3. digest         = SHA-256( "|".join(participants) + "|" + random_seed )  (hex)
4. winner_index   = uint32_be(digest[0:4]) mod len(participants)
5. winner         = participants[winner_index]
6. verification_hash = SHA-256( "::".join([
         "|".join(participants), winner, random_seed, organizer_id,
         canonical_json(commitments), canonical_json(valid_reveals),
         str(timestamp) ]) )

Steps 1–5 depend only on the valid reveals and the participant list, so
arrival order never changes the outcome. Step 6 binds the result's own
published `timestamp`, which makes it reproducible from a result plus its
AuditTranscript.

Byte order is fixed big-endian: the first 8 hex characters of the digest are
read as an unsigned integer. Changing this breaks every published result.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Union

from giveaway.commit_reveal.commit import commit, sha256_hex
from giveaway.commit_reveal.verify import verify_reveals
from giveaway.constants import (
    ENTROPY_SEPARATOR,
    PARTICIPANT_SEPARATOR,
    VERIFICATION_SEPARATOR,
    WINNER_INDEX_BYTEORDER,
    WINNER_INDEX_BYTES,
)
from giveaway.errors import EmptyParticipants
from giveaway.types.core import (
    AuditTranscript,
    Commitment,
    GiveawayResult,
    Participant,
    Reveal,
)

logger = logging.getLogger(__name__)

SecretsLike = Iterable[Union[Reveal, str]]


# -------- helpers --------


def _secret_of(x: Union[Reveal, str]) -> str:
    return x.secret if isinstance(x, Reveal) else x


def _canonical_json(items: Iterable[Union[Commitment, Reveal]]) -> str:
    rows = [i.to_dict() for i in sorted(items, key=lambda i: i.sender_id)]
    return json.dumps(rows, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


# -------- steps --------


def canonical_entropy(valid_reveals: SecretsLike) -> str:
    """Sort secrets by their UTF-8 bytes and concatenate them."""
    ordered = sorted((_secret_of(x) for x in valid_reveals), key=lambda s: s.encode("utf-8"))
    return ENTROPY_SEPARATOR.join(ordered)


def derive_seed(valid_reveals: SecretsLike) -> str:
    """random_seed = commit(canonical_entropy(...)). Empty pool hashes the empty string."""
    return commit(canonical_entropy(valid_reveals))


def participants_digest(participants: Sequence[Participant], random_seed: str) -> str:
    data = PARTICIPANT_SEPARATOR.join(participants) + PARTICIPANT_SEPARATOR + random_seed
    return sha256_hex(data)


def winner_index(participants: Sequence[Participant], random_seed: str) -> int:
    """
    Index of the winner in `participants` for `random_seed`.

    Raises
    ------
    EmptyParticipants
        If `participants` is empty.
    """
    if len(participants) == 0:
        raise EmptyParticipants()
    digest = participants_digest(participants, random_seed)
    head = bytes.fromhex(digest[: 2 * WINNER_INDEX_BYTES])
    return int.from_bytes(head, WINNER_INDEX_BYTEORDER, signed=False) % len(participants)


def verification_hash(
    *,
    participants: Sequence[Participant],
    winner: Participant,
    random_seed: str,
    organizer_id: str,
    commitments: Iterable[Commitment],
    valid_reveals: Iterable[Reveal],
    timestamp: int,
) -> str:
    data = VERIFICATION_SEPARATOR.join(
        [
            PARTICIPANT_SEPARATOR.join(participants),
            winner,
            random_seed,
            organizer_id,
            _canonical_json(commitments),
            _canonical_json(valid_reveals),
            str(int(timestamp)),
        ]
    )
    return sha256_hex(data)


# -------- convenience API --------


@dataclass(frozen=True, slots=True)
class Selection:
    """Outcome of steps 1–5, before anything session-specific is bound."""
    winner_index: int
    winner: Participant
    random_seed: str


def select(valid_reveals: SecretsLike, participants: Sequence[Participant]) -> Selection:
    """Pure, deterministic: identical inputs give bit-identical outputs."""
    if len(participants) == 0:
        raise EmptyParticipants()
    seed = derive_seed(valid_reveals)
    idx = winner_index(participants, seed)
    return Selection(winner_index=idx, winner=participants[idx], random_seed=seed)


def build_result(
    *,
    participants: Sequence[Participant],
    organizer_id: str,
    commitments: Iterable[Commitment],
    valid_reveals: Iterable[Reveal],
    timestamp: Optional[int] = None,
) -> GiveawayResult:
    """Run selection and seal it into a GiveawayResult."""
    commitments = list(commitments)
    valid_reveals = list(valid_reveals)
    ts = int(time.time() * 1000) if timestamp is None else int(timestamp)
    sel = select(valid_reveals, participants)
    vhash = verification_hash(
        participants=participants,
        winner=sel.winner,
        random_seed=sel.random_seed,
        organizer_id=organizer_id,
        commitments=commitments,
        valid_reveals=valid_reveals,
        timestamp=ts,
    )
    logger.debug(
        "selected index=%d of %d from %d valid reveals",
        sel.winner_index,
        len(participants),
        len(valid_reveals),
    )
    return GiveawayResult(
        winner=sel.winner,
        timestamp=ts,
        participants=tuple(participants),
        random_seed=sel.random_seed,
        verification_hash=vhash,
    )


# -------- public verification --------


def verify_result(result: GiveawayResult, organizer_id: str) -> bool:
    """
    Offline re-derivation of the winner from the published result.

    Recomputes the participants digest from `result.participants` and
    `result.random_seed` and checks the winner. `organizer_id` is bound only
    into the verification hash; see `verify_transcript` for a full audit.
    Never raises on a malformed result; returns False instead.
    """
    try:
        idx = winner_index(result.participants, result.random_seed)
    except (EmptyParticipants, ValueError, TypeError) as e:
        logger.debug("result for organizer=%s failed verification: %s", organizer_id, e)
        return False
    return result.participants[idx] == result.winner


def verify_transcript(result: GiveawayResult, transcript: AuditTranscript) -> bool:
    """
    Full audit: re-verify the transcript's reveals against its commitments,
    recompute random_seed, the winner and the verification hash.
    """
    rechecked = verify_reveals(transcript.commitments, transcript.valid_reveals)
    if len(rechecked) != len(transcript.valid_reveals):
        return False
    if derive_seed(rechecked) != result.random_seed:
        return False
    if not verify_result(result, transcript.organizer_id):
        return False
    expected = verification_hash(
        participants=result.participants,
        winner=result.winner,
        random_seed=result.random_seed,
        organizer_id=transcript.organizer_id,
        commitments=transcript.commitments,
        valid_reveals=rechecked,
        timestamp=result.timestamp,
    )
    return expected == result.verification_hash


__all__ = [
    "Selection",
    "canonical_entropy",
    "derive_seed",
    "participants_digest",
    "winner_index",
    "verification_hash",
    "select",
    "build_result",
    "verify_result",
    "verify_transcript",
]
