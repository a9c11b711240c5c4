import dataclasses
import hashlib
import itertools

import pytest

from giveaway.commit_reveal.commit import commit
from giveaway.commit_reveal.select import (build_result, canonical_entropy,
                                           derive_seed, select,
                                           verification_hash, verify_result,
                                           verify_transcript, winner_index)
from giveaway.errors import EmptyParticipants
from giveaway.types.core import AuditTranscript, Commitment, Reveal

PARTICIPANTS = ["A", "B", "C"]


def h(s: str) -> str:
    return hashlib.sha256(s.encode("utf-8")).hexdigest()


def expected_index(participants, seed: str) -> int:
    digest = h("|".join(participants) + "|" + seed)
    return int(digest[:8], 16) % len(participants)


def mk_pool(secrets_by_sender):
    cs = [
        Commitment(sender_id=s, commitment_hash=commit(v), published_at=1)
        for s, v in secrets_by_sender.items()
    ]
    rs = [Reveal(sender_id=s, secret=v, published_at=2) for s, v in secrets_by_sender.items()]
    return cs, rs


def test_seed_is_hash_of_sorted_concatenated_secrets():
    cs, rs = mk_pool({"s1": "y", "s2": "x"})
    assert canonical_entropy(rs) == "xy"
    assert derive_seed(rs) == h("xy")


def test_empty_pool_seed_is_hash_of_empty_string():
    assert derive_seed([]) == h("")


def test_winner_index_matches_independent_computation():
    seed = h("xy")
    idx = winner_index(PARTICIPANTS, seed)
    assert idx == expected_index(PARTICIPANTS, seed)
    assert 0 <= idx < 3


@pytest.mark.parametrize("n", [1, 2, 7, 100])
def test_index_always_in_range(n: int):
    participants = [f"p{i}" for i in range(n)]
    for k in range(20):
        assert 0 <= winner_index(participants, h(str(k))) < n


def test_single_participant_always_wins():
    sel = select(["x", "y"], ["only"])
    assert sel.winner == "only" and sel.winner_index == 0


def test_empty_participants_raise():
    with pytest.raises(EmptyParticipants):
        winner_index([], h("x"))
    with pytest.raises(EmptyParticipants):
        select(["x"], [])
    with pytest.raises(EmptyParticipants):
        build_result(participants=[], organizer_id="org", commitments=[], valid_reveals=[])


def test_selection_ignores_reveal_order():
    _, rs = mk_pool({"a": "alpha", "b": "beta", "c": "gamma"})
    outcomes = {select(list(p), PARTICIPANTS) for p in itertools.permutations(rs)}
    assert len(outcomes) == 1


def test_participant_order_matters():
    seed = h("xy")
    # the list order is part of the hashed data; differing orders are different draws
    assert h("|".join(["A", "B", "C"]) + "|" + seed) != h("|".join(["C", "B", "A"]) + "|" + seed)


def test_end_to_end_three_participants_two_secrets():
    cs, rs = mk_pool({"alice": "x", "bob": "y"})
    result = build_result(
        participants=PARTICIPANTS,
        organizer_id="alice",
        commitments=cs,
        valid_reveals=rs,
        timestamp=1_700_000_000_000,
    )
    assert result.random_seed == h("xy")
    assert result.winner == PARTICIPANTS[expected_index(PARTICIPANTS, h("xy"))]
    assert result.participants == tuple(PARTICIPANTS)
    assert result.timestamp == 1_700_000_000_000

    assert verify_result(result, "alice")
    tampered = dataclasses.replace(
        result, winner=next(p for p in PARTICIPANTS if p != result.winner)
    )
    assert not verify_result(tampered, "alice")


def test_verification_hash_binds_every_input():
    cs, rs = mk_pool({"alice": "x", "bob": "y"})
    base = dict(
        participants=PARTICIPANTS,
        winner="B",
        random_seed=h("xy"),
        organizer_id="alice",
        commitments=cs,
        valid_reveals=rs,
        timestamp=42,
    )
    ref = verification_hash(**base)
    assert ref == verification_hash(**{**base, "commitments": list(reversed(cs))})
    for key, value in [
        ("winner", "C"),
        ("organizer_id", "bob"),
        ("timestamp", 43),
        ("valid_reveals", rs[:1]),
        ("participants", ["A", "B"]),
    ]:
        assert verification_hash(**{**base, key: value}) != ref


def test_verify_result_is_false_on_malformed_input():
    cs, rs = mk_pool({"alice": "x"})
    result = build_result(participants=PARTICIPANTS, organizer_id="alice", commitments=cs, valid_reveals=rs)
    assert not verify_result(dataclasses.replace(result, participants=()), "alice")


def test_verify_transcript_full_audit():
    cs, rs = mk_pool({"alice": "x", "bob": "y"})
    result = build_result(participants=PARTICIPANTS, organizer_id="alice", commitments=cs, valid_reveals=rs)
    transcript = AuditTranscript(organizer_id="alice", commitments=tuple(cs), valid_reveals=tuple(rs))
    assert verify_transcript(result, transcript)

    # swapped organizer
    other = AuditTranscript(organizer_id="bob", commitments=tuple(cs), valid_reveals=tuple(rs))
    assert not verify_transcript(result, other)

    # a reveal that does not match its commitment
    forged = AuditTranscript(
        organizer_id="alice",
        commitments=tuple(cs),
        valid_reveals=(rs[0], Reveal(sender_id="bob", secret="z", published_at=2)),
    )
    assert not verify_transcript(result, forged)

    # dropping a reveal changes the seed
    partial = AuditTranscript(organizer_id="alice", commitments=tuple(cs), valid_reveals=tuple(rs[:1]))
    assert not verify_transcript(result, partial)
