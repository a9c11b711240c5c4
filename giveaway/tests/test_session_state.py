import pytest

from giveaway.commit_reveal.commit import commit
from giveaway.errors import DuplicateContribution, EmptyParticipants, PhaseError
from giveaway.types.core import AuditTranscript, Commitment, GiveawayResult, Reveal
from giveaway.types.state import GiveawaySession, Phase


def mk_session(**kw) -> GiveawaySession:
    args = dict(
        organizer_id="org",
        commit_window_s=30.0,
        reveal_window_s=30.0,
        namespace="nft-giveaway",
        now=100.0,
    )
    args.update(kw)
    return GiveawaySession.create(["A", "B", "C"], **args)


def c(sender: str, secret: str = "s") -> Commitment:
    return Commitment(sender_id=sender, commitment_hash=commit(secret), published_at=1)


def r(sender: str, secret: str = "s") -> Reveal:
    return Reveal(sender_id=sender, secret=secret, published_at=1)


def test_new_session_is_idle():
    s = mk_session()
    assert s.phase is Phase.IDLE
    assert s.result is None
    assert (s.commit_deadline, s.reveal_deadline) == (130.0, 160.0)
    assert s.participants == ("A", "B", "C")


def test_invalid_sessions():
    with pytest.raises(EmptyParticipants):
        GiveawaySession.create([], organizer_id="o", commit_window_s=1, reveal_window_s=1, namespace="n")
    with pytest.raises(ValueError):
        mk_session(commit_window_s=0)
    with pytest.raises(ValueError):
        mk_session(organizer_id="")


def test_first_commitment_wins():
    s = mk_session()
    assert s.add_commitment(c("bob", "1"))
    assert not s.add_commitment(c("bob", "2"))
    assert s.commitments["bob"].commitment_hash == commit("1")
    with pytest.raises(DuplicateContribution):
        s.add_commitment(c("bob", "3"), strict=True)


def test_reveal_requires_commitment():
    s = mk_session()
    assert not s.add_reveal(r("ghost"))
    s.add_commitment(c("bob"))
    assert s.add_reveal(r("bob"))
    assert not s.add_reveal(r("bob", "other"))
    with pytest.raises(DuplicateContribution):
        s.add_reveal(r("bob"), strict=True)


def test_lists_are_sender_ordered():
    s = mk_session()
    for name in ("zed", "amy", "kim"):
        s.add_commitment(c(name))
    assert [x.sender_id for x in s.commitment_list()] == ["amy", "kim", "zed"]


def test_progress_counts_and_remaining_time():
    s = mk_session()
    s.add_commitment(c("org"))
    s.phase = Phase.COMMITTING
    p = s.progress(110.0)
    assert (p.phase, p.commitments, p.reveals) == (Phase.COMMITTING, 1, 0)
    assert p.remaining_s == pytest.approx(20.0)
    s.phase = Phase.REVEALING
    assert s.progress(150.0).remaining_s == pytest.approx(10.0)
    s.phase = Phase.COMPLETE
    assert s.progress(150.0).remaining_s == 0.0


def test_claim_is_exclusive():
    s = mk_session()
    owner = object()
    s.claim(owner)
    s.claim(owner)
    with pytest.raises(PhaseError):
        s.claim(object())


def test_terminal_phases():
    assert Phase.COMPLETE.terminal and Phase.CANCELLED.terminal
    assert not Phase.REVEALING.terminal


def test_records_validate_and_serialize():
    with pytest.raises(ValueError):
        Commitment(sender_id="a", commitment_hash="xyz", published_at=1)
    with pytest.raises(ValueError):
        Commitment(sender_id="", commitment_hash=commit("a"), published_at=1)

    res = GiveawayResult(
        winner="A",
        timestamp=5,
        participants=["A", "B"],
        random_seed=commit("seed"),
        verification_hash=commit("v"),
    )
    assert res.participants == ("A", "B")
    d = res.to_dict()
    assert set(d) == {"winner", "timestamp", "participants", "randomSeed", "verificationHash"}
    assert GiveawayResult.from_dict(d) == res

    t = AuditTranscript(organizer_id="org", commitments=(c("b"), c("a")), valid_reveals=(r("b"), r("a")))
    assert [x.sender_id for x in t.commitments] == ["a", "b"]
    assert AuditTranscript.from_dict(t.to_dict()) == t
