import pytest
from prometheus_client import CollectorRegistry

from giveaway.commit_reveal.commit import commit
from giveaway.commit_reveal.verify import check_reveal, verify_reveals
from giveaway.errors import InvalidReveal
from giveaway.metrics import Metrics
from giveaway.types.core import Commitment, Reveal


def mk_commit(sender: str, secret: str) -> Commitment:
    return Commitment(sender_id=sender, commitment_hash=commit(secret), published_at=1)


def mk_reveal(sender: str, secret: str) -> Reveal:
    return Reveal(sender_id=sender, secret=secret, published_at=2)


@pytest.fixture()
def metrics():
    reg = CollectorRegistry()
    return Metrics(registry=reg), reg


def test_all_valid_reveals_kept_in_sender_order(metrics):
    m, _ = metrics
    cs = [mk_commit("bob", "b"), mk_commit("alice", "a")]
    rs = [mk_reveal("bob", "b"), mk_reveal("alice", "a")]
    out = verify_reveals(cs, rs, metrics=m)
    assert [r.sender_id for r in out] == ["alice", "bob"]


def test_reveal_only_sender_is_excluded(metrics):
    m, reg = metrics
    cs = [mk_commit("alice", "a")]
    rs = [mk_reveal("alice", "a"), mk_reveal("mallory", "m")]
    out = verify_reveals(cs, rs, metrics=m)
    assert [r.sender_id for r in out] == ["alice"]
    assert reg.get_sample_value("giveaway_draw_reveals_total", {"outcome": "invalid"}) == 1.0


def test_tampered_reveal_is_excluded(metrics):
    m, _ = metrics
    cs = {"alice": mk_commit("alice", "a"), "bob": mk_commit("bob", "b")}
    rs = [mk_reveal("alice", "a"), mk_reveal("bob", "not-b")]
    out = verify_reveals(cs, rs, metrics=m)
    assert [r.sender_id for r in out] == ["alice"]


def test_committed_but_silent_sender_contributes_nothing(metrics):
    m, _ = metrics
    cs = [mk_commit("alice", "a"), mk_commit("bob", "b")]
    out = verify_reveals(cs, [mk_reveal("alice", "a")], metrics=m)
    assert [r.sender_id for r in out] == ["alice"]


def test_first_commitment_per_sender_wins(metrics):
    m, _ = metrics
    cs = [mk_commit("carol", "c1"), mk_commit("carol", "c2")]
    assert verify_reveals(cs, [mk_reveal("carol", "c2")], metrics=m) == []
    assert len(verify_reveals(cs, [mk_reveal("carol", "c1")], metrics=m)) == 1


def test_repeat_reveals_use_the_first(metrics):
    m, _ = metrics
    cs = [mk_commit("alice", "a")]
    out = verify_reveals(cs, [mk_reveal("alice", "a"), mk_reveal("alice", "zzz")], metrics=m)
    assert out == [mk_reveal("alice", "a")]


def test_failed_first_reveal_cannot_be_retried(metrics):
    m, reg = metrics
    cs = [mk_commit("alice", "a")]
    out = verify_reveals(cs, [mk_reveal("alice", "wrong"), mk_reveal("alice", "a")], metrics=m)
    assert out == []
    assert reg.get_sample_value("giveaway_draw_reveals_total", {"outcome": "invalid"}) == 1.0


def test_empty_inputs(metrics):
    m, _ = metrics
    assert verify_reveals([], [], metrics=m) == []


def test_check_reveal_strict_errors():
    cs = [mk_commit("alice", "a")]
    check_reveal(cs, mk_reveal("alice", "a"))

    with pytest.raises(InvalidReveal) as ei:
        check_reveal(cs, mk_reveal("alice", "b"))
    assert ei.value.expected == commit("a")
    assert ei.value.got == commit("b")

    with pytest.raises(InvalidReveal) as ei:
        check_reveal(cs, mk_reveal("bob", "b"))
    assert ei.value.expected is None
