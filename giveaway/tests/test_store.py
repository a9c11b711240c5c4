import pytest

from giveaway.commit_reveal.commit import commit
from giveaway.commit_reveal.select import build_result, verify_transcript
from giveaway.store.sqlite import ResultArchive
from giveaway.types.core import AuditTranscript, Commitment, Reveal


def mk_draw(organizer: str, secret: str, ts: int):
    cs = [Commitment(sender_id=organizer, commitment_hash=commit(secret), published_at=ts)]
    rs = [Reveal(sender_id=organizer, secret=secret, published_at=ts)]
    result = build_result(
        participants=["A", "B", "C"],
        organizer_id=organizer,
        commitments=cs,
        valid_reveals=rs,
        timestamp=ts,
    )
    return result, AuditTranscript(organizer_id=organizer, commitments=tuple(cs), valid_reveals=tuple(rs))


@pytest.fixture()
def archive(tmp_path):
    with ResultArchive(str(tmp_path / "sub" / "draws.db")) as a:
        yield a


def test_put_get_roundtrip_keeps_result_verifiable(archive):
    result, transcript = mk_draw("org", "x", 1_000)
    assert archive.put(result, transcript)
    got = archive.get(result.verification_hash)
    assert got is not None
    assert got.result == result
    assert got.transcript == transcript
    assert verify_transcript(got.result, got.transcript)


def test_put_is_write_once(archive):
    result, transcript = mk_draw("org", "x", 1_000)
    assert archive.put(result, transcript)
    assert not archive.put(result)
    assert len(archive) == 1


def test_result_without_transcript(archive):
    result, _ = mk_draw("org", "y", 5)
    archive.put(result)
    assert archive.get(result.verification_hash).transcript is None


def test_get_missing(archive):
    assert archive.get(commit("nothing")) is None


def test_recent_is_newest_first(archive):
    draws = [mk_draw("org", s, ts) for s, ts in (("a", 10), ("b", 30), ("c", 20))]
    for result, transcript in draws:
        archive.put(result, transcript)
    assert [d.result.timestamp for d in archive.recent()] == [30, 20, 10]
    assert [d.result.timestamp for d in archive.recent(2)] == [30, 20]
    assert archive.recent(0) == []


def test_archive_persists_across_reopen(tmp_path):
    path = str(tmp_path / "draws.db")
    result, transcript = mk_draw("org", "x", 7)
    with ResultArchive(path) as a:
        a.put(result, transcript)
    with ResultArchive(path) as a:
        assert a.get(result.verification_hash).result == result
