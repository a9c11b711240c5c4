import json

import pytest

from giveaway.adapters.gossip import (commit_topic, decode_commit,
                                      decode_reveal, encode_commit,
                                      encode_reveal, reveal_topic)
from giveaway.commit_reveal.commit import commit
from giveaway.constants import MAX_SECRET_LEN
from giveaway.errors import MalformedMessage
from giveaway.types.core import Commitment, Reveal


def test_topic_layout():
    assert commit_topic("nft-giveaway") == "/nft-giveaway/1/commits/proto"
    assert reveal_topic("nft-giveaway") == "/nft-giveaway/1/reveals/proto"
    assert commit_topic("other") != commit_topic("nft-giveaway")


def test_wire_fields_are_camel_case():
    c = Commitment(sender_id="0xabc", commitment_hash=commit("s"), published_at=1_700_000_000_000)
    wire = json.loads(encode_commit(c))
    assert wire == {"senderId": "0xabc", "commitment": commit("s"), "timestamp": 1_700_000_000_000}

    r = Reveal(sender_id="0xabc", secret="s", published_at=5)
    assert json.loads(encode_reveal(r)) == {"senderId": "0xabc", "secret": "s", "timestamp": 5}


def test_decode_accepts_what_peers_send():
    c = Commitment(sender_id="peer", commitment_hash=commit("s"), published_at=9)
    assert decode_commit(encode_commit(c)) == c
    r = Reveal(sender_id="peer", secret="s", published_at=9)
    assert decode_reveal(encode_reveal(r)) == r


def test_uppercase_commitment_is_normalized():
    payload = json.dumps(
        {"senderId": "peer", "commitment": commit("s").upper(), "timestamp": 1}
    ).encode()
    assert decode_commit(payload).commitment_hash == commit("s")


def test_unknown_fields_are_ignored():
    payload = json.dumps(
        {"senderId": "peer", "secret": "s", "timestamp": 1, "extra": [1, 2]}
    ).encode()
    assert decode_reveal(payload).secret == "s"


@pytest.mark.parametrize(
    "payload",
    [
        b"not json",
        b"[]",
        b'{"senderId": "p", "timestamp": 1}',  # missing commitment
        b'{"senderId": "p", "commitment": "abc", "timestamp": 1}',  # not a digest
        b'{"senderId": "", "commitment": "' + commit("s").encode() + b'", "timestamp": 1}',
        b'{"senderId": "p", "commitment": "' + commit("s").encode() + b'", "timestamp": -1}',
        b'{"senderId": 7, "commitment": "' + commit("s").encode() + b'", "timestamp": 1}',
    ],
)
def test_malformed_commit_frames(payload: bytes):
    with pytest.raises(MalformedMessage):
        decode_commit(payload, topic=commit_topic("nft-giveaway"))


def test_oversized_frames_are_rejected():
    r = Reveal(sender_id="peer", secret="s" * 100, published_at=1)
    with pytest.raises(MalformedMessage):
        decode_reveal(encode_reveal(r), max_bytes=50)


def test_long_secret_is_rejected():
    r = Reveal(sender_id="peer", secret="s" * (MAX_SECRET_LEN + 1), published_at=1)
    with pytest.raises(MalformedMessage) as ei:
        decode_reveal(encode_reveal(r), topic="t")
    assert ei.value.topic == "t"
