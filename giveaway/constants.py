"""
Giveaway draw constants.

This module centralizes:
- Topic layout for commitment and reveal gossip
- Hashing and byte-order conventions of the winner selection
- Size guard-rails for inbound payloads

Changing anything in the "selection conventions" block invalidates every
previously published result, since third parties re-derive winners with them.
"""

from __future__ import annotations

# -----------------------------
# Topics
# -----------------------------
DEFAULT_NAMESPACE: str = "nft-giveaway"
TOPIC_VERSION: int = 1
TOPIC_ENCODING: str = "proto"

COMMITS_LEAF: str = "commits"
REVEALS_LEAF: str = "reveals"

# -----------------------------
# Selection conventions
# -----------------------------
HASH_FN: str = "sha256"

# Secrets are joined with no separator after sorting.
ENTROPY_SEPARATOR: str = ""
PARTICIPANT_SEPARATOR: str = "|"
VERIFICATION_SEPARATOR: str = "::"

# Winner index = first 4 digest bytes, big-endian, mod len(participants).
WINNER_INDEX_BYTES: int = 4
WINNER_INDEX_BYTEORDER: str = "big"

# -----------------------------
# Secrets / payloads
# -----------------------------
SECRET_BYTES: int = 32
MAX_PAYLOAD_BYTES: int = 16 * 1024
MAX_SENDER_ID_LEN: int = 256
MAX_SECRET_LEN: int = 1024

__all__ = [
    "DEFAULT_NAMESPACE",
    "TOPIC_VERSION",
    "TOPIC_ENCODING",
    "COMMITS_LEAF",
    "REVEALS_LEAF",
    "HASH_FN",
    "ENTROPY_SEPARATOR",
    "PARTICIPANT_SEPARATOR",
    "VERIFICATION_SEPARATOR",
    "WINNER_INDEX_BYTES",
    "WINNER_INDEX_BYTEORDER",
    "SECRET_BYTES",
    "MAX_PAYLOAD_BYTES",
    "MAX_SENDER_ID_LEN",
    "MAX_SECRET_LEN",
]
