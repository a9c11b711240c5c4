# Copyright (c) giveaway-draw authors.
# SPDX-License-Identifier: MIT
"""
Commitment construction for giveaway commit–reveal.

Definition
----------
C = hex( SHA-256( utf8(secret) ) )

- No domain tag and no sender binding: the sender is bound by the gossip
  message and by first-seen-wins recording, and third parties recompute C
  from the published secret alone.
- Output is always lowercase hex, so equal secrets give equal strings.

This module provides `commit(...)`, `verify_commitment(...)`, the raw
`sha256_hex(...)` used by selection, and `generate_secret()`.
"""

from __future__ import annotations

import secrets
from hashlib import sha256
from typing import Union

from giveaway.constants import SECRET_BYTES

SecretLike = Union[str, bytes, bytearray, memoryview]


def _as_bytes(x: SecretLike) -> bytes:
    if isinstance(x, str):
        return x.encode("utf-8")
    if isinstance(x, (bytes, bytearray, memoryview)):
        return bytes(x)
    raise TypeError("expected str or bytes-like object")


def sha256_hex(data: SecretLike) -> str:
    """Return lowercase hex SHA-256 of `data` (str is UTF-8 encoded)."""
    return sha256(_as_bytes(data)).hexdigest()


def commit(secret: SecretLike) -> str:
    """
    Compute the commitment for `secret`.

    Total over any string or bytes input; deterministic.
    """
    return sha256_hex(secret)


def verify_commitment(commitment_hash: str, secret: SecretLike) -> bool:
    """
    True iff `secret` hashes to `commitment_hash`.

    Hex comparison is case-insensitive. The hash itself is public, so a plain
    equality check is enough.
    """
    if not isinstance(commitment_hash, str):
        return False
    return commit(secret) == commitment_hash.lower()


def generate_secret(nbytes: int = SECRET_BYTES) -> str:
    """Fresh hex secret for a sender that does not bring its own."""
    if nbytes < 16:
        raise ValueError("secrets shorter than 16 bytes are too guessable")
    return secrets.token_hex(nbytes)


__all__ = [
    "sha256_hex",
    "commit",
    "verify_commitment",
    "generate_secret",
]
