"""
Prometheus metrics for giveaway draws.

This module defines counters and histograms for the core pipeline:
  • commitments — inbound commitments per outcome
  • reveals     — inbound reveals per outcome
  • sessions    — finished sessions per terminal outcome
  • valid_reveals — size of the entropy pool per completed draw

Label cardinality is kept low: only an `outcome` label with a small, finite
vocabulary. No per-session or per-sender labels.

Usage
-----
    from giveaway.metrics import METRICS

    METRICS.record_commitment("accepted")
    METRICS.record_reveal("late")
    METRICS.observe_valid_reveals(3)

Tests construct their own `Metrics(registry=CollectorRegistry())`.
"""

from __future__ import annotations

from typing import Iterable

from prometheus_client import REGISTRY, Counter, Histogram


# --------- Vocabularies (kept small for bounded cardinality) ---------

_COMMIT_OUTCOMES = (
    "accepted",     # recorded for the session
    "duplicate",    # sender already has a commitment, first seen wins
    "late",         # received at or after the commit deadline
    "malformed",    # failed to decode / validate
)

_REVEAL_OUTCOMES = (
    "accepted",     # recorded for the session (verified later)
    "duplicate",    # sender already revealed
    "uncommitted",  # no commitment recorded for the sender
    "late",         # received at or after the reveal deadline
    "malformed",    # failed to decode / validate
    "invalid",      # excluded by verification at the end of the reveal phase
)

_SESSION_OUTCOMES = (
    "complete",
    "cancelled",
    "transport_error",
)

_VALID_REVEAL_BUCKETS = (0.0, 1.0, 2.0, 3.0, 5.0, 8.0, 13.0, 21.0, 34.0, 55.0, 89.0)


class Metrics:
    """
    Container for all giveaway Prometheus instruments.

    Args:
        namespace: Prometheus metric namespace (prefix).
        subsystem: Prometheus metric subsystem.
        registry:  Prometheus registry to register the metrics with.
    """

    def __init__(
        self,
        *,
        namespace: str = "giveaway",
        subsystem: str = "draw",
        registry=REGISTRY,
        valid_reveal_buckets: Iterable[float] = _VALID_REVEAL_BUCKETS,
    ) -> None:
        self.commitments_total = Counter(
            "commitments_total",
            "Inbound commitments processed, labeled by outcome.",
            labelnames=("outcome",),
            namespace=namespace,
            subsystem=subsystem,
            registry=registry,
        )
        self.reveals_total = Counter(
            "reveals_total",
            "Inbound reveals processed, labeled by outcome.",
            labelnames=("outcome",),
            namespace=namespace,
            subsystem=subsystem,
            registry=registry,
        )
        self.sessions_total = Counter(
            "sessions_total",
            "Sessions that reached a terminal state, labeled by outcome.",
            labelnames=("outcome",),
            namespace=namespace,
            subsystem=subsystem,
            registry=registry,
        )
        self.valid_reveals = Histogram(
            "valid_reveals",
            "Number of verified reveals feeding each completed draw.",
            buckets=tuple(valid_reveal_buckets),
            namespace=namespace,
            subsystem=subsystem,
            registry=registry,
        )

    def record_commitment(self, outcome: str) -> None:
        if outcome not in _COMMIT_OUTCOMES:
            outcome = "malformed"
        self.commitments_total.labels(outcome=outcome).inc()

    def record_reveal(self, outcome: str) -> None:
        if outcome not in _REVEAL_OUTCOMES:
            outcome = "malformed"
        self.reveals_total.labels(outcome=outcome).inc()

    def record_session(self, outcome: str) -> None:
        if outcome not in _SESSION_OUTCOMES:
            outcome = "cancelled"
        self.sessions_total.labels(outcome=outcome).inc()

    def observe_valid_reveals(self, n: int) -> None:
        self.valid_reveals.observe(float(n))


# Singleton used by default
METRICS = Metrics()

__all__ = [
    "Metrics",
    "METRICS",
    "_COMMIT_OUTCOMES",
    "_REVEAL_OUTCOMES",
    "_SESSION_OUTCOMES",
]
