# Copyright (c) giveaway-draw authors.
# SPDX-License-Identifier: MIT
"""
Phase coordinator for one giveaway session.

State machine
-------------

    IDLE ──start()──▶ COMMITTING ──commit deadline──▶ REVEALING ──reveal deadline──▶ COMPLETE
      │                   │                               │
      └───────────────────┴────────── cancel() ───────────┴──────────────▶ CANCELLED

* listen(): optional, opens the inbound channels while still IDLE.
* start(): generate (or accept) the local secret, record the local
  commitment, open the inbound channels, publish the commitment.
* COMMITTING: first commitment per sender wins; repeats are dropped.
* commit deadline: publish and record the local reveal.
* REVEALING: first reveal per *committed* sender wins; others are dropped.
* reveal deadline: verify reveals, select the winner, seal the result,
  close the channels.
* cancel(): from IDLE/COMMITTING/REVEALING, exactly once, no result.

Concurrency
-----------
The task running `run()` is the only writer of the session. Inbound frames
wait in per-topic queues until that task drains them; it suspends only on
"next frame or phase deadline, whichever comes first", so message volume
never moves a deadline. A frame *received* at or after the deadline is late
even if the task has not yet noticed the deadline passing.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Callable, Optional

from giveaway.adapters.gossip import GiveawayGossip
from giveaway.adapters.transport import Envelope, Subscription, Transport
from giveaway.commit_reveal.commit import commit, generate_secret
from giveaway.commit_reveal.deadlines import PhaseWindows, Window
from giveaway.commit_reveal.select import build_result
from giveaway.commit_reveal.verify import verify_reveals
from giveaway.config import GiveawayConfig
from giveaway.constants import MAX_PAYLOAD_BYTES
from giveaway.errors import MalformedMessage, PhaseError, SessionCancelled, TransportError
from giveaway.metrics import METRICS, Metrics
from giveaway.types.core import AuditTranscript, Commitment, GiveawayResult, Participant, Reveal
from giveaway.types.state import GiveawaySession, Phase, SessionProgress

logger = logging.getLogger(__name__)

Clock = Callable[[], float]
ProgressListener = Callable[[SessionProgress], None]


def _millis(t: float) -> int:
    return int(t * 1000)


class PhaseCoordinator:
    """
    Drives one GiveawaySession from IDLE to COMPLETE or CANCELLED.

    Parameters
    ----------
    transport: Transport
        Started pub/sub transport. Owned by the caller; may be shared.
    clock: callable
        UNIX-seconds clock. Must agree with the transport's delivery stamps.
    metrics: Metrics
        Prometheus instruments (defaults to the process-wide METRICS).
    on_progress: callable
        Called with a SessionProgress after every phase change and every
        accepted commitment or reveal. Exceptions propagate into run().
    max_payload_bytes: int
        Inbound frames above this size are dropped as malformed.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        clock: Clock = time.time,
        metrics: Optional[Metrics] = None,
        on_progress: Optional[ProgressListener] = None,
        max_payload_bytes: int = MAX_PAYLOAD_BYTES,
    ) -> None:
        self._transport = transport
        self._clock = clock
        self._metrics = metrics or METRICS
        self._on_progress = on_progress
        self._max_payload = max_payload_bytes
        self._session: Optional[GiveawaySession] = None
        self._windows: Optional[PhaseWindows] = None
        self._gossip: Optional[GiveawayGossip] = None
        self._secret: Optional[str] = None
        self._transcript: Optional[AuditTranscript] = None
        self._task: Optional[asyncio.Task] = None
        self._cancel_reason: Optional[str] = None

    # ---- Introspection ----

    @property
    def session(self) -> Optional[GiveawaySession]:
        return self._session

    @property
    def phase(self) -> Phase:
        return self._session.phase if self._session is not None else Phase.IDLE

    @property
    def transcript(self) -> Optional[AuditTranscript]:
        """Commitments and verified reveals behind the result, once COMPLETE."""
        return self._transcript

    def progress(self) -> SessionProgress:
        if self._session is None:
            raise PhaseError("no session attached")
        return self._session.progress(self._clock())

    # ---- Transitions ----

    def attach(self, session: GiveawaySession) -> None:
        """Claim `session` without starting it (it stays IDLE)."""
        if self._session is not None and self._session is not session:
            raise PhaseError("coordinator already drives another session")
        session.claim(self)
        self._session = session
        self._windows = PhaseWindows.for_session(session)

    async def listen(self, session: Optional[GiveawaySession] = None) -> None:
        """
        Open the inbound channels of an IDLE session without publishing.

        Peers that start together call this first, so no commitment is
        published before every peer is subscribed. start() reuses the channels.
        """
        if session is not None:
            self.attach(session)
        s = self._require_session()
        if s.phase is not Phase.IDLE:
            raise PhaseError(f"cannot listen on session {s.session_id} in phase {s.phase.value}")
        try:
            await self._channels(s).open()
        except TransportError as e:
            await self._finish_cancel("transport", outcome="transport_error", error=e)
            raise

    async def start(
        self, session: Optional[GiveawaySession] = None, *, secret: Optional[str] = None
    ) -> Commitment:
        """
        IDLE → COMMITTING. Returns the local commitment.

        Raises
        ------
        TransportError
            If opening the channels or publishing fails; the session is
            CANCELLED before the error propagates.
        """
        if session is not None:
            self.attach(session)
        s = self._require_session()
        if s.phase is not Phase.IDLE:
            raise PhaseError(f"cannot start session {s.session_id} in phase {s.phase.value}")

        self._secret = secret if secret is not None else generate_secret()
        own = Commitment(
            sender_id=s.organizer_id,
            commitment_hash=commit(self._secret),
            published_at=_millis(self._clock()),
        )
        s.add_commitment(own)
        self._set_phase(Phase.COMMITTING)
        logger.info("session %s: %s", s.session_id, self._windows.describe())

        try:
            await self._channels(s).open()
            await self._gossip.announce_commit(own)
        except TransportError as e:
            await self._finish_cancel("transport", outcome="transport_error", error=e)
            raise
        return own

    async def run(
        self, session: Optional[GiveawaySession] = None, *, secret: Optional[str] = None
    ) -> GiveawayResult:
        """
        Drive the session to a terminal state.

        Starts it first if it is still IDLE. Returns the GiveawayResult, or
        raises SessionCancelled / TransportError.
        """
        if session is not None:
            self.attach(session)
        s = self._require_session()
        if s.phase is Phase.CANCELLED:
            raise SessionCancelled(s.session_id, self._cancel_reason)
        if s.phase not in (Phase.IDLE, Phase.COMMITTING):
            raise PhaseError(f"cannot run session {s.session_id} in phase {s.phase.value}")
        if self._task is not None:
            raise PhaseError(f"session {s.session_id} is already running")

        self._task = asyncio.current_task()
        try:
            if s.phase is Phase.IDLE:
                await self.start(secret=secret)
            await self._drain(self._gossip.commits, Window.COMMIT, self._ingest_commit)
            await self._enter_reveal()
            await self._drain(self._gossip.reveals, Window.REVEAL, self._ingest_reveal)
            return await self._complete()
        except asyncio.CancelledError:
            reason = self._cancel_reason
            await self._finish_cancel(reason or "task-cancelled")
            if reason is None:
                raise
            raise SessionCancelled(s.session_id, reason) from None
        except TransportError as e:
            await self._finish_cancel("transport", outcome="transport_error", error=e)
            raise
        finally:
            self._task = None

    async def cancel(self, reason: str = "caller-abort") -> None:
        """
        Move to CANCELLED from any non-terminal phase. Idempotent.

        If `run()` is in flight on another task, that task is interrupted and
        raises SessionCancelled to its caller. Either way the session is
        CANCELLED and its channels are closed when this returns.
        """
        s = self._session
        if s is None or s.phase.terminal or self._cancel_reason is not None:
            return
        self._cancel_reason = reason
        task = self._task
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
            # wait() never raises the task's own exception; run()'s caller gets it
            await asyncio.wait({task})
            return
        outcome = "transport_error" if reason == "transport" else "cancelled"
        await self._finish_cancel(reason, outcome=outcome)

    # ---- Phase bodies ----

    async def _drain(
        self,
        sub: Subscription,
        window: Window,
        ingest: Callable[[Envelope], None],
    ) -> None:
        deadline = self._windows.deadline_for(window)
        while True:
            remaining = deadline - self._clock()
            if remaining <= 0:
                break
            try:
                env = await asyncio.wait_for(sub.get(), timeout=remaining)
            except asyncio.TimeoutError:
                break
            ingest(env)
        # frames already queued when the deadline fired are judged on receipt time
        while (env := sub.get_nowait()) is not None:
            ingest(env)

    async def _enter_reveal(self) -> None:
        s = self._require_session()
        own = Reveal(
            sender_id=s.organizer_id,
            secret=self._secret,
            published_at=_millis(self._clock()),
        )
        s.add_reveal(own)
        self._set_phase(Phase.REVEALING)
        await self._gossip.announce_reveal(own)

    async def _complete(self) -> GiveawayResult:
        s = self._require_session()
        commitments = s.commitment_list()
        valid = verify_reveals(s.commitments, s.reveal_list(), metrics=self._metrics)
        result = build_result(
            participants=s.participants,
            organizer_id=s.organizer_id,
            commitments=commitments,
            valid_reveals=valid,
            timestamp=_millis(self._clock()),
        )
        s.result = result
        self._transcript = AuditTranscript(
            organizer_id=s.organizer_id,
            commitments=tuple(commitments),
            valid_reveals=tuple(valid),
        )
        self._set_phase(Phase.COMPLETE)
        await self._gossip.close()
        self._metrics.record_session("complete")
        self._metrics.observe_valid_reveals(len(valid))
        logger.info(
            "session %s complete: winner=%s valid_reveals=%d/%d commitments=%d",
            s.session_id,
            result.winner,
            len(valid),
            len(s.reveals),
            len(commitments),
        )
        return result

    async def _finish_cancel(
        self,
        reason: str,
        *,
        outcome: str = "cancelled",
        error: Optional[BaseException] = None,
    ) -> None:
        s = self._session
        if s is None or s.phase.terminal:
            return
        self._cancel_reason = self._cancel_reason or reason
        s.result = None
        self._set_phase(Phase.CANCELLED)
        if self._gossip is not None:
            await self._gossip.close()
        self._metrics.record_session(outcome)
        if error is not None:
            logger.warning("session %s cancelled (%s): %s", s.session_id, reason, error)
        else:
            logger.warning("session %s cancelled (%s)", s.session_id, reason)

    # ---- Ingestion (single writer: only called from the run() task) ----

    def _ingest_commit(self, env: Envelope) -> None:
        s = self._require_session()
        if not self._windows.can_accept_commit(env.received_at):
            self._metrics.record_commitment("late")
            logger.debug("late commitment frame on %s", env.topic)
            return
        try:
            c = self._gossip.decode_commit(env)
        except MalformedMessage as e:
            self._metrics.record_commitment("malformed")
            logger.debug("drop commitment: %s", e)
            return
        if c.sender_id == s.organizer_id:
            return  # own echo
        if not s.add_commitment(c):
            self._metrics.record_commitment("duplicate")
            logger.debug("duplicate commitment from %s ignored", c.sender_id)
            return
        self._metrics.record_commitment("accepted")
        self._notify()

    def _ingest_reveal(self, env: Envelope) -> None:
        s = self._require_session()
        if not self._windows.can_accept_reveal(env.received_at):
            self._metrics.record_reveal("late")
            logger.debug("late reveal frame on %s", env.topic)
            return
        try:
            r = self._gossip.decode_reveal(env)
        except MalformedMessage as e:
            self._metrics.record_reveal("malformed")
            logger.debug("drop reveal: %s", e)
            return
        if r.sender_id == s.organizer_id:
            return  # own echo
        if r.sender_id not in s.commitments:
            self._metrics.record_reveal("uncommitted")
            logger.debug("reveal from uncommitted sender %s dropped", r.sender_id)
            return
        if not s.add_reveal(r):
            self._metrics.record_reveal("duplicate")
            logger.debug("duplicate reveal from %s ignored", r.sender_id)
            return
        self._metrics.record_reveal("accepted")
        self._notify()

    # ---- helpers ----

    def _channels(self, s: GiveawaySession) -> GiveawayGossip:
        if self._gossip is None:
            self._gossip = GiveawayGossip(
                self._transport, namespace=s.namespace, max_payload_bytes=self._max_payload
            )
        return self._gossip

    def _require_session(self) -> GiveawaySession:
        if self._session is None:
            raise PhaseError("no session attached")
        return self._session

    def _set_phase(self, phase: Phase) -> None:
        s = self._require_session()
        logger.info("session %s: %s → %s", s.session_id, s.phase.value, phase.value)
        s.phase = phase
        self._notify()

    def _notify(self) -> None:
        if self._on_progress is not None:
            self._on_progress(self.progress())


async def select_winner(
    transport: Transport,
    participants: list[Participant],
    organizer_id: str,
    config: GiveawayConfig,
    *,
    secret: Optional[str] = None,
    clock: Clock = time.time,
    metrics: Optional[Metrics] = None,
    on_progress: Optional[ProgressListener] = None,
    manage_transport: bool = True,
) -> tuple[GiveawayResult, AuditTranscript]:
    """
    One-shot draw: build a session from `config`, run it, return the result
    and its audit transcript.

    With `manage_transport` the transport is started before the session and
    stopped afterwards; a start failure cancels the (still IDLE) session and
    re-raises TransportError.
    """
    config.validate()
    session = GiveawaySession.create(
        participants,
        organizer_id=organizer_id,
        commit_window_s=config.commit_window_s,
        reveal_window_s=config.reveal_window_s,
        namespace=config.namespace,
        now=clock(),
    )
    coord = PhaseCoordinator(
        transport,
        clock=clock,
        metrics=metrics,
        on_progress=on_progress,
        max_payload_bytes=config.max_payload_bytes,
    )
    coord.attach(session)

    if manage_transport:
        try:
            await transport.start()
        except TransportError:
            await coord.cancel("transport")
            raise
    try:
        result = await coord.run(secret=secret)
    finally:
        if manage_transport:
            await transport.stop()
    return result, coord.transcript


__all__ = [
    "PhaseCoordinator",
    "select_winner",
]
