"""
giveaway.cli
------------

Command line front-end for verifiable giveaway draws.

Commands:
  - commit   : Print the commitment for a secret (generates one if omitted).
  - draw     : Run a draw locally over the in-memory transport.
  - verify   : Check a published result, or a result plus its audit transcript.
  - history  : List draws stored in a result archive.

Environment:
  GIVEAWAY_COMMIT_WINDOW_S, GIVEAWAY_REVEAL_WINDOW_S, GIVEAWAY_NAMESPACE,
  GIVEAWAY_MAX_PAYLOAD_BYTES, GIVEAWAY_ARCHIVE_PATH provide defaults when
  --config is not given.

Example:
  giveaway draw entrants.txt --peers 3 --commit-window 2 --reveal-window 2 > draw.json
  giveaway verify draw.json
"""

from __future__ import annotations

import asyncio
import dataclasses
import json
import logging
import sys
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import typer

from giveaway.adapters.memory import MemoryHub, MemoryTransport
from giveaway.commit_reveal.commit import commit, generate_secret
from giveaway.commit_reveal.coordinator import PhaseCoordinator
from giveaway.commit_reveal.select import verify_result, verify_transcript
from giveaway.config import GiveawayConfig
from giveaway.errors import GiveawayError
from giveaway.participants import load_participants
from giveaway.store.sqlite import ResultArchive
from giveaway.types.core import AuditTranscript, GiveawayResult
from giveaway.types.state import GiveawaySession, SessionProgress
from giveaway.version import __version__

__all__ = ["app", "main"]

logger = logging.getLogger("giveaway.cli")

app = typer.Typer(
    name="giveaway",
    help="Verifiable giveaway draws (commit→reveal→select).",
    no_args_is_help=True,
    add_completion=False,
)


def _echo_json(obj: Any) -> None:
    typer.echo(json.dumps(obj, indent=2, ensure_ascii=False))


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def _load_config(path: Optional[Path]) -> GiveawayConfig:
    try:
        cfg = GiveawayConfig.from_file(str(path)) if path is not None else GiveawayConfig.from_env()
        cfg.validate()
    except (OSError, ValueError) as e:
        raise SystemExit(f"Invalid configuration: {e}")
    return cfg


def _read_json(path: Path) -> Dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise SystemExit(f"Cannot read {path}: {e}")
    except json.JSONDecodeError as e:
        raise SystemExit(f"{path} is not JSON: {e}")
    if not isinstance(data, dict):
        raise SystemExit(f"{path}: expected a JSON object")
    return data


@app.command("version")
def cmd_version() -> None:
    """Print the package version."""
    typer.echo(__version__)


@app.command("commit")
def cmd_commit(
    secret: Optional[str] = typer.Option(None, "--secret", "-s", help="Secret to commit to (random if omitted)."),
) -> None:
    """
    Print C = sha256(secret) as lowercase hex.

    Keep the secret private until the reveal window opens.
    """
    s = secret if secret is not None else generate_secret()
    _echo_json({"secret": s, "commitment": commit(s)})


@app.command("draw")
def cmd_draw(
    participants_file: Path = typer.Argument(..., help="Text file with one participant per line."),
    organizer: str = typer.Option("organizer", "--organizer", "-o", help="Sender id of the local organizer."),
    peers: int = typer.Option(0, "--peers", "-p", min=0, max=64, help="Extra simulated peers contributing entropy."),
    commit_window: Optional[float] = typer.Option(None, "--commit-window", help="Commit phase length in seconds."),
    reveal_window: Optional[float] = typer.Option(None, "--reveal-window", help="Reveal phase length in seconds."),
    namespace: Optional[str] = typer.Option(None, "--namespace", help="Topic namespace."),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="JSON or YAML config file."),
    archive: Optional[Path] = typer.Option(None, "--archive", help="SQLite archive to store the result in."),
    log_level: str = typer.Option("INFO", "--log-level", help="Logging level."),
) -> None:
    """
    Run one draw on a local in-memory network and print the result with its
    audit transcript.
    """
    _setup_logging(log_level)
    cfg = _load_config(config)
    overrides: Dict[str, Any] = {}
    if commit_window is not None:
        overrides["commit_window_s"] = commit_window
    if reveal_window is not None:
        overrides["reveal_window_s"] = reveal_window
    if namespace is not None:
        overrides["namespace"] = namespace
    if archive is not None:
        overrides["archive_path"] = str(archive)
    cfg = dataclasses.replace(cfg, **overrides)
    try:
        cfg.validate()
    except ValueError as e:
        raise SystemExit(f"Invalid configuration: {e}")

    try:
        participants = load_participants(participants_file)
    except OSError as e:
        raise SystemExit(f"Cannot read {participants_file}: {e}")
    except GiveawayError as e:
        raise SystemExit(str(e))

    def _progress(p: SessionProgress) -> None:
        logger.info(
            "%s: %d commitments, %d reveals, %.1fs left",
            p.phase.value,
            p.commitments,
            p.reveals,
            p.remaining_s,
        )

    try:
        result, transcript = asyncio.run(_local_draw(participants, organizer, peers, cfg, _progress))
    except GiveawayError as e:
        raise SystemExit(f"Draw failed: {e}")

    if cfg.archive_path:
        with ResultArchive(cfg.archive_path) as store:
            store.put(result, transcript)
    _echo_json({"result": result.to_dict(), "transcript": transcript.to_dict()})


async def _local_draw(
    participants: List[str],
    organizer: str,
    peers: int,
    cfg: GiveawayConfig,
    on_progress,
) -> tuple[GiveawayResult, AuditTranscript]:
    """
    Run the organizer and `peers` simulated peers on one in-memory hub.

    Every peer subscribes before anyone publishes, so all of them record the
    same commitments and derive the same seed and winner.
    """
    hub = MemoryHub()
    senders = [organizer] + [f"peer-{i + 1}" for i in range(peers)]
    now = time.time()
    transports: List[MemoryTransport] = []
    coords: List[PhaseCoordinator] = []
    try:
        for sender in senders:
            transport = MemoryTransport(hub)
            transports.append(transport)
            await transport.start()
            session = GiveawaySession.create(
                participants,
                organizer_id=sender,
                commit_window_s=cfg.commit_window_s,
                reveal_window_s=cfg.reveal_window_s,
                namespace=cfg.namespace,
                now=now,
            )
            coord = PhaseCoordinator(
                transport,
                max_payload_bytes=cfg.max_payload_bytes,
                on_progress=on_progress if sender == organizer else None,
            )
            await coord.listen(session)
            coords.append(coord)
        results = await asyncio.gather(*(c.run() for c in coords))
    finally:
        for transport in transports:
            await transport.stop()

    winners = {(r.random_seed, r.winner) for r in results}
    if len(winners) != 1:
        logger.warning("peers disagree on the draw: %s", sorted(winners))
    return results[0], coords[0].transcript


@app.command("verify")
def cmd_verify(
    result_file: Path = typer.Argument(..., help="JSON file: a result, or {result, transcript} as printed by `draw`."),
    transcript_file: Optional[Path] = typer.Option(None, "--transcript", "-t", help="Separate transcript JSON file."),
    organizer: Optional[str] = typer.Option(None, "--organizer", "-o", help="Organizer id (result-only checks)."),
) -> None:
    """
    Re-derive the winner offline. With a transcript, also recheck every
    reveal, the random seed and the verification hash.
    Exits with status 1 when verification fails.
    """
    doc = _read_json(result_file)
    result_doc = doc.get("result", doc)
    transcript_doc = doc.get("transcript")
    if transcript_file is not None:
        transcript_doc = _read_json(transcript_file)

    try:
        result = GiveawayResult.from_dict(result_doc)
        transcript = AuditTranscript.from_dict(transcript_doc) if transcript_doc else None
    except (KeyError, TypeError, ValueError) as e:
        raise SystemExit(f"Malformed input: {e}")

    if transcript is not None:
        ok = verify_transcript(result, transcript)
        mode = "transcript"
    else:
        if organizer is None:
            raise SystemExit("Missing --organizer (required without a transcript).")
        ok = verify_result(result, organizer)
        mode = "result"
    _echo_json({"valid": ok, "mode": mode, "winner": result.winner})
    if not ok:
        raise typer.Exit(code=1)


@app.command("history")
def cmd_history(
    archive: Optional[Path] = typer.Option(None, "--archive", help="SQLite archive (defaults to config archive_path)."),
    limit: int = typer.Option(10, "--limit", "-n", min=1, max=1000, help="Max number of records."),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="JSON or YAML config file."),
) -> None:
    """List archived draws, most recent first."""
    path = str(archive) if archive is not None else _load_config(config).archive_path
    if not path:
        raise SystemExit("No archive configured (use --archive or GIVEAWAY_ARCHIVE_PATH).")
    with ResultArchive(path) as store:
        rows = store.recent(limit)
    _echo_json(
        [
            {
                "verificationHash": d.result.verification_hash,
                "winner": d.result.winner,
                "timestamp": d.result.timestamp,
                "participants": len(d.result.participants),
                "organizerId": d.transcript.organizer_id if d.transcript else None,
            }
            for d in rows
        ]
    )


def main(argv: Optional[Sequence[str]] = None) -> None:  # pragma: no cover - thin wrapper
    """Entry-point for the `giveaway` console script and `python -m giveaway.cli`."""
    try:
        app(args=list(argv) if argv is not None else None, prog_name="giveaway")
    except KeyboardInterrupt:
        typer.echo("", err=True)
        sys.exit(130)


if __name__ == "__main__":  # pragma: no cover
    main()
