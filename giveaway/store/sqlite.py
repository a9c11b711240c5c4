"""
SQLite-backed archive of completed draws.

Features
--------
- One row per result, keyed by its verification hash.
- Optional audit transcript stored alongside, so an archived draw can be
  re-verified in full later (`giveaway verify` / `verify_transcript`).
- Write-once: storing the same verification hash again is a no-op.
- Pragmas tuned for a small local file (WAL, synchronous=NORMAL).

Rows hold the camelCase JSON forms produced by `GiveawayResult.to_dict()` and
`AuditTranscript.to_dict()`; the indexed columns are denormalized copies for
listing.
"""

from __future__ import annotations

import json
import logging
import os
import sqlite3
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Generator, List, Optional

from giveaway.types.core import AuditTranscript, GiveawayResult

logger = logging.getLogger(__name__)


# --- Helpers -----------------------------------------------------------------

def _ensure_dir(path: str) -> None:
    if path == ":memory:":
        return
    d = os.path.dirname(os.path.abspath(path))
    if d and not os.path.exists(d):
        os.makedirs(d, exist_ok=True)


def _apply_pragmas(conn: sqlite3.Connection) -> None:
    conn.execute("PRAGMA journal_mode=WAL;")
    conn.execute("PRAGMA synchronous=NORMAL;")
    conn.execute("PRAGMA temp_store=MEMORY;")


def _init_schema(conn: sqlite3.Connection) -> None:
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS results (
            verification_hash TEXT PRIMARY KEY,
            winner            TEXT NOT NULL,
            timestamp         INTEGER NOT NULL,
            organizer_id      TEXT,
            result_json       TEXT NOT NULL,
            transcript_json   TEXT,
            stored_at         REAL NOT NULL
        );
        """
    )
    conn.execute("CREATE INDEX IF NOT EXISTS results_by_time ON results(timestamp DESC);")


def _dumps(obj) -> str:
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


# --- Records -----------------------------------------------------------------

@dataclass(frozen=True)
class ArchivedDraw:
    """A stored result with its transcript (if one was archived)."""
    result: GiveawayResult
    transcript: Optional[AuditTranscript]
    stored_at: float


def _row_to_draw(row: sqlite3.Row) -> ArchivedDraw:
    transcript = None
    if row["transcript_json"] is not None:
        transcript = AuditTranscript.from_dict(json.loads(row["transcript_json"]))
    return ArchivedDraw(
        result=GiveawayResult.from_dict(json.loads(row["result_json"])),
        transcript=transcript,
        stored_at=float(row["stored_at"]),
    )


# --- Implementation -----------------------------------------------------------

class ResultArchive:
    """
    Local archive of giveaway results.

    Parameters
    ----------
    path : str
        File path to the SQLite database (directories are created), or
        ":memory:" for a throwaway archive.

    Example
    -------
    >>> with ResultArchive("/tmp/giveaways.db") as archive:
    ...     archive.put(result, transcript)
    ...     archive.get(result.verification_hash)
    ...     archive.recent(10)
    """

    def __init__(self, path: str) -> None:
        self.path = str(path)
        _ensure_dir(self.path)
        # isolation_level=None -> autocommit; writes go through transaction()
        self._conn = sqlite3.connect(self.path, isolation_level=None, timeout=30.0)
        self._conn.row_factory = sqlite3.Row
        _apply_pragmas(self._conn)
        _init_schema(self._conn)

    # --- Context manager support --------------------------------------------

    def __enter__(self) -> "ResultArchive":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # --- Archive API ---------------------------------------------------------

    def put(self, result: GiveawayResult, transcript: Optional[AuditTranscript] = None) -> bool:
        """
        Store `result` (and its transcript). Returns False if a result with
        the same verification hash is already archived.
        """
        with self.transaction():
            cur = self._conn.execute(
                "INSERT OR IGNORE INTO results"
                "(verification_hash, winner, timestamp, organizer_id, result_json, transcript_json, stored_at)"
                " VALUES(?, ?, ?, ?, ?, ?, ?)",
                (
                    result.verification_hash,
                    result.winner,
                    result.timestamp,
                    transcript.organizer_id if transcript is not None else None,
                    _dumps(result.to_dict()),
                    _dumps(transcript.to_dict()) if transcript is not None else None,
                    time.time(),
                ),
            )
        inserted = cur.rowcount == 1
        if inserted:
            logger.info("archived draw %s winner=%s", result.verification_hash[:16], result.winner)
        else:
            logger.debug("draw %s already archived", result.verification_hash[:16])
        return inserted

    def get(self, verification_hash: str) -> Optional[ArchivedDraw]:
        cur = self._conn.execute(
            "SELECT result_json, transcript_json, stored_at FROM results WHERE verification_hash = ?",
            (verification_hash.lower(),),
        )
        row = cur.fetchone()
        return _row_to_draw(row) if row else None

    def recent(self, limit: int = 20) -> List[ArchivedDraw]:
        """Most recent draws first, by result timestamp."""
        if limit <= 0:
            return []
        cur = self._conn.execute(
            "SELECT result_json, transcript_json, stored_at FROM results"
            " ORDER BY timestamp DESC, verification_hash ASC LIMIT ?",
            (int(limit),),
        )
        return [_row_to_draw(row) for row in cur]

    def __len__(self) -> int:
        return int(self._conn.execute("SELECT COUNT(*) FROM results").fetchone()[0])

    # --- Transactions --------------------------------------------------------

    @contextmanager
    def transaction(self) -> Generator[None, None, None]:
        """BEGIN IMMEDIATE; commits on success, rolls back on error."""
        self._conn.execute("BEGIN IMMEDIATE;")
        try:
            yield
        except Exception:
            self._conn.execute("ROLLBACK;")
            raise
        else:
            self._conn.execute("COMMIT;")

    def close(self) -> None:
        self._conn.close()


__all__ = ["ArchivedDraw", "ResultArchive"]
