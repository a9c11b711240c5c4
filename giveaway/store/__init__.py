"""
Persistence for completed draws.

Only the SQLite archive is provided; results are small and write-once.
"""

from giveaway.store.sqlite import ArchivedDraw, ResultArchive

__all__ = ["ArchivedDraw", "ResultArchive"]
