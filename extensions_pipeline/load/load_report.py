"""
Outcome bookkeeping for a loader run.

Every inserter returns an :class:`InsertOutcome` instead of only
logging what happened. The orchestrator folds the outcomes into a
:class:`LoadReport` and asks a :class:`FailurePolicy` whether the run
should go on.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional

EXTENSIONS_TABLE = "extensions"
FILES_TABLE = "extensions_files"
REQUESTS_TABLE = "requests"


@dataclass
class InsertOutcome:
    """
    Result of a single inserter call.

    Parameters
    ----------
    table:
        Target table name (without schema).
    inserted:
        Rows written before the call finished or failed.
    skipped:
        True if the input was missing and nothing was attempted.
    error:
        Text of the caught exception, ``None`` on success.
    """
    table: str
    inserted: int = 0
    skipped: bool = False
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


@dataclass
class TableStats:
    inserted: int = 0
    skipped: int = 0
    failed: int = 0


@dataclass
class FailurePolicy:
    """
    When to give up on a run.

    ``max_consecutive_failures=None`` never aborts, so a bad record
    never stops the batch.
    """
    max_consecutive_failures: Optional[int] = None

    def should_abort(self, consecutive_failures: int) -> bool:
        if self.max_consecutive_failures is None:
            return False
        return consecutive_failures >= self.max_consecutive_failures


@dataclass
class LoadReport:
    """Per-run summary returned by the orchestrator."""
    tables: Dict[str, TableStats] = field(
        default_factory=lambda: {
            EXTENSIONS_TABLE: TableStats(),
            FILES_TABLE: TableStats(),
            REQUESTS_TABLE: TableStats(),
        }
    )
    extensions_seen: int = 0
    consecutive_failures: int = 0
    aborted: bool = False
    error: Optional[str] = None

    def record(self, outcome: InsertOutcome) -> None:
        stats = self.tables.setdefault(outcome.table, TableStats())
        stats.inserted += outcome.inserted
        if outcome.skipped:
            stats.skipped += 1
        if outcome.failed:
            stats.failed += 1
            self.consecutive_failures += 1
        else:
            self.consecutive_failures = 0

    @property
    def ok(self) -> bool:
        """True if nothing failed and the run was not cut short."""
        return (
            not self.aborted
            and self.error is None
            and all(stats.failed == 0 for stats in self.tables.values())
        )

    def summary(self) -> str:
        parts = [
            f"{name}: inserted={s.inserted} skipped={s.skipped} failed={s.failed}"
            for name, s in self.tables.items()
        ]
        return f"{self.extensions_seen} extensions; " + "; ".join(parts)
