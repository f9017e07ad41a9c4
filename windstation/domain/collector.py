from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Optional

from windstation.core.clock import utcnow


@dataclass(frozen=True)
class CollectorSnapshot:
    started_at: datetime
    running: bool
    last_started_at: Optional[datetime]
    last_finished_at: Optional[datetime]
    last_success_at: Optional[datetime]
    total_runs: int
    total_inserted_rows: int
    total_errors: int
    last_error: Optional[str]
    backfill_inserted_rows: int
    backfill_completed_at: Optional[datetime]


@dataclass
class CollectorRunState:
    """Health counters for the collector loop.

    Only the collector task mutates this object; everything else reads it
    through :meth:`snapshot`.
    """

    started_at: datetime = field(default_factory=utcnow)
    running: bool = False
    last_started_at: Optional[datetime] = None
    last_finished_at: Optional[datetime] = None
    last_success_at: Optional[datetime] = None
    total_runs: int = 0
    total_inserted_rows: int = 0
    total_errors: int = 0
    last_error: Optional[str] = None
    backfill_inserted_rows: int = 0
    backfill_completed_at: Optional[datetime] = None

    def begin_cycle(self) -> None:
        self.running = True
        self.total_runs += 1
        self.last_started_at = utcnow()

    def record_success(self, inserted: int) -> None:
        self.total_inserted_rows += inserted
        self.last_success_at = utcnow()
        self.last_error = None

    def record_error(self, message: str) -> None:
        self.total_errors += 1
        self.last_error = message

    def end_cycle(self) -> None:
        self.running = False
        self.last_finished_at = utcnow()

    def record_backfill(self, inserted: int) -> None:
        self.backfill_inserted_rows += inserted
        self.total_inserted_rows += inserted
        self.backfill_completed_at = utcnow()
        self.last_success_at = self.backfill_completed_at

    def snapshot(self) -> CollectorSnapshot:
        return CollectorSnapshot(**asdict(self))
