"""Value objects for the outbox pattern.

Value objects are immutable descriptors that provide type safety and
domain semantics for outbox records and their processing outcomes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


class OutboxStatus(str, Enum):
    """Lifecycle states of an outbox record.

    ``pending -> processing -> {done, pending, failed}``. ``done`` and
    ``failed`` are terminal for the engine; only an operator moves a
    ``failed`` record back to ``pending``.
    """

    PENDING = "pending"
    PROCESSING = "processing"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class OutboxRecord:
    """Represents a single row of the outbox table.

    This is an immutable snapshot of the row as it was returned by the claim
    call. It carries everything needed to transform the event and to compute
    its outcome.

    Attributes:
        id: Monotonic identifier assigned by the database
        event_kind: Name of the event kind (e.g., "relationship.insert")
        payload: The untyped event document written by the producer
        occurred_at: When the source change happened; fixes claim order
        attempts: How many times an outcome has been written back
        status: Status at the time of the snapshot
        error: The most recent failure description (if any)
    """

    id: int
    event_kind: str
    payload: dict[str, Any]
    occurred_at: datetime
    attempts: int = 0
    status: OutboxStatus = OutboxStatus.PENDING
    error: str | None = None


@dataclass(frozen=True)
class Outcome:
    """The state a processed record moves to.

    Produced by the retry policy and applied by the repository's outcome
    write-back.

    Attributes:
        status: DONE, PENDING (retry later) or FAILED (dead-lettered)
        attempts: The attempt count after this outcome
        error: Failure description, None on success
    """

    status: OutboxStatus
    attempts: int
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status is OutboxStatus.DONE

    @property
    def dead_lettered(self) -> bool:
        return self.status is OutboxStatus.FAILED


@dataclass
class WorkerStats:
    """Running counters for one worker process.

    Owned by the worker and handed to the probe after every batch, so the
    loop never depends on how the numbers are surfaced.
    """

    batches: int = 0
    processed: int = 0
    retried: int = 0
    dead_lettered: int = 0
    skipped: int = 0
    claim_errors: int = 0

    def as_dict(self) -> dict[str, int]:
        return {
            "batches": self.batches,
            "processed": self.processed,
            "retried": self.retried,
            "dead_lettered": self.dead_lettered,
            "skipped": self.skipped,
            "claim_errors": self.claim_errors,
        }


@dataclass(frozen=True)
class CycleResult:
    """Summary of one claim/process cycle.

    Attributes:
        claimed: Number of records claimed
        completed: Records whose outcome was written back
        released: Claimed records handed back unprocessed on shutdown
        claim_failed: True when the claim call itself failed
        abandoned: True when an outcome write-back failed and the rest of
            the batch was left in processing
        outcomes: Outcomes written back, in processing order
    """

    claimed: int = 0
    completed: int = 0
    released: int = 0
    claim_failed: bool = False
    abandoned: bool = False
    outcomes: tuple[Outcome, ...] = field(default_factory=tuple)

    @property
    def idle(self) -> bool:
        """True when there was nothing to do (or nothing could be claimed)."""
        return self.claimed == 0

    @property
    def should_back_off(self) -> bool:
        """True when the loop should wait a poll interval before claiming."""
        return self.idle or self.abandoned
