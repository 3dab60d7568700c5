"""Retry and dead-letter policy for outbox records.

The policy is the whole failure state machine: given the record as it was
claimed and whether processing succeeded, it returns the Outcome to write
back. It has no I/O and no clock.
"""

from __future__ import annotations

from dataclasses import dataclass

from shared_kernel.outbox.value_objects import OutboxRecord, OutboxStatus, Outcome

DEFAULT_MAX_ATTEMPTS = 5


@dataclass(frozen=True)
class RetryPolicy:
    """Attempt-capped retry policy.

    Validation failures and store failures are treated alike: every failure
    consumes one attempt, and the record is dead-lettered once the cap is
    reached. There is no per-record delay; the poll interval throttles
    retries.

    Attributes:
        max_attempts: Attempt count at which a failing record is dead-lettered
    """

    max_attempts: int = DEFAULT_MAX_ATTEMPTS

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(
                f"max_attempts must be a positive integer, got {self.max_attempts}"
            )

    def on_success(self, record: OutboxRecord) -> Outcome:
        """Outcome for a record that was written to the graph (or skipped)."""
        return Outcome(
            status=OutboxStatus.DONE,
            attempts=record.attempts + 1,
            error=None,
        )

    def on_failure(self, record: OutboxRecord, error: str) -> Outcome:
        """Outcome for a record whose processing raised.

        Args:
            record: The record as claimed
            error: Human-readable failure description

        Returns:
            PENDING while attempts remain, FAILED once the cap is reached.
        """
        attempts = record.attempts + 1

        if attempts >= self.max_attempts:
            status = OutboxStatus.FAILED
        else:
            status = OutboxStatus.PENDING

        return Outcome(status=status, attempts=attempts, error=error)
