"""Outbox worker for projecting events into the graph store.

The worker runs as the single long-lived task of the indexer process. It
claims batches of pending outbox records, transforms each record into a
graph write, applies it and writes the outcome back before moving on.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from shared_kernel.outbox.exceptions import ClaimProtocolError, OutboxWriteError
from shared_kernel.outbox.retry_policy import RetryPolicy
from shared_kernel.outbox.value_objects import (
    CycleResult,
    OutboxRecord,
    Outcome,
    WorkerStats,
)

if TYPE_CHECKING:
    from infrastructure.outbox.composite import CompositeTransformer
    from shared_kernel.outbox.observability import OutboxWorkerProbe
    from shared_kernel.outbox.ports import (
        GraphWriter,
        IOutboxRepository,
        OutboxEventSource,
    )


def _utc_now() -> datetime:
    return datetime.now(UTC)


class OutboxWorker:
    """Claims outbox records and applies them to the graph store.

    The worker uses two wake-up strategies:
    1. Polling: after an empty (or failed) cycle, wait one poll interval
    2. LISTEN/NOTIFY (optional): a notification cuts the wait short

    A notification is only a hint. Records are always claimed through the
    repository, so claim exclusivity and ordering do not depend on it.

    Records of a batch are processed one at a time in occurred_at order and
    each outcome is written back before the next record starts. A stop
    request is honoured between records: the in-flight record is finished
    and the unstarted rest of the batch is released back to pending.

    Event transformation uses a plugin architecture:
    - Transformers are registered on the composite per event family
    - Kinds without a transformer are marked done without a graph write
    """

    def __init__(
        self,
        repository: IOutboxRepository,
        graph_writer: GraphWriter,
        transformer: CompositeTransformer,
        probe: OutboxWorkerProbe,
        batch_size: int = 500,
        poll_interval_seconds: float = 2.0,
        retry_policy: RetryPolicy | None = None,
        clock: Callable[[], datetime] = _utc_now,
        event_source: OutboxEventSource | None = None,
    ) -> None:
        """Initialize the worker.

        Args:
            repository: Outbox repository providing claim and write-back
            graph_writer: Applies graph writes to the graph store
            transformer: Routes events to their family transformer
            probe: Observability probe for logging/metrics
            batch_size: Maximum records claimed per cycle
            poll_interval_seconds: Wait after an empty or failed cycle
            retry_policy: Failure state machine (default: 5 attempts)
            clock: Source of observation timestamps
            event_source: Optional source of early wake-ups
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be a positive integer, got {batch_size}")
        if poll_interval_seconds <= 0:
            raise ValueError(
                f"poll_interval_seconds must be positive, got {poll_interval_seconds}"
            )

        self._repository = repository
        self._graph_writer = graph_writer
        self._transformer = transformer
        self._probe = probe
        self._batch_size = batch_size
        self._poll_interval = poll_interval_seconds
        self._retry_policy = retry_policy or RetryPolicy()
        self._clock = clock
        self._event_source = event_source
        self._stats = WorkerStats()
        self._stop_requested = False
        self._wake = asyncio.Event()

    @property
    def stats(self) -> WorkerStats:
        """Running counters for this worker."""
        return self._stats

    @property
    def stop_requested(self) -> bool:
        return self._stop_requested

    def request_stop(self) -> None:
        """Ask the loop to stop after the in-flight record.

        Safe to call from a signal handler; calling it twice is harmless.
        """
        if self._stop_requested:
            return
        self._stop_requested = True
        self._probe.worker_stop_requested()
        self._wake.set()

    async def wake(self, payload: str = "") -> None:
        """Cut the current idle wait short (NOTIFY callback)."""
        self._wake.set()

    async def run(self) -> None:
        """Run claim cycles until a stop is requested.

        Waits one poll interval after an empty cycle, a failed claim or an
        abandoned batch; otherwise claims the next batch immediately.
        """
        self._probe.worker_started(
            batch_size=self._batch_size,
            poll_interval_ms=int(self._poll_interval * 1000),
            max_attempts=self._retry_policy.max_attempts,
        )

        listener: asyncio.Task[None] | None = None
        if self._event_source is not None:
            listener = asyncio.create_task(self._event_source.start(self.wake))

        try:
            while not self._stop_requested:
                result = await self.run_once()
                if self._stop_requested:
                    break
                if result.should_back_off:
                    await self._wait_for_wake()
        finally:
            if listener is not None and self._event_source is not None:
                await self._event_source.stop()
                await asyncio.gather(listener, return_exceptions=True)
            self._probe.worker_stopped(self._stats)

    async def run_once(self) -> CycleResult:
        """Claim one batch and process it.

        Returns:
            Summary of the cycle
        """
        # Notifications that arrive from here on must end the next wait early
        self._wake.clear()

        try:
            records = await self._repository.claim_batch(self._batch_size)
        except ClaimProtocolError as e:
            self._stats.claim_errors += 1
            self._probe.claim_failed(str(e))
            return CycleResult(claim_failed=True)

        if not records:
            return CycleResult()

        self._stats.batches += 1
        self._probe.batch_claimed(len(records))

        outcomes: list[Outcome] = []
        for index, record in enumerate(records):
            if self._stop_requested:
                released = await self._release(records[index:])
                return CycleResult(
                    claimed=len(records),
                    completed=len(outcomes),
                    released=released,
                    outcomes=tuple(outcomes),
                )

            outcome = await self._process(record)

            try:
                applied = await self._repository.record_outcome(record.id, outcome)
            except OutboxWriteError as e:
                # The record stays in processing until an external reset
                self._probe.outcome_write_failed(record.id, str(e))
                return CycleResult(
                    claimed=len(records),
                    completed=len(outcomes),
                    abandoned=True,
                    outcomes=tuple(outcomes),
                )

            if not applied:
                # Reset by an operator mid-processing; the row is pending again
                self._probe.outcome_not_applied(record.id)
                continue
            outcomes.append(outcome)
            self._observe_outcome(record, outcome)

        self._probe.batch_processed(len(records), self._stats)
        return CycleResult(
            claimed=len(records),
            completed=len(outcomes),
            outcomes=tuple(outcomes),
        )

    async def _process(self, record: OutboxRecord) -> Outcome:
        """Transform and apply one record, returning its outcome.

        Per-record errors are converted to a state transition here and never
        propagate to the loop.
        """
        if not self._transformer.supports(record.event_kind):
            self._probe.unknown_event_kind(record.id, record.event_kind)
            return self._retry_policy.on_success(record)

        try:
            write = self._transformer.transform(
                record.event_kind, record.payload, self._clock()
            )
            self._probe.event_transformed(
                record.id, record.event_kind, write.operation_count
            )
            await self._graph_writer.apply(write)
        except Exception as e:
            return self._retry_policy.on_failure(record, _describe(e))

        return self._retry_policy.on_success(record)

    def _observe_outcome(self, record: OutboxRecord, outcome: Outcome) -> None:
        if outcome.succeeded:
            if not self._transformer.supports(record.event_kind):
                self._stats.skipped += 1
                return
            self._stats.processed += 1
            self._probe.event_processed(record.id, record.event_kind, outcome.attempts)
        elif outcome.dead_lettered:
            self._stats.dead_lettered += 1
            self._probe.event_moved_to_dlq(
                record.id, record.event_kind, outcome.error or "", outcome.attempts
            )
        else:
            self._stats.retried += 1
            self._probe.event_processing_failed(
                record.id, record.event_kind, outcome.error or "", outcome.attempts
            )

    async def _release(self, records: Sequence[OutboxRecord]) -> int:
        try:
            released = await self._repository.release([r.id for r in records])
        except OutboxWriteError as e:
            self._probe.release_failed(len(records), str(e))
            return 0
        self._probe.records_released(released)
        return released

    async def _wait_for_wake(self) -> None:
        try:
            await asyncio.wait_for(self._wake.wait(), timeout=self._poll_interval)
        except TimeoutError:
            pass


def _describe(error: Exception) -> str:
    message = str(error)
    if not message:
        return type(error).__name__
    return message
