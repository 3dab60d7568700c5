"""Observability probes for the outbox worker.

Following Domain Oriented Observability, probes capture domain-significant
events and metrics without cluttering the worker loop with logging concerns.
The worker probe is also the metrics sink: counters are handed to it after
every batch.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

import structlog

if TYPE_CHECKING:
    from shared_kernel.outbox.value_objects import WorkerStats


logger = structlog.get_logger()


class OutboxWorkerProbe(Protocol):
    """Protocol for outbox worker observability.

    Implementations can log, emit metrics, or send traces.
    """

    def worker_started(
        self, batch_size: int, poll_interval_ms: int, max_attempts: int
    ) -> None:
        """Called when the worker loop starts."""
        ...

    def worker_stop_requested(self) -> None:
        """Called when a termination request is received."""
        ...

    def worker_stopped(self, stats: WorkerStats) -> None:
        """Called when the worker loop has exited."""
        ...

    def batch_claimed(self, count: int) -> None:
        """Called when a non-empty batch has been claimed."""
        ...

    def claim_failed(self, error: str) -> None:
        """Called when the claim call fails; the loop backs off."""
        ...

    def event_transformed(
        self, record_id: int, event_kind: str, operation_count: int
    ) -> None:
        """Called when an event is transformed into a graph write."""
        ...

    def event_processed(self, record_id: int, event_kind: str, attempts: int) -> None:
        """Called when an event is written to the graph and marked done."""
        ...

    def unknown_event_kind(self, record_id: int, event_kind: str) -> None:
        """Called when an event kind has no transformer and is skipped."""
        ...

    def event_processing_failed(
        self, record_id: int, event_kind: str, error: str, attempts: int
    ) -> None:
        """Called when event processing fails and will be retried."""
        ...

    def event_moved_to_dlq(
        self, record_id: int, event_kind: str, error: str, attempts: int
    ) -> None:
        """Called when an event exhausts its attempts and is dead-lettered."""
        ...

    def outcome_write_failed(self, record_id: int, error: str) -> None:
        """Called when an outcome cannot be written back to the outbox."""
        ...

    def outcome_not_applied(self, record_id: int) -> None:
        """Called when a record was reset while being processed."""
        ...

    def records_released(self, count: int) -> None:
        """Called when unstarted claimed records are handed back on shutdown."""
        ...

    def release_failed(self, count: int, error: str) -> None:
        """Called when unstarted claimed records could not be handed back."""
        ...

    def batch_processed(self, count: int, stats: WorkerStats) -> None:
        """Called after every processed batch with the running counters."""
        ...

    def transformer_registered(
        self, name: str, event_kinds: frozenset[str]
    ) -> None:
        """Called when an event transformer is registered."""
        ...


class DefaultOutboxWorkerProbe:
    """Default implementation using structlog.

    Logs all worker events with appropriate log levels.
    """

    def __init__(self, worker_id: str | None = None) -> None:
        """Initialize the probe with a logger.

        Args:
            worker_id: Optional identifier bound to every log line
        """
        self._log = logger.bind(component="outbox_worker")
        if worker_id is not None:
            self._log = self._log.bind(worker_id=worker_id)

    def worker_started(
        self, batch_size: int, poll_interval_ms: int, max_attempts: int
    ) -> None:
        """Log worker start with its effective configuration."""
        self._log.info(
            "outbox_worker_started",
            batch_size=batch_size,
            poll_interval_ms=poll_interval_ms,
            max_attempts=max_attempts,
        )

    def worker_stop_requested(self) -> None:
        """Log a termination request."""
        self._log.info("outbox_worker_stop_requested")

    def worker_stopped(self, stats: WorkerStats) -> None:
        """Log worker stop with final counters."""
        self._log.info("outbox_worker_stopped", **stats.as_dict())

    def batch_claimed(self, count: int) -> None:
        """Log a claimed batch."""
        self._log.info("outbox_batch_claimed", count=count)

    def claim_failed(self, error: str) -> None:
        """Log a failed claim call."""
        self._log.warning("outbox_claim_failed", error=error)

    def event_transformed(
        self, record_id: int, event_kind: str, operation_count: int
    ) -> None:
        """Log event transformation with operation count."""
        self._log.debug(
            "outbox_event_transformed",
            record_id=record_id,
            event_kind=event_kind,
            operation_count=operation_count,
        )

    def event_processed(self, record_id: int, event_kind: str, attempts: int) -> None:
        """Log successful event processing."""
        self._log.debug(
            "outbox_event_processed",
            record_id=record_id,
            event_kind=event_kind,
            attempts=attempts,
        )

    def unknown_event_kind(self, record_id: int, event_kind: str) -> None:
        """Log an event kind without transformer."""
        self._log.warning(
            "outbox_unknown_event_kind",
            record_id=record_id,
            event_kind=event_kind,
        )

    def event_processing_failed(
        self, record_id: int, event_kind: str, error: str, attempts: int
    ) -> None:
        """Log failed event processing that will be retried."""
        self._log.warning(
            "outbox_event_processing_failed",
            record_id=record_id,
            event_kind=event_kind,
            error=error,
            attempts=attempts,
        )

    def event_moved_to_dlq(
        self, record_id: int, event_kind: str, error: str, attempts: int
    ) -> None:
        """Log event moved to dead letter state."""
        self._log.error(
            "outbox_event_moved_to_dlq",
            record_id=record_id,
            event_kind=event_kind,
            error=error,
            attempts=attempts,
        )

    def outcome_write_failed(self, record_id: int, error: str) -> None:
        """Log a failed outcome write-back."""
        self._log.error(
            "outbox_outcome_write_failed",
            record_id=record_id,
            error=error,
        )

    def outcome_not_applied(self, record_id: int) -> None:
        """Log an outcome that found the record no longer in processing."""
        self._log.warning("outbox_outcome_not_applied", record_id=record_id)

    def records_released(self, count: int) -> None:
        """Log records handed back on shutdown."""
        if count > 0:
            self._log.info("outbox_records_released", count=count)

    def release_failed(self, count: int, error: str) -> None:
        """Log records left in processing on shutdown."""
        self._log.error("outbox_release_failed", count=count, error=error)

    def batch_processed(self, count: int, stats: WorkerStats) -> None:
        """Log batch processing with running totals."""
        if count > 0:
            self._log.info("outbox_batch_processed", count=count, **stats.as_dict())

    def transformer_registered(
        self, name: str, event_kinds: frozenset[str]
    ) -> None:
        """Log transformer registration."""
        self._log.info(
            "outbox_transformer_registered",
            transformer=name,
            event_kinds=sorted(event_kinds),
            event_count=len(event_kinds),
        )


class EventSourceProbe(Protocol):
    """Protocol for event source observability.

    Implementations can log, emit metrics, or send traces for event source
    lifecycle and notification handling.
    """

    def event_source_started(self, channel: str) -> None:
        """Called when the event source starts listening."""
        ...

    def event_source_stopped(self) -> None:
        """Called when the event source stops."""
        ...

    def notification_received(self, payload: str) -> None:
        """Called when a notification is received."""
        ...

    def listener_error(self, error: str) -> None:
        """Called when an error occurs in the listener."""
        ...


class DefaultEventSourceProbe:
    """Default implementation using structlog."""

    def __init__(self) -> None:
        self._log = logger.bind(component="event_source")

    def event_source_started(self, channel: str) -> None:
        self._log.info("event_source_started", channel=channel)

    def event_source_stopped(self) -> None:
        self._log.info("event_source_stopped")

    def notification_received(self, payload: str) -> None:
        self._log.debug("notification_received", payload=payload)

    def listener_error(self, error: str) -> None:
        self._log.error("event_source_listener_error", error=error)
