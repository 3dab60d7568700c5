"""Protocols (ports) for the outbox pattern.

These protocols define the interfaces the worker depends on. They keep the
worker agnostic of PostgreSQL, Neo4j and of the concrete event kinds, and
let each event family register its own transformer.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from shared_kernel.outbox.operations import GraphWrite
    from shared_kernel.outbox.value_objects import OutboxRecord, Outcome


@runtime_checkable
class IOutboxRepository(Protocol):
    """Repository over the outbox table.

    Every method runs in its own short transaction: a claim must be committed
    before processing starts so other workers stop seeing the claimed rows.
    """

    async def claim_batch(self, max_items: int) -> list["OutboxRecord"]:
        """Claim up to max_items pending records, oldest occurred_at first.

        Uses FOR UPDATE SKIP LOCKED so concurrent callers never claim the
        same record and never wait for each other.

        Args:
            max_items: Positive upper bound on the batch size

        Returns:
            Claimed records (now in status processing), ordered by occurred_at

        Raises:
            ClaimProtocolError: If the store cannot be reached
        """
        ...

    async def record_outcome(self, record_id: int, outcome: "Outcome") -> bool:
        """Write a processing outcome back to a claimed record.

        Returns:
            False if the record was no longer in processing (externally reset)

        Raises:
            OutboxWriteError: If the write-back fails
        """
        ...

    async def release(self, record_ids: Sequence[int]) -> int:
        """Hand claimed but unstarted records back to pending.

        Attempts and error are left untouched.

        Returns:
            Number of records released
        """
        ...


@runtime_checkable
class EventTransformer(Protocol):
    """Transforms one family of events into graph writes.

    Each transformer validates the payload before producing anything, so a
    malformed payload never causes a partial write. Transformers are pure:
    the observation time is passed in.
    """

    def supported_event_kinds(self) -> frozenset[str]:
        """Return the event kinds this transformer handles.

        Returns:
            Frozenset of event kinds (e.g., {"relationship.insert"})
        """
        ...

    def transform(
        self,
        event_kind: str,
        payload: dict[str, Any],
        observed_at: datetime,
    ) -> "GraphWrite":
        """Convert an event payload to a single graph write.

        Args:
            event_kind: The kind of the event
            payload: The event document as stored in the outbox
            observed_at: Time of this observation (for last-seen fields)

        Returns:
            The GraphWrite to apply

        Raises:
            PayloadValidationError: If required fields are missing or invalid
        """
        ...


@runtime_checkable
class GraphWriter(Protocol):
    """Applies graph writes to the graph store."""

    async def apply(self, write: "GraphWrite") -> None:
        """Apply one GraphWrite atomically.

        Raises:
            GraphWriteError: If the graph store rejects or fails the write
        """
        ...


@runtime_checkable
class OutboxEventSource(Protocol):
    """Event source for outbox wake-ups.

    Implementations provide mechanisms for being notified of new outbox
    records (PostgreSQL NOTIFY, message queue, etc.). A notification is only
    a hint to claim early; claiming still goes through the repository.
    """

    async def start(self, on_event: Callable[[str], Awaitable[None]]) -> None:
        """Start the event source and begin monitoring for events.

        This method should not return until stop() is called or an error occurs.

        Args:
            on_event: Async callback invoked with the raw notification payload
        """
        ...

    async def stop(self) -> None:
        """Stop the event source and release held resources."""
        ...
