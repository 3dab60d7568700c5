"""Composite transformer for the outbox pattern.

Aggregates the per-family event transformers and routes each event to the
one registered for its kind. Each event family registers its own
transformer, so the worker never needs to know which kinds exist.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from shared_kernel.outbox.observability import OutboxWorkerProbe
    from shared_kernel.outbox.operations import GraphWrite
    from shared_kernel.outbox.ports import EventTransformer


class UnknownEventKindError(LookupError):
    """Raised when no transformer is registered for an event kind."""

    def __init__(self, event_kind: str, registered: frozenset[str]):
        super().__init__(
            f"No transformer registered for event kind: {event_kind}. "
            f"Registered kinds: {sorted(registered)}"
        )
        self.event_kind = event_kind


class CompositeTransformer:
    """Delegates transformation to event-family transformers.

    This class implements the EventTransformer protocol by aggregating
    multiple transformers and routing to the appropriate one based on
    the event kind.
    """

    def __init__(self, probe: "OutboxWorkerProbe | None" = None) -> None:
        """Initialize with no registered transformers.

        Args:
            probe: Optional observability probe for logging registrations
        """
        self._kind_index: dict[str, EventTransformer] = {}
        self._probe = probe

    def register(
        self, transformer: EventTransformer, name: str | None = None
    ) -> None:
        """Register an event-family transformer.

        Args:
            transformer: The transformer to register
            name: Optional family name (defaults to class name)

        Raises:
            ValueError: If one of its kinds is already registered
        """
        event_kinds = transformer.supported_event_kinds()

        taken = sorted(kind for kind in event_kinds if kind in self._kind_index)
        if taken:
            raise ValueError(f"Event kinds already registered: {taken}")

        for event_kind in event_kinds:
            self._kind_index[event_kind] = transformer

        if self._probe is not None:
            self._probe.transformer_registered(
                name if name is not None else type(transformer).__name__,
                event_kinds,
            )

    def supported_event_kinds(self) -> frozenset[str]:
        """Return all supported event kinds across all transformers."""
        return frozenset(self._kind_index)

    def supports(self, event_kind: str) -> bool:
        """Check if a transformer is registered for the event kind."""
        return event_kind in self._kind_index

    def transform(
        self,
        event_kind: str,
        payload: dict[str, Any],
        observed_at: datetime,
    ) -> GraphWrite:
        """Transform an event with the transformer registered for its kind.

        Raises:
            UnknownEventKindError: If no transformer is registered for the kind
            PayloadValidationError: If the payload is invalid
        """
        transformer = self._kind_index.get(event_kind)
        if transformer is None:
            raise UnknownEventKindError(event_kind, self.supported_event_kinds())
        return transformer.transform(event_kind, payload, observed_at)
