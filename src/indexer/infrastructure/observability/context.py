"""Observation context for domain-oriented observability.

Observation contexts collect and manage contextual metadata for instrumentation,
following the Domain Oriented Observability pattern.

See: https://martinfowler.com/articles/domain-oriented-observability.html
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class ObservationContext:
    """Immutable context containing metadata for observability.

    Captures process-scoped metadata that should be included with all
    instrumentation events, so log lines from several concurrent workers
    can be told apart.

    Attributes:
        worker_id: Identifier of the worker process (e.g., "host-1234").
        store: Which store the event concerns ("outbox" or "graph").
        extra: Additional contextual metadata.

    Example:
        context = ObservationContext(worker_id="indexer-1", store="outbox")
        probe = DefaultConnectionProbe().with_context(context)
    """

    worker_id: str | None = None
    store: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def as_dict(self) -> dict[str, Any]:
        """Convert context to a dictionary for logging.

        Only includes non-None values to keep logs clean.
        """
        result: dict[str, Any] = {}
        if self.worker_id is not None:
            result["worker_id"] = self.worker_id
        if self.store is not None:
            result["store"] = self.store
        result.update(self.extra)
        return result

    def with_store(self, store: str) -> ObservationContext:
        """Create a new context with the store set."""
        return ObservationContext(
            worker_id=self.worker_id,
            store=store,
            extra=self.extra,
        )
