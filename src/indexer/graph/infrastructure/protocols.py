"""Graph store connection protocols.

These protocols let the graph writer and the startup checks depend on an
abstraction rather than on the Neo4j driver.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol


@dataclass(frozen=True)
class WriteSummary:
    """Counters reported by the graph store for one committed write."""

    nodes_created: int = 0
    relationships_created: int = 0
    properties_set: int = 0


class GraphConnectionProtocol(Protocol):
    """Protocol for graph store connections."""

    async def connect(self) -> None:
        """Open the driver and verify the store is reachable."""
        ...

    async def disconnect(self) -> None:
        """Close the driver."""
        ...


class GraphWriteExecutorProtocol(GraphConnectionProtocol, Protocol):
    """Protocol for executing write statements against the graph store."""

    async def execute_write(
        self,
        query: str,
        parameters: dict[str, Any] | None = None,
    ) -> WriteSummary:
        """Run one statement in a write transaction and commit it."""
        ...
