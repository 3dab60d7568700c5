"""Graph writer that applies event graph writes to the graph store."""

from __future__ import annotations

from typing import TYPE_CHECKING

from graph.infrastructure.cypher_utils import build_upsert_query
from graph.infrastructure.observability import (
    DefaultGraphClientProbe,
    GraphClientProbe,
)

if TYPE_CHECKING:
    from graph.infrastructure.protocols import GraphWriteExecutorProtocol
    from shared_kernel.outbox.operations import GraphWrite


class Neo4jGraphWriter:
    """Applies GraphWrites as single MERGE statements.

    Implements the GraphWriter port. One GraphWrite becomes one statement
    in one transaction, so an event's nodes and relationships land
    together or not at all.
    """

    def __init__(
        self,
        client: GraphWriteExecutorProtocol,
        probe: GraphClientProbe | None = None,
    ) -> None:
        self._client = client
        self._probe = probe or DefaultGraphClientProbe()

    async def apply(self, write: GraphWrite) -> None:
        """Apply one GraphWrite atomically.

        Raises:
            GraphWriteError: If the statement cannot be built or the store
                fails it
        """
        query, parameters = build_upsert_query(write)
        summary = await self._client.execute_write(query, parameters)
        self._probe.write_applied(
            event_kind=write.event_kind,
            nodes_created=summary.nodes_created,
            relationships_created=summary.relationships_created,
            properties_set=summary.properties_set,
        )
