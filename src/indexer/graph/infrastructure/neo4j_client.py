"""Neo4j graph client implementation.

Provides the concrete implementation of graph store operations using the
official async Neo4j driver.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from neo4j import AsyncGraphDatabase
from neo4j.exceptions import DriverError, Neo4jError

from graph.infrastructure.exceptions import GraphConnectionError
from graph.infrastructure.observability import (
    DefaultGraphClientProbe,
    GraphClientProbe,
)
from graph.infrastructure.protocols import WriteSummary
from shared_kernel.outbox.exceptions import GraphWriteError

if TYPE_CHECKING:
    from neo4j import AsyncDriver, AsyncManagedTransaction

    from infrastructure.settings import GraphStoreSettings


class Neo4jGraphClient:
    """Neo4j implementation of the GraphWriteExecutorProtocol.

    The driver is opened once and kept for the life of the worker. Each
    write runs in its own managed write transaction, which the driver
    commits on return and rolls back on error.

    Example:
        client = Neo4jGraphClient(get_graph_settings())
        await client.connect()
        await client.execute_write("MERGE (n:Entity {id: $id})", {"id": "..."})
        await client.disconnect()
    """

    def __init__(
        self,
        settings: GraphStoreSettings,
        probe: GraphClientProbe | None = None,
    ):
        self._settings = settings
        self._probe = probe or DefaultGraphClientProbe()
        self._driver: AsyncDriver | None = None

    @property
    def uri(self) -> str:
        """The URI of the graph store."""
        return self._settings.uri

    async def connect(self) -> None:
        """Open the driver and verify the store is reachable.

        Raises:
            GraphConnectionError: If the store cannot be reached or rejects
                the credentials
        """
        driver = AsyncGraphDatabase.driver(
            self._settings.uri,
            auth=(self._settings.user, self._settings.password.get_secret_value()),
            connection_timeout=self._settings.connection_timeout_seconds,
        )
        try:
            await driver.verify_connectivity()
        except (Neo4jError, DriverError, OSError) as e:
            await driver.close()
            self._probe.connection_failed(self._settings.uri, e)
            raise GraphConnectionError(f"Failed to connect to graph store: {e}") from e

        self._driver = driver
        self._probe.connected_to_graph(self._settings.uri, self._settings.database)

    async def disconnect(self) -> None:
        """Close the driver."""
        if self._driver is None:
            return
        await self._driver.close()
        self._driver = None
        self._probe.disconnected(self._settings.uri)

    async def execute_write(
        self,
        query: str,
        parameters: dict[str, Any] | None = None,
    ) -> WriteSummary:
        """Run one statement in a write transaction and commit it.

        Args:
            query: The Cypher statement
            parameters: Statement parameters

        Returns:
            Counters reported by the store for the committed write

        Raises:
            GraphWriteError: If not connected or the store fails the write
        """
        if self._driver is None:
            raise GraphWriteError("Not connected to graph store", query=query)

        try:
            async with self._driver.session(
                database=self._settings.database
            ) as session:
                return await session.execute_write(
                    _run_and_summarize, query, parameters or {}
                )
        except (Neo4jError, DriverError, OSError) as e:
            self._probe.query_failed(query, e)
            raise GraphWriteError(f"Graph write failed: {e}", query=query) from e


async def _run_and_summarize(
    tx: AsyncManagedTransaction,
    query: str,
    parameters: dict[str, Any],
) -> WriteSummary:
    result = await tx.run(query, parameters)
    summary = await result.consume()
    counters = summary.counters
    return WriteSummary(
        nodes_created=counters.nodes_created,
        relationships_created=counters.relationships_created,
        properties_set=counters.properties_set,
    )
