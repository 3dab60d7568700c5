"""Domain probes for graph store observability.

These probes capture domain-significant events related to the graph store
connection and the writes applied to it, following the Domain Oriented
Observability pattern.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

import structlog

if TYPE_CHECKING:
    from infrastructure.observability.context import ObservationContext


class GraphClientProbe(Protocol):
    """Domain probe for graph client observability.

    This probe captures domain-significant events related to graph
    database operations without exposing logging implementation details.
    """

    def connected_to_graph(self, uri: str, database: str | None) -> None:
        """Record successful connection to the graph store."""
        ...

    def connection_failed(self, uri: str, error: Exception) -> None:
        """Record that the graph store could not be reached."""
        ...

    def write_applied(
        self,
        event_kind: str,
        nodes_created: int,
        relationships_created: int,
        properties_set: int,
    ) -> None:
        """Record that a graph write was committed."""
        ...

    def query_failed(self, query: str, error: Exception) -> None:
        """Record that a Cypher query execution failed."""
        ...

    def disconnected(self, uri: str) -> None:
        """Record that the driver was closed."""
        ...

    def with_context(self, context: ObservationContext) -> GraphClientProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultGraphClientProbe:
    """Default implementation of GraphClientProbe using structlog.

    Supports observation context for including worker-scoped metadata
    with all log events.
    """

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
        context: ObservationContext | None = None,
    ):
        self._logger = logger or structlog.get_logger()
        self._context = context

    def _get_context_kwargs(self) -> dict[str, str | None]:
        """Get context metadata as kwargs for logging."""
        if self._context is None:
            return {}
        return self._context.as_dict()

    def with_context(self, context: ObservationContext) -> DefaultGraphClientProbe:
        """Create a new probe with observation context bound."""
        return DefaultGraphClientProbe(logger=self._logger, context=context)

    def connected_to_graph(self, uri: str, database: str | None) -> None:
        """Record successful connection to the graph store."""
        self._logger.info(
            "graph_connected",
            uri=uri,
            database=database,
            **self._get_context_kwargs(),
        )

    def connection_failed(self, uri: str, error: Exception) -> None:
        """Record that the graph store could not be reached."""
        self._logger.error(
            "graph_connection_failed",
            uri=uri,
            error=str(error),
            error_type=type(error).__name__,
            **self._get_context_kwargs(),
        )

    def write_applied(
        self,
        event_kind: str,
        nodes_created: int,
        relationships_created: int,
        properties_set: int,
    ) -> None:
        """Record that a graph write was committed."""
        self._logger.debug(
            "graph_write_applied",
            event_kind=event_kind,
            nodes_created=nodes_created,
            relationships_created=relationships_created,
            properties_set=properties_set,
            **self._get_context_kwargs(),
        )

    def query_failed(self, query: str, error: Exception) -> None:
        """Record that a Cypher query execution failed."""
        self._logger.error(
            "graph_query_failed",
            query=query,
            error=str(error),
            **self._get_context_kwargs(),
        )

    def disconnected(self, uri: str) -> None:
        """Record that the driver was closed."""
        self._logger.info(
            "graph_disconnected",
            uri=uri,
            **self._get_context_kwargs(),
        )
