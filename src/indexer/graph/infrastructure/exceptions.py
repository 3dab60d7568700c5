"""Exceptions for Graph Infrastructure."""

from shared_kernel.outbox.exceptions import GraphWriteError


class GraphError(Exception):
    """Base exception for graph store operations outside of event writes."""

    pass


class GraphConnectionError(GraphError):
    """Raised when the graph store cannot be reached."""

    pass


class InvalidCypherIdentifierError(GraphWriteError):
    """Raised when a label, type or key is unsafe to interpolate into Cypher."""

    pass
