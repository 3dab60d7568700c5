"""Domain probe for process startup and lifecycle events.

Following Domain-Oriented Observability patterns, this probe captures
domain-significant events during worker initialization and shutdown.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from infrastructure.observability.context import ObservationContext


class StartupProbe(Protocol):
    """Domain probe for process lifecycle operations."""

    def indexer_starting(self, version: str) -> None:
        """Record that the process is starting."""
        ...

    def startup_failed(self, error: str) -> None:
        """Record that a store could not be reached at startup."""
        ...

    def signal_received(self, signal_name: str) -> None:
        """Record that a termination signal was received."""
        ...

    def shutdown_complete(self) -> None:
        """Record that both connections were closed."""
        ...

    def with_context(self, context: ObservationContext) -> StartupProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultStartupProbe:
    """Default implementation of StartupProbe using structlog."""

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
        context: ObservationContext | None = None,
    ):
        self._logger = logger or structlog.get_logger()
        self._context = context

    def _get_context_kwargs(self) -> dict[str, Any]:
        """Get context metadata as kwargs for logging."""
        if self._context is None:
            return {}
        return self._context.as_dict()

    def with_context(self, context: ObservationContext) -> DefaultStartupProbe:
        """Create a new probe with observation context bound."""
        return DefaultStartupProbe(logger=self._logger, context=context)

    def indexer_starting(self, version: str) -> None:
        self._logger.info(
            "indexer_starting",
            version=version,
            **self._get_context_kwargs(),
        )

    def startup_failed(self, error: str) -> None:
        self._logger.error(
            "indexer_startup_failed",
            error=error,
            **self._get_context_kwargs(),
        )

    def signal_received(self, signal_name: str) -> None:
        self._logger.info(
            "indexer_signal_received",
            signal=signal_name,
            **self._get_context_kwargs(),
        )

    def shutdown_complete(self) -> None:
        self._logger.info(
            "indexer_shutdown_complete",
            **self._get_context_kwargs(),
        )
