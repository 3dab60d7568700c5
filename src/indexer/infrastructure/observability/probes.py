"""Domain probes for the outbox database connection.

The worker holds exactly one outbox connection for its lifetime, so these
events mark the few moments that matter operationally: the startup check,
a failed startup and the final disposal of the engine.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from infrastructure.observability.context import ObservationContext


class ConnectionProbe(Protocol):
    """Domain probe for outbox database connection observability."""

    def connection_established(self, target: str, tls: bool) -> None:
        """Record that the startup check reached the outbox database."""
        ...

    def connection_failed(self, target: str, error: Exception) -> None:
        """Record that the outbox database could not be reached."""
        ...

    def engine_disposed(self) -> None:
        """Record that the engine and its connection were released."""
        ...

    def with_context(self, context: ObservationContext) -> ConnectionProbe:
        """Create a new probe with observation context bound."""
        ...


class DefaultConnectionProbe:
    """Default implementation of ConnectionProbe using structlog.

    ``target`` is always the password-free form of the DSN.
    """

    def __init__(
        self,
        logger: structlog.stdlib.BoundLogger | None = None,
        context: ObservationContext | None = None,
    ):
        self._logger = logger or structlog.get_logger()
        self._context = context

    def _get_context_kwargs(self) -> dict[str, Any]:
        if self._context is None:
            return {}
        return self._context.as_dict()

    def with_context(self, context: ObservationContext) -> DefaultConnectionProbe:
        return DefaultConnectionProbe(logger=self._logger, context=context)

    def connection_established(self, target: str, tls: bool) -> None:
        self._logger.info(
            "outbox_connected",
            target=target,
            tls=tls,
            **self._get_context_kwargs(),
        )

    def connection_failed(self, target: str, error: Exception) -> None:
        self._logger.error(
            "outbox_connection_failed",
            target=target,
            error=str(error),
            error_type=type(error).__name__,
            **self._get_context_kwargs(),
        )

    def engine_disposed(self) -> None:
        self._logger.info("outbox_engine_disposed", **self._get_context_kwargs())
