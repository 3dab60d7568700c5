"""Wake-up sources for the outbox worker.

A source only shortens the worker's idle wait; records are always claimed
through the repository.
"""

from infrastructure.outbox.event_sources.postgres_notify import (
    PostgresNotifyEventSource,
)

__all__ = ["PostgresNotifyEventSource"]
