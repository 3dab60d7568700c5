"""Outbox database connection verification.

The worker refuses to start without a working outbox connection, so the
engine is exercised once before the loop begins.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from infrastructure.database.exceptions import DatabaseConnectionError
from infrastructure.observability.probes import (
    ConnectionProbe,
    DefaultConnectionProbe,
)

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncEngine

    from infrastructure.settings import OutboxDatabaseSettings


async def verify_connection(
    engine: AsyncEngine,
    settings: OutboxDatabaseSettings,
    probe: ConnectionProbe | None = None,
) -> None:
    """Open a connection and run a trivial query.

    Args:
        engine: The outbox engine
        settings: Settings used for logging the target
        probe: Optional observability probe

    Raises:
        DatabaseConnectionError: If the database cannot be reached.
    """
    probe = probe or DefaultConnectionProbe()

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        probe.connection_failed(settings.connection_string, e)
        raise DatabaseConnectionError(f"Failed to connect to database: {e}") from e

    probe.connection_established(settings.connection_string, settings.use_ssl)


async def close_engine(
    engine: AsyncEngine,
    probe: ConnectionProbe | None = None,
) -> None:
    """Dispose of the engine and its pooled connection."""
    probe = probe or DefaultConnectionProbe()
    await engine.dispose()
    probe.engine_disposed()
