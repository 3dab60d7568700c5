"""Outbox database access: engine factory, startup check and exceptions."""

from infrastructure.database.connection import close_engine, verify_connection
from infrastructure.database.engines import (
    create_outbox_engine,
    create_session_factory,
)
from infrastructure.database.exceptions import (
    DatabaseConnectionError,
    DatabaseError,
)

__all__ = [
    "DatabaseConnectionError",
    "DatabaseError",
    "close_engine",
    "create_outbox_engine",
    "create_session_factory",
    "verify_connection",
]
