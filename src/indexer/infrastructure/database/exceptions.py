"""Database-specific exceptions."""


class DatabaseError(Exception):
    """Base exception for database operations."""

    pass


class DatabaseConnectionError(DatabaseError):
    """Raised when the outbox database cannot be reached at startup."""

    pass
