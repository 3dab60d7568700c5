"""Exceptions raised while consuming the outbox.

The worker distinguishes three families:

- PayloadValidationError: the payload is malformed. Retrying the same
  payload cannot succeed, but it still goes through the attempt cap.
- StoreError: one of the stores rejected or could not execute a
  statement. Transient.
- ClaimProtocolError: the claim call itself failed. Nothing was claimed,
  so no outbox state changes.
"""

from __future__ import annotations


class OutboxError(Exception):
    """Base exception for outbox consumption."""

    pass


class PayloadValidationError(OutboxError):
    """Raised when an event payload is missing or has invalid fields."""

    def __init__(self, event_kind: str, message: str, fields: tuple[str, ...] = ()):
        super().__init__(f"Invalid {event_kind} payload: {message}")
        self.event_kind = event_kind
        self.fields = fields


class StoreError(OutboxError):
    """Raised when a store could not execute a statement."""

    pass


class GraphWriteError(StoreError):
    """Raised when the graph store rejects or fails a write."""

    def __init__(self, message: str, query: str | None = None):
        super().__init__(message)
        self.query = query


class OutboxWriteError(StoreError):
    """Raised when an outcome or release cannot be written to the outbox."""

    pass


class ClaimProtocolError(OutboxError):
    """Raised when a batch cannot be claimed (e.g., store unreachable)."""

    pass
