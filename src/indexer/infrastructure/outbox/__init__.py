"""Infrastructure layer for the outbox pattern.

Contains the SQLAlchemy model, the repository implementing the claim
protocol, the composite transformer and the worker loop.
"""

from infrastructure.outbox.composite import CompositeTransformer, UnknownEventKindError
from infrastructure.outbox.models import OutboxGraphEventModel
from infrastructure.outbox.repository import OutboxRepository
from infrastructure.outbox.worker import OutboxWorker

__all__ = [
    "CompositeTransformer",
    "OutboxGraphEventModel",
    "OutboxRepository",
    "OutboxWorker",
    "UnknownEventKindError",
]
