"""Outbox consumption primitives.

Value objects, ports, the retry policy and the exception taxonomy shared by
the worker, the repository and the event transformers.
"""

from shared_kernel.outbox.exceptions import (
    ClaimProtocolError,
    GraphWriteError,
    OutboxError,
    OutboxWriteError,
    PayloadValidationError,
    StoreError,
)
from shared_kernel.outbox.ports import (
    EventTransformer,
    GraphWriter,
    IOutboxRepository,
)
from shared_kernel.outbox.retry_policy import RetryPolicy
from shared_kernel.outbox.value_objects import (
    OutboxRecord,
    OutboxStatus,
    Outcome,
    WorkerStats,
)

__all__ = [
    "ClaimProtocolError",
    "EventTransformer",
    "GraphWriteError",
    "GraphWriter",
    "IOutboxRepository",
    "OutboxError",
    "OutboxRecord",
    "OutboxStatus",
    "OutboxWriteError",
    "Outcome",
    "PayloadValidationError",
    "RetryPolicy",
    "StoreError",
    "WorkerStats",
]
