"""SQLAlchemy ORM models for the outbox pattern.

This module maps the outbox table that the producer trigger and the
backfill job write to. The schema is owned by those collaborators; the model
mirrors it so the worker can claim and update rows.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    Identity,
    Index,
    Integer,
    String,
    Text,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from infrastructure.database.models import Base
from shared_kernel.outbox.value_objects import OutboxRecord, OutboxStatus

OUTBOX_TABLE = "outbox_graph_events"


class OutboxGraphEventModel(Base):
    """ORM model for the outbox table.

    Stores change events that need to be projected into the graph store.

    The (status, occurred_at) index serves the claim query, which scans
    pending rows oldest first.
    """

    __tablename__ = OUTBOX_TABLE
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'processing', 'done', 'failed')",
            name="status",
        ),
        CheckConstraint("attempts >= 0", name="attempts"),
        Index("idx_outbox_graph_events_status_occurred_at", "status", "occurred_at"),
    )

    id: Mapped[int] = mapped_column(
        BigInteger,
        Identity(always=False),
        primary_key=True,
    )
    event_kind: Mapped[str] = mapped_column(String(255), nullable=False)
    payload: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False)
    occurred_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=text("NOW()"),
    )
    attempts: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        server_default="0",
    )
    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        server_default=OutboxStatus.PENDING.value,
    )
    error: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
    )

    def to_value_object(self) -> OutboxRecord:
        """Convert this ORM model to an OutboxRecord value object.

        Returns:
            An immutable OutboxRecord with all fields copied from this model.
        """
        return OutboxRecord(
            id=self.id,
            event_kind=self.event_kind,
            payload=self.payload or {},
            occurred_at=self.occurred_at,
            attempts=self.attempts,
            status=OutboxStatus(self.status),
            error=self.error,
        )

    def __repr__(self) -> str:
        """Return string representation."""
        return (
            f"<OutboxGraphEventModel("
            f"id={self.id}, "
            f"event_kind={self.event_kind}, "
            f"status={self.status}, "
            f"attempts={self.attempts}"
            f")>"
        )
