"""Outbox repository implementation.

This module provides the PostgreSQL implementation of the outbox repository:
the batch claim protocol, the outcome write-back and the operator resets.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING

from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError

from infrastructure.outbox.models import OutboxGraphEventModel
from shared_kernel.outbox.exceptions import (
    ClaimProtocolError,
    OutboxWriteError,
    StoreError,
)
from shared_kernel.outbox.value_objects import OutboxRecord, OutboxStatus

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from shared_kernel.outbox.value_objects import Outcome

# Failures that mean the store could not execute the statement.
_STORE_FAILURES = (SQLAlchemyError, OSError)


class OutboxRepository:
    """PostgreSQL implementation of the outbox repository.

    Unlike a producer-side outbox, the consumer does not share a session
    with anything else: every method opens its own session and commits
    before returning. A claim in particular has to be committed before
    processing starts, otherwise other workers would still see the rows as
    pending once the row locks are released.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        """Initialize the repository with a session factory.

        Args:
            session_factory: Factory for sessions bound to the outbox engine
        """
        self._session_factory = session_factory

    async def claim_batch(self, max_items: int) -> list[OutboxRecord]:
        """Claim up to max_items pending records, oldest first.

        The pending rows are selected with FOR UPDATE SKIP LOCKED and flipped
        to processing in the same statement, so two concurrent callers never
        return the same record and never block on each other's batch.

        Args:
            max_items: Maximum number of records to claim

        Returns:
            Claimed records ordered by (occurred_at, id); empty if nothing
            is pending

        Raises:
            ValueError: If max_items is not positive
            ClaimProtocolError: If the store cannot be reached
        """
        if max_items < 1:
            raise ValueError(f"max_items must be a positive integer, got {max_items}")

        claimable = (
            select(OutboxGraphEventModel.id)
            .where(OutboxGraphEventModel.status == OutboxStatus.PENDING.value)
            .order_by(OutboxGraphEventModel.occurred_at, OutboxGraphEventModel.id)
            .limit(max_items)
            .with_for_update(skip_locked=True)
            .correlate(None)
        )

        stmt = (
            update(OutboxGraphEventModel)
            .where(OutboxGraphEventModel.id.in_(claimable))
            .values(status=OutboxStatus.PROCESSING.value)
            .returning(OutboxGraphEventModel)
            .execution_options(synchronize_session=False)
        )

        try:
            async with self._session_factory() as session:
                async with session.begin():
                    result = await session.execute(stmt)
                    models = result.scalars().all()
                    records = [model.to_value_object() for model in models]
        except _STORE_FAILURES as e:
            raise ClaimProtocolError(f"Failed to claim outbox batch: {e}") from e

        # RETURNING does not preserve the subquery's order
        return sorted(records, key=lambda record: (record.occurred_at, record.id))

    async def record_outcome(self, record_id: int, outcome: Outcome) -> bool:
        """Write a processing outcome back to a claimed record.

        ``attempts`` is incremented in SQL rather than set, so it can only
        grow even if the row was reset and reprocessed in the meantime.
        Only rows still in processing are updated.

        Args:
            record_id: The claimed record
            outcome: The outcome computed by the retry policy

        Returns:
            True if the row was updated, False if it was no longer processing

        Raises:
            OutboxWriteError: If the write-back fails
        """
        stmt = (
            update(OutboxGraphEventModel)
            .where(OutboxGraphEventModel.id == record_id)
            .where(OutboxGraphEventModel.status == OutboxStatus.PROCESSING.value)
            .values(
                status=outcome.status.value,
                attempts=OutboxGraphEventModel.attempts + 1,
                error=outcome.error,
            )
            .execution_options(synchronize_session=False)
        )

        try:
            async with self._session_factory() as session:
                async with session.begin():
                    result = await session.execute(stmt)
        except _STORE_FAILURES as e:
            raise OutboxWriteError(
                f"Failed to write outcome for record {record_id}: {e}"
            ) from e

        return result.rowcount > 0

    async def release(self, record_ids: Sequence[int]) -> int:
        """Hand claimed but unstarted records back to pending.

        Used on shutdown for the part of a batch the worker will not reach.
        Attempts and error are left untouched.

        Args:
            record_ids: Records claimed by this worker and not yet processed

        Returns:
            Number of records released

        Raises:
            OutboxWriteError: If the update fails
        """
        if not record_ids:
            return 0

        stmt = (
            update(OutboxGraphEventModel)
            .where(OutboxGraphEventModel.id.in_(list(record_ids)))
            .where(OutboxGraphEventModel.status == OutboxStatus.PROCESSING.value)
            .values(status=OutboxStatus.PENDING.value)
            .execution_options(synchronize_session=False)
        )
        return await self._execute_update(stmt, "release claimed records")

    async def status_counts(self) -> list[tuple[str, str, int]]:
        """Count records grouped by event kind and status.

        Returns:
            (event_kind, status, count) rows ordered by kind then status

        Raises:
            StoreError: If the outbox cannot be read
        """
        stmt = (
            select(
                OutboxGraphEventModel.event_kind,
                OutboxGraphEventModel.status,
                func.count(),
            )
            .group_by(OutboxGraphEventModel.event_kind, OutboxGraphEventModel.status)
            .order_by(OutboxGraphEventModel.event_kind, OutboxGraphEventModel.status)
        )

        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                rows = result.all()
        except _STORE_FAILURES as e:
            raise StoreError(f"Failed to read outbox status: {e}") from e

        return [(kind, status, int(count)) for kind, status, count in rows]

    async def requeue_failed(
        self,
        record_ids: Sequence[int] | None = None,
        event_kind: str | None = None,
    ) -> int:
        """Move dead-lettered records back to pending.

        Args:
            record_ids: Restrict to these records (default: all failed)
            event_kind: Restrict to one event kind

        Returns:
            Number of records requeued
        """
        stmt = update(OutboxGraphEventModel).where(
            OutboxGraphEventModel.status == OutboxStatus.FAILED.value
        )
        if record_ids:
            stmt = stmt.where(OutboxGraphEventModel.id.in_(list(record_ids)))
        if event_kind is not None:
            stmt = stmt.where(OutboxGraphEventModel.event_kind == event_kind)

        stmt = stmt.values(status=OutboxStatus.PENDING.value).execution_options(
            synchronize_session=False
        )
        return await self._execute_update(stmt, "requeue failed records")

    async def reset_processing(self, record_ids: Sequence[int] | None = None) -> int:
        """Move records stuck in processing back to pending.

        This is the stale-lock recovery step for records left behind by a
        crashed worker. Running it while workers are active only causes
        duplicate (idempotent) graph writes.

        Args:
            record_ids: Restrict to these records (default: all processing)

        Returns:
            Number of records reset
        """
        stmt = update(OutboxGraphEventModel).where(
            OutboxGraphEventModel.status == OutboxStatus.PROCESSING.value
        )
        if record_ids:
            stmt = stmt.where(OutboxGraphEventModel.id.in_(list(record_ids)))

        stmt = stmt.values(status=OutboxStatus.PENDING.value).execution_options(
            synchronize_session=False
        )
        return await self._execute_update(stmt, "reset processing records")

    async def _execute_update(self, stmt, action: str) -> int:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    result = await session.execute(stmt)
        except _STORE_FAILURES as e:
            raise OutboxWriteError(f"Failed to {action}: {e}") from e

        return result.rowcount
