"""Unit tests for OutboxRepository.

The session factory is mocked; statements passed to session.execute() are
compiled with the PostgreSQL dialect so the claim protocol's SQL can be
checked without a database.
"""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import OperationalError

from infrastructure.outbox.models import OutboxGraphEventModel
from infrastructure.outbox.repository import OutboxRepository
from shared_kernel.outbox.exceptions import (
    ClaimProtocolError,
    OutboxWriteError,
    StoreError,
)
from shared_kernel.outbox.value_objects import OutboxStatus, Outcome


def _session_factory(result=None, error: Exception | None = None):
    session = AsyncMock()
    if error is not None:
        session.execute.side_effect = error
    else:
        session.execute.return_value = result

    session.begin = MagicMock()
    session.begin.return_value.__aenter__ = AsyncMock(return_value=None)
    session.begin.return_value.__aexit__ = AsyncMock(return_value=False)

    factory = MagicMock()
    factory.return_value.__aenter__ = AsyncMock(return_value=session)
    factory.return_value.__aexit__ = AsyncMock(return_value=False)
    return factory, session


def _compiled_sql(session: AsyncMock) -> str:
    stmt = session.execute.call_args.args[0]
    return str(stmt.compile(dialect=postgresql.dialect()))


def _model(record_id: int, second: int) -> OutboxGraphEventModel:
    return OutboxGraphEventModel(
        id=record_id,
        event_kind="relationship.insert",
        payload={"subject": "A", "predicate": "knows", "object": "B"},
        occurred_at=datetime(2026, 1, 8, 12, 0, second, tzinfo=UTC),
        attempts=0,
        status="processing",
    )


def _operational_error() -> OperationalError:
    return OperationalError("UPDATE", {}, Exception("connection refused"))


class TestClaimBatch:
    """Tests for OutboxRepository.claim_batch()."""

    @pytest.mark.asyncio
    async def test_claim_sql_skips_locked_rows_oldest_first(self):
        result = MagicMock()
        result.scalars.return_value.all.return_value = []
        factory, session = _session_factory(result)

        await OutboxRepository(factory).claim_batch(10)

        sql = _compiled_sql(session)
        assert sql.startswith("UPDATE outbox_graph_events SET status=")
        assert "FOR UPDATE SKIP LOCKED" in sql
        assert (
            "ORDER BY outbox_graph_events.occurred_at, outbox_graph_events.id" in sql
        )
        assert "LIMIT" in sql
        assert "RETURNING" in sql

    @pytest.mark.asyncio
    async def test_claim_runs_in_its_own_transaction(self):
        result = MagicMock()
        result.scalars.return_value.all.return_value = []
        factory, session = _session_factory(result)

        await OutboxRepository(factory).claim_batch(5)

        session.begin.assert_called_once()

    @pytest.mark.asyncio
    async def test_returns_records_sorted_by_occurred_at(self):
        result = MagicMock()
        result.scalars.return_value.all.return_value = [
            _model(3, 30),
            _model(1, 10),
            _model(2, 20),
        ]
        factory, _ = _session_factory(result)

        records = await OutboxRepository(factory).claim_batch(10)

        assert [r.id for r in records] == [1, 2, 3]
        assert all(r.status is OutboxStatus.PROCESSING for r in records)

    @pytest.mark.asyncio
    async def test_empty_outbox_returns_empty_list(self):
        result = MagicMock()
        result.scalars.return_value.all.return_value = []
        factory, _ = _session_factory(result)

        assert await OutboxRepository(factory).claim_batch(10) == []

    @pytest.mark.asyncio
    async def test_rejects_non_positive_max_items(self):
        factory, session = _session_factory()

        with pytest.raises(ValueError):
            await OutboxRepository(factory).claim_batch(0)

        session.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_store_failure_raises_claim_protocol_error(self):
        factory, _ = _session_factory(error=_operational_error())

        with pytest.raises(ClaimProtocolError, match="connection refused"):
            await OutboxRepository(factory).claim_batch(10)


class TestRecordOutcome:
    """Tests for OutboxRepository.record_outcome()."""

    @pytest.mark.asyncio
    async def test_increments_attempts_in_sql_for_processing_rows(self):
        result = MagicMock(rowcount=1)
        factory, session = _session_factory(result)

        applied = await OutboxRepository(factory).record_outcome(
            7, Outcome(status=OutboxStatus.PENDING, attempts=1, error="boom")
        )

        assert applied is True
        sql = _compiled_sql(session)
        assert "outbox_graph_events.attempts +" in sql
        assert "outbox_graph_events.status =" in sql

    @pytest.mark.asyncio
    async def test_returns_false_when_row_was_reset(self):
        factory, _ = _session_factory(MagicMock(rowcount=0))

        applied = await OutboxRepository(factory).record_outcome(
            7, Outcome(status=OutboxStatus.DONE, attempts=1)
        )

        assert applied is False

    @pytest.mark.asyncio
    async def test_store_failure_raises_outbox_write_error(self):
        factory, _ = _session_factory(error=_operational_error())

        with pytest.raises(OutboxWriteError):
            await OutboxRepository(factory).record_outcome(
                7, Outcome(status=OutboxStatus.DONE, attempts=1)
            )


class TestReleaseAndResets:
    """Tests for release(), requeue_failed() and reset_processing()."""

    @pytest.mark.asyncio
    async def test_release_nothing_skips_the_database(self):
        factory, session = _session_factory()

        assert await OutboxRepository(factory).release([]) == 0

        session.execute.assert_not_called()

    @pytest.mark.asyncio
    async def test_release_returns_rowcount(self):
        factory, session = _session_factory(MagicMock(rowcount=2))

        released = await OutboxRepository(factory).release([4, 5])

        assert released == 2
        sql = _compiled_sql(session)
        assert "attempts" not in sql.split("WHERE")[0]

    @pytest.mark.asyncio
    async def test_requeue_failed_filters_by_kind(self):
        factory, session = _session_factory(MagicMock(rowcount=3))

        count = await OutboxRepository(factory).requeue_failed(
            event_kind="note.insert"
        )

        assert count == 3
        sql = _compiled_sql(session)
        assert "outbox_graph_events.event_kind =" in sql

    @pytest.mark.asyncio
    async def test_reset_processing_by_ids(self):
        factory, session = _session_factory(MagicMock(rowcount=1))

        count = await OutboxRepository(factory).reset_processing([9])

        assert count == 1
        assert "outbox_graph_events.id IN" in _compiled_sql(session)

    @pytest.mark.asyncio
    async def test_reset_failure_raises_outbox_write_error(self):
        factory, _ = _session_factory(error=_operational_error())

        with pytest.raises(OutboxWriteError):
            await OutboxRepository(factory).reset_processing()


class TestStatusCounts:
    """Tests for status_counts()."""

    @pytest.mark.asyncio
    async def test_returns_rows(self):
        result = MagicMock()
        result.all.return_value = [("note.insert", "done", 4)]
        factory, _ = _session_factory(result)

        rows = await OutboxRepository(factory).status_counts()

        assert rows == [("note.insert", "done", 4)]

    @pytest.mark.asyncio
    async def test_store_failure_raises_store_error(self):
        factory, _ = _session_factory(error=_operational_error())

        with pytest.raises(StoreError, match="connection refused") as exc_info:
            await OutboxRepository(factory).status_counts()

        assert not isinstance(exc_info.value, ClaimProtocolError)
