"""Unit test fixtures with in-memory stand-ins for both stores."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from typing import Any
from unittest.mock import MagicMock

import pytest

from shared_kernel.outbox.exceptions import ClaimProtocolError, OutboxWriteError
from shared_kernel.outbox.operations import GraphWrite
from shared_kernel.outbox.value_objects import OutboxRecord, OutboxStatus, Outcome

BASE_TIME = datetime(2026, 1, 8, 12, 0, 0, tzinfo=UTC)


class InMemoryGraph:
    """GraphWriter that applies MERGE semantics to dictionaries.

    Nodes are keyed by (label, id); relationships by their endpoints, type
    and identity properties, mirroring what the Cypher MERGE matches on.
    """

    def __init__(self) -> None:
        self.nodes: dict[tuple[str, str], dict[str, Any]] = {}
        self.relationships: dict[tuple, dict[str, Any]] = {}
        self.writes: list[GraphWrite] = []

    async def apply(self, write: GraphWrite) -> None:
        self.writes.append(write)
        refs: dict[str, tuple[str, str]] = {}

        for node in write.nodes:
            key = (node.label, node.id)
            if key not in self.nodes:
                self.nodes[key] = {"id": node.id, **node.on_create}
            self.nodes[key].update(node.always)
            refs[node.ref] = key

        for rel in write.relationships:
            key = (
                refs[rel.start],
                rel.type,
                refs[rel.end],
                tuple(sorted(rel.key.items())),
            )
            if key not in self.relationships:
                self.relationships[key] = {**rel.key, **rel.on_create}
            self.relationships[key].update(rel.always)

    def nodes_with_label(self, label: str) -> list[dict[str, Any]]:
        return [props for (lbl, _), props in self.nodes.items() if lbl == label]

    def relationships_of_type(self, rel_type: str) -> list[dict[str, Any]]:
        return [props for key, props in self.relationships.items() if key[1] == rel_type]


class InMemoryOutboxRepository:
    """IOutboxRepository over a dict, with the claim protocol's semantics.

    ``claim_error`` and ``outcome_error`` inject store failures.
    """

    def __init__(self, records: Sequence[OutboxRecord] = ()) -> None:
        self.rows: dict[int, OutboxRecord] = {r.id: r for r in records}
        self.claim_error: Exception | None = None
        self.outcome_error: Exception | None = None
        self.claim_calls: list[int] = []
        self.outcome_calls: list[tuple[int, Outcome]] = []
        self.released: list[int] = []

    async def claim_batch(self, max_items: int) -> list[OutboxRecord]:
        self.claim_calls.append(max_items)
        if self.claim_error is not None:
            raise self.claim_error
        pending = sorted(
            (r for r in self.rows.values() if r.status is OutboxStatus.PENDING),
            key=lambda r: (r.occurred_at, r.id),
        )[:max_items]
        claimed = []
        for record in pending:
            updated = replace(record, status=OutboxStatus.PROCESSING)
            self.rows[record.id] = updated
            claimed.append(updated)
        return claimed

    async def record_outcome(self, record_id: int, outcome: Outcome) -> bool:
        self.outcome_calls.append((record_id, outcome))
        if self.outcome_error is not None:
            raise self.outcome_error
        row = self.rows[record_id]
        if row.status is not OutboxStatus.PROCESSING:
            return False
        self.rows[record_id] = replace(
            row,
            status=outcome.status,
            attempts=row.attempts + 1,
            error=outcome.error,
        )
        return True

    async def release(self, record_ids: Sequence[int]) -> int:
        count = 0
        for record_id in record_ids:
            row = self.rows[record_id]
            if row.status is OutboxStatus.PROCESSING:
                self.rows[record_id] = replace(row, status=OutboxStatus.PENDING)
                self.released.append(record_id)
                count += 1
        return count

    def add(self, *records: OutboxRecord) -> None:
        for record in records:
            self.rows[record.id] = record

    def reset(self, record_id: int) -> None:
        """Operator reset of one record back to pending."""
        self.rows[record_id] = replace(
            self.rows[record_id], status=OutboxStatus.PENDING
        )


@pytest.fixture
def make_record():
    """Factory for OutboxRecord snapshots with sequential occurred_at."""

    def _make(
        record_id: int,
        event_kind: str = "relationship.insert",
        payload: dict[str, Any] | None = None,
        attempts: int = 0,
        status: OutboxStatus = OutboxStatus.PENDING,
        occurred_at: datetime | None = None,
    ) -> OutboxRecord:
        return OutboxRecord(
            id=record_id,
            event_kind=event_kind,
            payload=payload
            if payload is not None
            else {"subject": "A", "predicate": "knows", "object": "B"},
            occurred_at=occurred_at or BASE_TIME + timedelta(seconds=record_id),
            attempts=attempts,
            status=status,
        )

    return _make


@pytest.fixture
def memory_graph() -> InMemoryGraph:
    return InMemoryGraph()


@pytest.fixture
def memory_repository() -> InMemoryOutboxRepository:
    return InMemoryOutboxRepository()


@pytest.fixture
def claim_failure() -> ClaimProtocolError:
    return ClaimProtocolError("connection refused")


@pytest.fixture
def outcome_failure() -> OutboxWriteError:
    return OutboxWriteError("connection reset")


@pytest.fixture
def mock_probe() -> MagicMock:
    return MagicMock()


@pytest.fixture
def fixed_clock():
    """Clock returning a fixed observation time; advance with .advance()."""

    class _Clock:
        def __init__(self) -> None:
            self.now = BASE_TIME + timedelta(hours=1)

        def __call__(self) -> datetime:
            return self.now

        def advance(self, **kwargs: float) -> None:
            self.now = self.now + timedelta(**kwargs)

    return _Clock()
