"""Integration test fixtures for outbox database tests.

These fixtures require a running PostgreSQL instance. Point
INDEXER_TEST_DB_URL at a disposable database; the outbox table is created
and dropped around each test. Tests are skipped when it is not set.
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from infrastructure.database.engines import create_outbox_engine, create_session_factory
from infrastructure.database.models import Base
from infrastructure.outbox.models import OutboxGraphEventModel  # noqa: F401
from infrastructure.outbox.repository import OutboxRepository
from infrastructure.settings import OutboxDatabaseSettings


def pytest_collection_modifyitems(config, items):
    """Skip integration tests when no test database is configured."""
    if os.getenv("INDEXER_TEST_DB_URL"):
        return
    skip = pytest.mark.skip(reason="INDEXER_TEST_DB_URL is not set")
    for item in items:
        if "integration" in item.keywords:
            item.add_marker(skip)


@pytest.fixture(scope="session")
def integration_db_settings() -> OutboxDatabaseSettings:
    """Database settings for integration tests."""
    return OutboxDatabaseSettings(
        _env_file=None,
        url=os.getenv("INDEXER_TEST_DB_URL", "postgresql://localhost/indexer_test"),
        ssl_mode="disable",
    )


@pytest_asyncio.fixture
async def outbox_engine(
    integration_db_settings: OutboxDatabaseSettings,
) -> AsyncGenerator[AsyncEngine, None]:
    """Engine over a freshly created outbox table."""
    engine = create_outbox_engine(integration_db_settings)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture
async def second_engine(
    integration_db_settings: OutboxDatabaseSettings,
    outbox_engine: AsyncEngine,
) -> AsyncGenerator[AsyncEngine, None]:
    """A separate engine, standing in for a second worker process."""
    engine = create_outbox_engine(integration_db_settings)
    yield engine
    await engine.dispose()


@pytest.fixture
def repository(outbox_engine: AsyncEngine) -> OutboxRepository:
    return OutboxRepository(create_session_factory(outbox_engine))


@pytest.fixture
def insert_events(outbox_engine: AsyncEngine):
    """Insert pending outbox rows, oldest first, and return their ids."""

    async def _insert(count: int, event_kind: str = "relationship.insert") -> list[int]:
        ids = []
        async with outbox_engine.begin() as conn:
            for i in range(count):
                result = await conn.execute(
                    text(
                        "INSERT INTO outbox_graph_events (event_kind, payload, occurred_at) "
                        "VALUES (:kind, CAST(:payload AS JSONB), "
                        "NOW() - make_interval(secs => :age)) RETURNING id"
                    ),
                    {
                        "kind": event_kind,
                        "payload": f'{{"subject": "S{i}", "predicate": "p", "object": "O{i}"}}',
                        "age": count - i,
                    },
                )
                ids.append(result.scalar_one())
        return ids

    return _insert
