"""Unit tests for outbox engine creation."""

import ssl

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine

from infrastructure.database.engines import (
    build_async_url,
    build_connect_args,
    build_listen_dsn,
    create_outbox_engine,
    create_session_factory,
)
from infrastructure.settings import OutboxDatabaseSettings


@pytest.fixture
def local_settings() -> OutboxDatabaseSettings:
    return OutboxDatabaseSettings(
        url="postgresql://indexer:pw@localhost:5432/indexer?sslmode=disable",
        _env_file=None,
    )


@pytest.fixture
def remote_settings() -> OutboxDatabaseSettings:
    return OutboxDatabaseSettings(
        url="postgres://indexer:pw@db.example.com:5432/indexer",
        _env_file=None,
    )


def test_build_async_url_forces_asyncpg_and_drops_sslmode(local_settings):
    url = build_async_url(local_settings)

    assert url == "postgresql+asyncpg://indexer:pw@localhost:5432/indexer"


def test_build_listen_dsn_uses_plain_scheme():
    settings = OutboxDatabaseSettings(
        url="postgresql+asyncpg://indexer:pw@localhost:5432/indexer",
        _env_file=None,
    )

    assert build_listen_dsn(settings) == (
        "postgresql://indexer:pw@localhost:5432/indexer"
    )


def test_connect_args_disable_tls_for_local_hosts(local_settings):
    args = build_connect_args(local_settings)

    assert args["ssl"] is False
    assert args["timeout"] == local_settings.connect_timeout_seconds


def test_connect_args_use_unverified_tls_for_remote_hosts(remote_settings):
    context = build_connect_args(remote_settings)["ssl"]

    assert isinstance(context, ssl.SSLContext)
    assert context.check_hostname is False
    assert context.verify_mode == ssl.CERT_NONE


def test_create_outbox_engine_holds_one_connection(local_settings):
    engine = create_outbox_engine(local_settings)

    assert isinstance(engine, AsyncEngine)
    assert engine.pool.size() == 1
    assert engine.pool._max_overflow == 0


def test_create_session_factory_keeps_objects_after_commit(local_settings):
    engine = create_outbox_engine(local_settings)

    factory = create_session_factory(engine)

    assert factory.kw["expire_on_commit"] is False
