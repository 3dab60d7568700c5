"""Graph indexer entry point.

Usage:
    graph-indexer                         # run the worker (default)
    graph-indexer run
    graph-indexer status                  # outbox counts per kind and status
    graph-indexer requeue-failed [--id ID ...] [--kind KIND]
    graph-indexer reset-processing [--id ID ...]

Configuration is read from the environment (and an optional .env file);
see infrastructure.settings.
"""

from __future__ import annotations

import argparse
import asyncio
import os
import signal
import socket
import sys
from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager

from rich import box
from rich.console import Console
from rich.table import Table

from graph.infrastructure.exceptions import GraphConnectionError
from graph.infrastructure.graph_writer import Neo4jGraphWriter
from graph.infrastructure.neo4j_client import Neo4jGraphClient
from graph.infrastructure.observability import DefaultGraphClientProbe
from infrastructure.database.connection import close_engine, verify_connection
from infrastructure.database.engines import (
    build_listen_dsn,
    create_outbox_engine,
    create_session_factory,
)
from infrastructure.database.exceptions import DatabaseConnectionError
from infrastructure.logging import configure_logging
from infrastructure.observability import (
    DefaultConnectionProbe,
    DefaultStartupProbe,
    ObservationContext,
)
from infrastructure.outbox.composite import CompositeTransformer
from infrastructure.outbox.event_sources import PostgresNotifyEventSource
from infrastructure.outbox.repository import OutboxRepository
from infrastructure.outbox.worker import OutboxWorker
from infrastructure.settings import (
    get_database_settings,
    get_graph_settings,
    get_logging_settings,
    get_worker_settings,
)
from infrastructure.version import __version__
from projection.infrastructure.transformers import default_transformers
from shared_kernel.outbox.exceptions import OutboxError
from shared_kernel.outbox.observability import (
    DefaultOutboxWorkerProbe,
    OutboxWorkerProbe,
)
from shared_kernel.outbox.retry_policy import RetryPolicy
from shared_kernel.outbox.value_objects import OutboxStatus

EXIT_OK = 0
EXIT_FAILURE = 1

console = Console()
error_console = Console(stderr=True)

_STATUS_STYLES = {
    OutboxStatus.PENDING.value: "yellow",
    OutboxStatus.PROCESSING.value: "cyan",
    OutboxStatus.DONE.value: "green",
    OutboxStatus.FAILED.value: "bold red",
}


def default_worker_id() -> str:
    """Identify this process in logs (host and pid)."""
    return f"{socket.gethostname()}-{os.getpid()}"


def build_transformer(
    probe: OutboxWorkerProbe | None = None,
) -> CompositeTransformer:
    """Register the transformer of every supported event family."""
    composite = CompositeTransformer(probe=probe)
    for name, transformer in default_transformers():
        composite.register(transformer, name)
    return composite


async def run_worker(worker_id: str | None = None) -> int:
    """Connect both stores and run the worker until SIGINT/SIGTERM.

    Returns:
        EXIT_FAILURE if a store is unreachable at startup, EXIT_OK after a
        clean shutdown
    """
    db_settings = get_database_settings()
    graph_settings = get_graph_settings()
    worker_settings = get_worker_settings()

    context = ObservationContext(worker_id=worker_id)
    startup_probe = DefaultStartupProbe().with_context(context)
    connection_probe = DefaultConnectionProbe().with_context(
        context.with_store("outbox")
    )
    graph_probe = DefaultGraphClientProbe().with_context(context.with_store("graph"))

    startup_probe.indexer_starting(__version__)

    engine = create_outbox_engine(db_settings)
    graph_client = Neo4jGraphClient(graph_settings, probe=graph_probe)

    try:
        await verify_connection(engine, db_settings, connection_probe)
        await graph_client.connect()
    except (DatabaseConnectionError, GraphConnectionError) as e:
        startup_probe.startup_failed(str(e))
        await graph_client.disconnect()
        await close_engine(engine, connection_probe)
        return EXIT_FAILURE

    worker_probe = DefaultOutboxWorkerProbe(worker_id=worker_id)

    event_source = None
    if worker_settings.notify_channel:
        event_source = PostgresNotifyEventSource(
            build_listen_dsn(db_settings),
            channel=worker_settings.notify_channel,
        )

    worker = OutboxWorker(
        repository=OutboxRepository(create_session_factory(engine)),
        graph_writer=Neo4jGraphWriter(graph_client, probe=graph_probe),
        transformer=build_transformer(worker_probe),
        probe=worker_probe,
        batch_size=worker_settings.batch_size,
        poll_interval_seconds=worker_settings.poll_interval_seconds,
        retry_policy=RetryPolicy(max_attempts=worker_settings.max_attempts),
        event_source=event_source,
    )

    loop = asyncio.get_running_loop()

    def on_signal(sig: signal.Signals) -> None:
        startup_probe.signal_received(sig.name)
        worker.request_stop()

    handled = (signal.SIGINT, signal.SIGTERM)
    for sig in handled:
        loop.add_signal_handler(sig, on_signal, sig)

    try:
        await worker.run()
    finally:
        for sig in handled:
            loop.remove_signal_handler(sig)
        await graph_client.disconnect()
        await close_engine(engine, connection_probe)
        startup_probe.shutdown_complete()

    return EXIT_OK


@asynccontextmanager
async def open_repository() -> AsyncIterator[OutboxRepository]:
    """Yield an outbox repository over a verified connection.

    Raises:
        DatabaseConnectionError: If the outbox database cannot be reached
    """
    settings = get_database_settings()
    engine = create_outbox_engine(settings)
    probe = DefaultConnectionProbe()
    try:
        await verify_connection(engine, settings, probe)
        yield OutboxRepository(create_session_factory(engine))
    finally:
        await close_engine(engine, probe)


def render_status(rows: Sequence[tuple[str, str, int]]) -> Table:
    """Render (event_kind, status, count) rows as a table."""
    table = Table(title="Outbox status", box=box.SIMPLE, padding=(0, 1))
    table.add_column("Event kind", style="cyan")
    table.add_column("Status")
    table.add_column("Count", justify="right", style="bold")

    total = 0
    for event_kind, status, count in rows:
        style = _STATUS_STYLES.get(status, "dim")
        table.add_row(event_kind, f"[{style}]{status}[/]", f"{count:,}")
        total += count

    if not rows:
        table.add_row("[dim]outbox is empty[/]", "", "")
    else:
        table.add_row("", "[dim]total[/]", f"{total:,}")

    return table


async def show_status() -> int:
    async with open_repository() as repository:
        rows = await repository.status_counts()
    console.print(render_status(rows))
    return EXIT_OK


async def requeue_failed(record_ids: Sequence[int], event_kind: str | None) -> int:
    async with open_repository() as repository:
        count = await repository.requeue_failed(
            record_ids=record_ids or None, event_kind=event_kind
        )
    console.print(f"Requeued [green]{count:,}[/] failed record(s)")
    return EXIT_OK


async def reset_processing(record_ids: Sequence[int]) -> int:
    async with open_repository() as repository:
        count = await repository.reset_processing(record_ids=record_ids or None)
    console.print(f"Reset [green]{count:,}[/] processing record(s) to pending")
    return EXIT_OK


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="graph-indexer",
        description="Project outbox change events into the graph store.",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    commands = parser.add_subparsers(dest="command")

    commands.add_parser("run", help="Run the outbox worker (default)")
    commands.add_parser("status", help="Show outbox counts per event kind and status")

    requeue = commands.add_parser(
        "requeue-failed", help="Move dead-lettered records back to pending"
    )
    requeue.add_argument(
        "--id",
        dest="ids",
        type=int,
        action="append",
        default=[],
        help="Only this record (repeatable)",
    )
    requeue.add_argument("--kind", help="Only records of this event kind")

    reset = commands.add_parser(
        "reset-processing",
        help="Move records stuck in processing back to pending",
    )
    reset.add_argument(
        "--id",
        dest="ids",
        type=int,
        action="append",
        default=[],
        help="Only this record (repeatable)",
    )

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Parse arguments, configure logging and dispatch the command."""
    args = build_parser().parse_args(argv)
    configure_logging(get_logging_settings())

    command = args.command or "run"
    try:
        if command == "run":
            return asyncio.run(run_worker(default_worker_id()))
        if command == "status":
            return asyncio.run(show_status())
        if command == "requeue-failed":
            return asyncio.run(requeue_failed(args.ids, args.kind))
        return asyncio.run(reset_processing(args.ids))
    except (DatabaseConnectionError, OutboxError) as e:
        error_console.print(f"[bold red]error:[/] {e}")
        return EXIT_FAILURE


if __name__ == "__main__":
    sys.exit(main())
