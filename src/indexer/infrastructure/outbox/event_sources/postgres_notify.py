"""PostgreSQL NOTIFY-based event source for outbox pattern.

This module provides an event source that listens for PostgreSQL NOTIFY
events and wakes the worker when outbox records are inserted. It uses
asyncpg-listen for reliable connection handling and automatic reconnection.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

from asyncpg_listen import (
    ListenPolicy,
    NotificationListener,
    NotificationOrTimeout,
    Timeout,
    connect_func,
)

from shared_kernel.outbox.observability import (
    DefaultEventSourceProbe,
    EventSourceProbe,
)
from shared_kernel.outbox.ports import OutboxEventSource


class PostgresNotifyEventSource(OutboxEventSource):
    """PostgreSQL NOTIFY-based event source for outbox records.

    Listens on a channel and invokes a callback with the raw notification
    payload. The payload is not interpreted: a notification only means
    "there may be new pending rows", and claiming still goes through the
    repository.

    This class implements the OutboxEventSource protocol from shared_kernel.
    """

    def __init__(
        self,
        db_url: str,
        channel: str,
        probe: EventSourceProbe | None = None,
    ) -> None:
        """Initialize the NOTIFY event source.

        Args:
            db_url: PostgreSQL connection URL (asyncpg/libpq format)
            channel: NOTIFY channel name
            probe: Optional observability probe (default: DefaultEventSourceProbe)
        """
        self._db_url = db_url
        self._channel = channel
        self._probe = probe or DefaultEventSourceProbe()
        self._on_event: Callable[[str], Awaitable[None]] | None = None
        self._running = False
        self._listener: NotificationListener | None = None
        self._listener_task: asyncio.Task[None] | None = None

    @property
    def channel(self) -> str:
        return self._channel

    async def start(self, on_event: Callable[[str], Awaitable[None]]) -> None:
        """Start listening for NOTIFY events.

        This method blocks until stop() is called or the listener fails. A
        listener failure is logged and not raised: polling keeps the worker
        going without notifications.

        Args:
            on_event: Async callback invoked with each notification payload
        """
        self._on_event = on_event
        self._running = True

        async def handle_notification(
            notification: NotificationOrTimeout,
        ) -> None:
            """Handler for outbox notifications."""
            if not self._running:
                return

            # asyncpg-listen sends Timeout when no notification arrives in time
            if isinstance(notification, Timeout):
                return

            payload = notification.payload or ""
            self._probe.notification_received(payload)
            if self._on_event is not None:
                await self._on_event(payload)

        try:
            self._listener = NotificationListener(connect_func(self._db_url))
            self._probe.event_source_started(self._channel)

            # Run the listener - this blocks until cancelled
            self._listener_task = asyncio.create_task(
                self._listener.run(
                    {self._channel: handle_notification},
                    policy=ListenPolicy.LAST,
                )
            )
            await self._listener_task
        except asyncio.CancelledError:
            # Task was cancelled via stop(), this is expected
            pass
        except Exception as e:
            self._probe.listener_error(str(e))

    async def stop(self) -> None:
        """Stop the event source and clean up resources."""
        self._running = False

        if self._listener_task and not self._listener_task.done():
            self._listener_task.cancel()
            try:
                await self._listener_task
            except asyncio.CancelledError:
                pass

        self._probe.event_source_stopped()
