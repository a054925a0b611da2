"""Buffered publisher: the queue-until-ready protocol.

Purpose
-------
Accept log records at any time. Before the channel exists they are queued in
arrival order; afterwards they are published directly. The switch happens
exactly once and drains the queue without losing or duplicating envelopes.

Contents
--------
* :class:`BufferedPublisher` – state holder with :meth:`submit`,
  :meth:`mark_ready`, and :meth:`flush`.

System Role
-----------
Application-layer core driven by :class:`lib_log_amqp.AMQPTransport`: the
transport calls :meth:`BufferedPublisher.submit` for each record and
:meth:`BufferedPublisher.mark_ready` once establishment succeeds.

Alignment Notes
---------------
All scheduling happens on one asyncio loop. :meth:`mark_ready` captures the
pending queue and installs :class:`~lib_log_amqp.domain.state.Ready` with no
``await`` in between, so a concurrent :meth:`submit` either lands in the
captured queue or publishes directly; it can never append to a queue that has
already been taken for draining.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from lib_log_amqp.application.ports.broker import BrokerChannel
from lib_log_amqp.application.ports.time import ClockPort
from lib_log_amqp.domain.envelope import CONTENT_ENCODING, CONTENT_TYPE, LogEnvelope
from lib_log_amqp.domain.levels import LogLevel
from lib_log_amqp.domain.state import PublisherState, Ready, Unready

from ._diagnostics import DiagnosticHook, build_diagnostic_emitter

logger = logging.getLogger(__name__)


class BufferedPublisher:
    """Queue envelopes until a channel is ready, then publish them.

    Examples
    --------
    >>> import asyncio
    >>> from datetime import datetime, timezone
    >>> class Clock:
    ...     def now(self):
    ...         return datetime(2025, 1, 1, tzinfo=timezone.utc)
    >>> class Channel:
    ...     def __init__(self):
    ...         self.bodies = []
    ...     async def publish(self, exchange, routing_key, body, *, content_type, content_encoding):
    ...         self.bodies.append(body)
    >>> async def scenario():
    ...     publisher = BufferedPublisher(name='svc', exchange='logs', routing_key='rk', hostname='h', clock=Clock(), loop=asyncio.get_running_loop())
    ...     publisher.submit(LogLevel.INFO, 'queued')
    ...     channel = Channel()
    ...     drained = await publisher.mark_ready(channel)
    ...     return drained, len(channel.bodies), publisher.pending
    >>> asyncio.run(scenario())
    (1, 1, ())
    """

    def __init__(
        self,
        *,
        name: str,
        exchange: str,
        routing_key: str,
        hostname: str,
        clock: ClockPort,
        loop: asyncio.AbstractEventLoop,
        diagnostic: DiagnosticHook | None = None,
    ) -> None:
        self._name = name
        self._exchange = exchange
        self._routing_key = routing_key
        self._hostname = hostname
        self._clock = clock
        self._loop = loop
        self._emit = build_diagnostic_emitter(diagnostic)
        self._state: PublisherState = Unready()
        self._inflight: set[asyncio.Task[None]] = set()

    @property
    def state(self) -> PublisherState:
        """Return the current state variant."""
        return self._state

    @property
    def ready(self) -> bool:
        """Return ``True`` once a channel has been installed."""
        return isinstance(self._state, Ready)

    @property
    def pending(self) -> tuple[LogEnvelope, ...]:
        """Return queued envelopes in arrival order (empty once ready)."""
        state = self._state
        if isinstance(state, Unready):
            return tuple(state.queue)
        return ()

    def build_envelope(self, level: LogLevel, message: str, meta: Any = None) -> LogEnvelope:
        """Stamp ``message`` with hostname and the current time in milliseconds."""

        timestamp = int(self._clock.now().timestamp() * 1000)
        return LogEnvelope(
            host=self._hostname,
            timestamp=timestamp,
            name=self._name,
            level=level,
            message=message,
            meta=meta,
        )

    def submit(self, level: LogLevel, message: str, meta: Any = None) -> asyncio.Task[None] | None:
        """Queue or publish one record.

        Returns
        -------
        asyncio.Task | None
            ``None`` when the envelope was queued; otherwise the task issuing
            the publish, which completes once the channel accepted the frame.
        """

        return self.enqueue(self.build_envelope(level, message, meta))

    def enqueue(self, envelope: LogEnvelope) -> asyncio.Task[None] | None:
        """Queue or publish an already stamped envelope.

        Must run on the publisher's loop thread; :meth:`build_envelope` may be
        called from any thread.
        """

        state = self._state
        if isinstance(state, Unready):
            state.queue.append(envelope)
            self._emit("queued", {"pending": len(state.queue), "level": envelope.level.severity})
            return None
        task = self._loop.create_task(self._publish(state.channel, envelope))
        self._inflight.add(task)
        task.add_done_callback(self._on_direct_publish_done)
        return task

    async def mark_ready(self, channel: BrokerChannel) -> int:
        """Install ``channel`` and drain the pending queue once.

        Returns the number of drained envelopes published successfully.
        Calling this again after the first transition publishes nothing.
        """

        state = self._state
        if isinstance(state, Ready):
            logger.debug("Publisher already ready; ignoring repeated channel-ready signal")
            return 0
        captured = state.queue
        self._state = Ready(channel)

        self._emit("drain_started", {"pending": len(captured)})
        published = 0
        for envelope in captured:
            try:
                await self._publish(channel, envelope)
            except Exception as exc:  # noqa: BLE001
                logger.error("Publishing a buffered log envelope failed; continuing drain", exc_info=exc)
                self._emit(
                    "publish_failed",
                    {"phase": "drain", "level": envelope.level.severity, "exception": repr(exc)},
                )
            else:
                published += 1
        failed = len(captured) - published
        captured.clear()
        self._emit("drain_completed", {"published": published, "failed": failed})
        return published

    async def flush(self) -> None:
        """Wait until every direct publish issued so far has completed."""
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    async def _publish(self, channel: BrokerChannel, envelope: LogEnvelope) -> None:
        await channel.publish(
            self._exchange,
            self._routing_key,
            envelope.encode(),
            content_type=CONTENT_TYPE,
            content_encoding=CONTENT_ENCODING,
        )
        self._emit("published", {"level": envelope.level.severity, "exchange": self._exchange})

    def _on_direct_publish_done(self, task: asyncio.Task[None]) -> None:
        self._inflight.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.debug("Direct publish failed", exc_info=exc)
            self._emit("publish_failed", {"phase": "direct", "exception": repr(exc)})


__all__ = ["BufferedPublisher"]
