"""AMQP log transport façade.

Purpose
-------
Expose the single object host applications create: it validates options,
starts channel establishment in the background, and accepts log records via
:meth:`AMQPTransport.log`, buffering them until the channel is ready.

Contents
--------
* :class:`SystemClock` – UTC clock port.
* :class:`AMQPTransport` – composition point of config, establisher,
  publisher, and broker adapter.

System Role
-----------
Outer shell of the package. Domain and application layers stay free of
:mod:`aio_pika` and of event-loop wiring; both are resolved here.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from .adapters.aio_pika_broker import AioPikaConnector, coerce_connection
from .application.ports import Acknowledgement, BrokerConnection, BrokerConnector, ClockPort, LogSinkPort
from .application.use_cases import BufferedPublisher, DiagnosticHook, build_diagnostic_emitter, create_establish_channel
from .config import TransportConfig
from .domain import LogEnvelope, LogLevel, PublisherState, coerce_level, process_hostname

LOGGER = logging.getLogger(__name__)


class SystemClock(ClockPort):
    """Concrete clock port returning timezone-aware UTC timestamps."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class AMQPTransport(LogSinkPort):
    """Publish log records to an AMQP exchange, buffering until connected.

    Construction must happen inside a running event loop unless ``loop`` is
    given; establishment is scheduled on that loop immediately.

    Parameters
    ----------
    options:
        Mapping of transport options (camelCase or snake_case keys).
    connector:
        :class:`BrokerConnector` used when no connection is supplied; defaults
        to :class:`~lib_log_amqp.adapters.aio_pika_broker.AioPikaConnector`.
    clock:
        Source of arrival timestamps; defaults to :class:`SystemClock`.
    hostname:
        Origin hostname; defaults to :func:`~lib_log_amqp.domain.process_hostname`.
    diagnostic:
        Optional ``(name, payload)`` hook for internal telemetry.
    loop:
        Event loop to schedule establishment and publishes on.
    **kwargs:
        Option overrides merged on top of ``options``.

    Raises
    ------
    ConfigurationError
        When neither a connection nor a URL is configured (or options are
        otherwise invalid). Raised before any loop lookup.
    RuntimeError
        When no event loop is running and ``loop`` is not supplied.
    """

    def __init__(
        self,
        options: Mapping[str, Any] | None = None,
        /,
        *,
        connector: BrokerConnector | None = None,
        clock: ClockPort | None = None,
        hostname: str | None = None,
        diagnostic: DiagnosticHook | None = None,
        loop: asyncio.AbstractEventLoop | None = None,
        **kwargs: Any,
    ) -> None:
        config = TransportConfig.from_options(options, **kwargs)
        self._config = config
        self.name = config.name
        self.level = config.level
        self.exchange = config.exchange
        self.exchange_options = config.exchange_options
        self.routing_key = config.routing_key

        self._loop = loop or asyncio.get_running_loop()
        self._emit = build_diagnostic_emitter(diagnostic)
        self._connection: BrokerConnection | None = None
        self._owns_connection = False
        self._publisher = BufferedPublisher(
            name=config.name,
            exchange=config.exchange,
            routing_key=config.routing_key,
            hostname=hostname or process_hostname(),
            clock=clock or SystemClock(),
            loop=self._loop,
            diagnostic=diagnostic,
        )
        establish = create_establish_channel(
            connection=coerce_connection(config.amqp_conn),
            connector=connector or AioPikaConnector(),
            url=config.amqp_url,
            exchange=config.exchange,
            exchange_options=config.exchange_options,
            diagnostic=diagnostic,
        )
        self._establishment = self._loop.create_task(self._establish(establish))

    @property
    def config(self) -> TransportConfig:
        return self._config

    @property
    def state(self) -> PublisherState:
        """Return the publisher's current state variant."""
        return self._publisher.state

    @property
    def ready(self) -> bool:
        return self._publisher.ready

    @property
    def pending(self) -> tuple[LogEnvelope, ...]:
        """Return envelopes buffered while no channel is available."""
        return self._publisher.pending

    def log(
        self,
        level: LogLevel | str,
        message: str,
        meta: Any = None,
        callback: Acknowledgement | None = None,
    ) -> None:
        """Accept one record from the logging framework.

        ``meta`` may be omitted with the callback passed in its place. The
        callback receives ``(None, True)`` once the record is queued or its
        publish was issued, ``(error, False)`` when it could not be handled.
        Without a callback, errors raised while accepting the record
        propagate to the caller.

        Safe to call from any thread: the envelope is stamped on the calling
        thread and handed to the transport's loop with
        :meth:`~asyncio.loop.call_soon_threadsafe`. Callbacks then run on the
        loop thread.
        """

        if callback is None and callable(meta):
            callback, meta = meta, None

        try:
            envelope = self._publisher.build_envelope(coerce_level(level), message, meta)
            if not self._on_loop_thread():
                self._loop.call_soon_threadsafe(self._accept, envelope, callback)
                return
        except Exception as exc:
            if callback is None:
                raise
            callback(exc, False)
            return
        self._accept(envelope, callback)

    def _on_loop_thread(self) -> bool:
        try:
            return asyncio.get_running_loop() is self._loop
        except RuntimeError:
            return False

    def _accept(self, envelope: LogEnvelope, callback: Acknowledgement | None) -> None:
        try:
            task = self._publisher.enqueue(envelope)
        except Exception as exc:
            if callback is None:
                raise
            callback(exc, False)
            return

        if task is None:
            if callback is not None:
                callback(None, True)
            return
        if callback is not None:
            task.add_done_callback(_acknowledge_with(callback))

    async def wait_ready(self) -> bool:
        """Wait for establishment (and the drain) to finish.

        Returns ``True`` when a channel is ready, ``False`` when
        establishment failed or was cancelled.
        """

        try:
            return await asyncio.shield(self._establishment)
        except asyncio.CancelledError:
            if self._establishment.cancelled():
                return False
            raise

    async def flush(self) -> None:
        """Wait for all direct publishes issued so far."""
        await self._publisher.flush()

    async def close(self) -> None:
        """Stop establishment if still running, flush, close an owned connection.

        Establishment is cancelled only while the publisher is still
        unready. Once the channel is installed the drain owns the buffered
        envelopes, so it runs to completion before flushing. A connection
        supplied through ``amqp_conn`` is left open; its owner closes it.
        """

        if not self._establishment.done() and not self._publisher.ready:
            self._establishment.cancel()
        await asyncio.gather(self._establishment, return_exceptions=True)
        await self.flush()
        if self._connection is not None and self._owns_connection:
            await self._connection.close()
        self._connection = None

    async def _establish(self, establish: Any) -> bool:
        try:
            result = await establish()
        except Exception as exc:  # noqa: BLE001
            LOGGER.error(
                "AMQP channel establishment for %r failed; records stay buffered", self.name, exc_info=exc
            )
            self._emit("establishment_failed", {"transport": self.name, "exception": repr(exc)})
            return False
        self._connection = result.connection
        self._owns_connection = result.owns_connection
        await self._publisher.mark_ready(result.channel)
        return True


def _acknowledge_with(callback: Acknowledgement):
    def _done(task: asyncio.Task[None]) -> None:
        if task.cancelled():
            callback(asyncio.CancelledError(), False)
            return
        error = task.exception()
        if error is None:
            callback(None, True)
        else:
            callback(error, False)

    return _done


__all__ = ["AMQPTransport", "SystemClock"]
