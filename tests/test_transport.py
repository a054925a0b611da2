from __future__ import annotations

import asyncio
from typing import Any

import pytest

from lib_log_amqp import AMQPTransport, ConfigurationError, LogLevel
from lib_log_amqp.domain.state import Ready, Unready
from tests.fakes import FIXED_MS, FakeChannel, FakeConnection, FakeConnector, FixedClock, Recorder, RefusingConnector


class AckLog:
    def __init__(self) -> None:
        self.calls: list[tuple[BaseException | None, bool]] = []

    def __call__(self, error: BaseException | None, logged: bool) -> None:
        self.calls.append((error, logged))


def build_transport(**options: Any) -> AMQPTransport:
    options.setdefault("clock", FixedClock())
    options.setdefault("hostname", "web01")
    return AMQPTransport(**options)


def test_uses_default_options_if_missing(connection: FakeConnection) -> None:
    async def scenario() -> AMQPTransport:
        transport = build_transport(amqpConn=connection)
        await transport.wait_ready()
        return transport

    transport = asyncio.run(scenario())

    assert transport.name == "amqp-transport"
    assert transport.level is LogLevel.INFO
    assert transport.exchange == "logs"
    assert transport.exchange_options == {"durable": False, "autoDelete": True}
    assert transport.routing_key == "amqp-transport"
    assert transport.config.amqp_url == "amqp://localhost"


def test_missing_connection_and_url_raises_configuration_error() -> None:
    with pytest.raises(ConfigurationError, match="(?i)amqp"):
        AMQPTransport({"amqpUrl": None, "amqpConn": None})


def test_existing_connection_is_reused(connection: FakeConnection) -> None:
    connector = RefusingConnector()

    async def scenario() -> bool:
        transport = build_transport(amqpConn=connection, connector=connector)
        return await transport.wait_ready()

    assert asyncio.run(scenario()) is True
    assert connector.urls == []
    assert connection.channel_calls == 1


def test_new_connection_uses_amqp_url(connector: FakeConnector) -> None:
    async def scenario() -> bool:
        transport = build_transport(amqpUrl="amqp://somehost", connector=connector)
        return await transport.wait_ready()

    assert asyncio.run(scenario()) is True
    assert connector.urls == ["amqp://somehost"]


def test_exchange_declared_with_configured_name_and_options(connection: FakeConnection, channel: FakeChannel) -> None:
    async def scenario() -> None:
        transport = build_transport(
            amqpConn=connection,
            exchange="test-exchange",
            exchangeOptions={"durable": True, "alternateExchange": "spill"},
        )
        await transport.wait_ready()

    asyncio.run(scenario())

    assert channel.declared == [("test-exchange", "direct", {"durable": True, "alternateExchange": "spill"})]


def test_buffers_log_messages_while_not_connected(connection: FakeConnection, channel: FakeChannel) -> None:
    acks = AckLog()

    async def scenario() -> AMQPTransport:
        connection.channel_gate = asyncio.Event()
        transport = build_transport(amqpConn=connection, exchange="test-exchange")
        transport.log("info", "message1", acks)
        assert len(transport.pending) == 1
        transport.log("error", "message2", acks)
        await asyncio.sleep(0)
        return transport

    transport = asyncio.run(scenario())

    assert isinstance(transport.state, Unready)
    assert [(item.level, item.message) for item in transport.pending] == [
        (LogLevel.INFO, "message1"),
        (LogLevel.ERROR, "message2"),
    ]
    assert acks.calls == [(None, True), (None, True)]
    assert channel.published == []


def test_buffered_messages_publish_in_order_once_connected(connection: FakeConnection, channel: FakeChannel) -> None:
    async def scenario() -> AMQPTransport:
        gate = asyncio.Event()
        connection.channel_gate = gate
        transport = build_transport(
            amqpConn=connection,
            name="svc-logs",
            exchange="test-exchange",
            routingKey="svc",
        )
        transport.log("info", "message1", {"attempt": 1})
        transport.log("error", "message2")
        gate.set()
        await transport.wait_ready()
        return transport

    transport = asyncio.run(scenario())

    assert transport.pending == ()
    assert isinstance(transport.state, Ready)
    assert [(item.exchange, item.routing_key) for item in channel.published] == [
        ("test-exchange", "svc"),
        ("test-exchange", "svc"),
    ]
    first, second = (item.envelope() for item in channel.published)
    assert (first.name, first.level, first.message, first.meta) == ("svc-logs", LogLevel.INFO, "message1", {"attempt": 1})
    assert (second.name, second.level, second.message, second.meta) == ("svc-logs", LogLevel.ERROR, "message2", None)
    assert first.host == "web01"
    assert first.timestamp == FIXED_MS


def test_ready_transport_publishes_directly(connection: FakeConnection, channel: FakeChannel) -> None:
    acks = AckLog()

    async def scenario() -> AMQPTransport:
        transport = build_transport(amqpConn=connection)
        await transport.wait_ready()
        transport.log("warning", "with meta", {"user": "alice"}, acks)
        transport.log(LogLevel.DEBUG, "without meta", acks)
        assert transport.pending == ()
        await transport.flush()
        return transport

    asyncio.run(scenario())

    with_meta, without_meta = (item.envelope() for item in channel.published)
    assert with_meta.meta == {"user": "alice"}
    assert without_meta.meta is None
    assert acks.calls == [(None, True), (None, True)]


def test_direct_publish_failure_reaches_callback(connection: FakeConnection, channel: FakeChannel) -> None:
    acks = AckLog()
    channel.fail_when = lambda body: True

    async def scenario() -> AMQPTransport:
        transport = build_transport(amqpConn=connection)
        await transport.wait_ready()
        transport.log("error", "rejected", None, acks)
        await transport.flush()
        return transport

    transport = asyncio.run(scenario())

    assert len(acks.calls) == 1
    error, logged = acks.calls[0]
    assert isinstance(error, ConnectionError)
    assert logged is False
    assert transport.ready is True


def test_establishment_failure_keeps_buffering_without_retry(recorder: Recorder) -> None:
    connector = FakeConnector(error=ConnectionRefusedError("broker down"))
    acks = AckLog()

    async def scenario() -> tuple[AMQPTransport, bool]:
        transport = build_transport(amqpUrl="amqp://down", connector=connector, diagnostic=recorder)
        ready = await transport.wait_ready()
        transport.log("info", "after failure", acks)
        await asyncio.sleep(0)
        return transport, ready

    transport, ready = asyncio.run(scenario())

    assert ready is False
    assert connector.urls == ["amqp://down"]
    assert [item.message for item in transport.pending] == ["after failure"]
    assert acks.calls == [(None, True)]
    assert "establishment_failed" in recorder.names()


def test_invalid_level_is_reported_through_callback(connection: FakeConnection) -> None:
    acks = AckLog()

    async def scenario() -> AMQPTransport:
        transport = build_transport(amqpConn=connection)
        transport.log("verbose", "unknown level", acks)
        return transport

    transport = asyncio.run(scenario())

    error, logged = acks.calls[0]
    assert isinstance(error, ValueError)
    assert logged is False
    assert transport.pending == ()


def test_invalid_level_without_callback_raises(connection: FakeConnection) -> None:
    async def scenario() -> None:
        transport = build_transport(amqpConn=connection)
        transport.log("verbose", "unknown level")

    with pytest.raises(ValueError, match="Unknown log level"):
        asyncio.run(scenario())


def test_close_leaves_supplied_connection_open(connection: FakeConnection) -> None:
    async def scenario() -> None:
        transport = build_transport(amqpConn=connection)
        await transport.wait_ready()
        await transport.close()

    asyncio.run(scenario())

    assert connection.closed is False


def test_close_shuts_owned_connection(connector: FakeConnector) -> None:
    async def scenario() -> None:
        transport = build_transport(amqpUrl="amqp://somehost", connector=connector)
        await transport.wait_ready()
        await transport.close()

    asyncio.run(scenario())

    assert connector.connection.closed is True


def test_close_cancels_pending_establishment(connection: FakeConnection) -> None:
    async def scenario() -> bool:
        connection.channel_gate = asyncio.Event()
        transport = build_transport(amqpConn=connection)
        await asyncio.sleep(0)
        await transport.close()
        return await transport.wait_ready()

    assert asyncio.run(scenario()) is False


async def _until_ready(transport: AMQPTransport) -> None:
    while not transport.ready:
        await asyncio.sleep(0)


def test_close_during_drain_publishes_every_buffered_record(
    connection: FakeConnection, channel: FakeChannel, recorder: Recorder
) -> None:
    async def scenario() -> AMQPTransport:
        gate = asyncio.Event()
        channel.publish_gate = gate
        transport = build_transport(amqpConn=connection, diagnostic=recorder)
        for index in range(3):
            transport.log("info", f"m{index}")
        await _until_ready(transport)
        asyncio.get_running_loop().call_soon(gate.set)
        await transport.close()
        return transport

    transport = asyncio.run(scenario())

    assert channel.messages() == ["m0", "m1", "m2"]
    assert transport.pending == ()
    completed = [payload for name, payload in recorder.calls if name == "drain_completed"]
    assert completed == [{"published": 3, "failed": 0}]


def test_close_waits_for_drain_and_direct_publishes(connection: FakeConnection, channel: FakeChannel) -> None:
    acks = AckLog()

    async def scenario() -> None:
        gate = asyncio.Event()
        channel.publish_gate = gate
        transport = build_transport(amqpConn=connection)
        transport.log("info", "buffered-1", acks)
        transport.log("info", "buffered-2", acks)
        await _until_ready(transport)
        transport.log("warning", "direct", acks)
        asyncio.get_running_loop().call_soon(gate.set)
        await transport.close()

    asyncio.run(scenario())

    assert sorted(channel.messages()) == ["buffered-1", "buffered-2", "direct"]
    assert acks.calls == [(None, True), (None, True), (None, True)]
    assert connection.closed is False


def test_log_from_worker_thread_is_handed_to_the_loop(connection: FakeConnection, channel: FakeChannel) -> None:
    acks = AckLog()

    async def scenario() -> None:
        transport = build_transport(amqpConn=connection)
        await transport.wait_ready()
        await asyncio.to_thread(transport.log, "info", "from worker", {"thread": "worker"}, acks)
        await transport.flush()

    asyncio.run(scenario())

    envelope = channel.published[0].envelope()
    assert (envelope.message, envelope.meta) == ("from worker", {"thread": "worker"})
    assert acks.calls == [(None, True)]


def test_log_from_worker_thread_buffers_while_unready(connection: FakeConnection) -> None:
    async def scenario() -> AMQPTransport:
        connection.channel_gate = asyncio.Event()
        transport = build_transport(amqpConn=connection)
        await asyncio.to_thread(transport.log, "error", "early worker record")
        return transport

    transport = asyncio.run(scenario())

    assert [(item.level, item.message) for item in transport.pending] == [(LogLevel.ERROR, "early worker record")]
    assert transport.pending[0].timestamp == FIXED_MS


def test_construction_outside_event_loop_requires_loop(connection: FakeConnection) -> None:
    with pytest.raises(RuntimeError):
        AMQPTransport(amqpConn=connection)
