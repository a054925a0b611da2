from __future__ import annotations

import pytest

from lib_log_amqp import config as transport_config
from tests.fakes import FakeChannel, FakeConnection, FakeConnector, FixedClock, Recorder

_ENV_VARS = (
    "LOG_AMQP_NAME",
    "LOG_AMQP_LEVEL",
    "LOG_AMQP_URL",
    "LOG_AMQP_EXCHANGE",
    "LOG_AMQP_ROUTING_KEY",
    "LOG_AMQP_EXCHANGE_DURABLE",
    "LOG_AMQP_EXCHANGE_AUTO_DELETE",
    transport_config.DOTENV_ENV_VAR,
)


@pytest.fixture(autouse=True)
def _isolate_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def channel() -> FakeChannel:
    return FakeChannel()


@pytest.fixture
def connection(channel: FakeChannel) -> FakeConnection:
    return FakeConnection(channel)


@pytest.fixture
def connector(connection: FakeConnection) -> FakeConnector:
    return FakeConnector(connection)


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def recorder() -> Recorder:
    return Recorder()
