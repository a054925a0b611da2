"""aio-pika implementation of the broker ports.

Purpose
-------
Translate the narrow broker ports into :mod:`aio_pika` calls: open
connections, open non-confirming channels, declare exchanges with
camelCase-or-snake_case options, publish JSON bodies.

Contents
--------
* :class:`AioPikaConnector` – :class:`BrokerConnector` over ``aio_pika.connect``.
* :class:`AioPikaConnection` – :class:`BrokerConnection` wrapper.
* :class:`AioPikaChannel` – :class:`BrokerChannel` wrapper caching declared
  exchanges.
* :func:`coerce_connection` – accept raw aio-pika connections as supplied
  handles.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import aio_pika
from aio_pika.abc import AbstractChannel, AbstractConnection, AbstractExchange

from lib_log_amqp.application.ports.broker import BrokerChannel, BrokerConnection, BrokerConnector

_OPTION_NAMES = {
    "durable": "durable",
    "autoDelete": "auto_delete",
    "auto_delete": "auto_delete",
    "internal": "internal",
    "passive": "passive",
    "arguments": "arguments",
}

_ARGUMENT_NAMES = {
    "alternateExchange": "alternate-exchange",
    "alternate_exchange": "alternate-exchange",
}


def exchange_kwargs(options: Mapping[str, Any]) -> dict[str, Any]:
    """Map exchange options onto ``declare_exchange`` keyword arguments.

    ``alternateExchange`` becomes the ``alternate-exchange`` exchange
    argument.

    Examples
    --------
    >>> exchange_kwargs({'durable': False, 'autoDelete': True})
    {'durable': False, 'auto_delete': True}
    >>> exchange_kwargs({'alternateExchange': 'spill'})
    {'arguments': {'alternate-exchange': 'spill'}}
    >>> exchange_kwargs({'autodelete': True})
    Traceback (most recent call last):
    ...
    ValueError: Unsupported exchange option: 'autodelete'
    """

    kwargs: dict[str, Any] = {}
    arguments: dict[str, Any] = {}
    for key, value in options.items():
        if key in _ARGUMENT_NAMES:
            arguments[_ARGUMENT_NAMES[key]] = value
            continue
        try:
            kwargs[_OPTION_NAMES[key]] = value
        except KeyError as exc:
            raise ValueError(f"Unsupported exchange option: {key!r}") from exc
    if arguments:
        kwargs["arguments"] = {**(kwargs.get("arguments") or {}), **arguments}
    return kwargs


class AioPikaChannel(BrokerChannel):
    """Channel wrapper publishing through declared exchanges."""

    def __init__(self, channel: AbstractChannel) -> None:
        self._channel = channel
        self._exchanges: dict[str, AbstractExchange] = {}

    @property
    def raw(self) -> AbstractChannel:
        """Return the underlying aio-pika channel."""
        return self._channel

    async def declare_exchange(self, name: str, kind: str, options: Mapping[str, Any]) -> None:
        """Declare ``name`` and remember the exchange object for publishing."""
        exchange = await self._channel.declare_exchange(
            name,
            aio_pika.ExchangeType(kind),
            **exchange_kwargs(options),
        )
        self._exchanges[name] = exchange

    async def publish(
        self,
        exchange: str,
        routing_key: str,
        body: bytes,
        *,
        content_type: str,
        content_encoding: str,
    ) -> None:
        """Publish ``body`` as an :class:`aio_pika.Message`."""
        target = self._exchanges.get(exchange)
        if target is None:
            target = await self._channel.get_exchange(exchange, ensure=False)
            self._exchanges[exchange] = target
        message = aio_pika.Message(
            body=body,
            content_type=content_type,
            content_encoding=content_encoding,
        )
        await target.publish(message, routing_key=routing_key)


class AioPikaConnection(BrokerConnection):
    """Connection wrapper opening channels without publisher confirms."""

    def __init__(self, connection: AbstractConnection) -> None:
        self._connection = connection

    @property
    def raw(self) -> AbstractConnection:
        """Return the underlying aio-pika connection."""
        return self._connection

    async def channel(self) -> AioPikaChannel:
        channel = await self._connection.channel(publisher_confirms=False)
        return AioPikaChannel(channel)

    async def close(self) -> None:
        if not self._connection.is_closed:
            await self._connection.close()


class AioPikaConnector(BrokerConnector):
    """Open new connections with :func:`aio_pika.connect`."""

    async def connect(self, url: str) -> AioPikaConnection:
        connection = await aio_pika.connect(url)
        return AioPikaConnection(connection)


def coerce_connection(connection: Any) -> BrokerConnection | None:
    """Wrap raw aio-pika connections; pass port implementations through."""

    if connection is None:
        return None
    if isinstance(connection, AbstractConnection):
        return AioPikaConnection(connection)
    return connection


__all__ = [
    "AioPikaChannel",
    "AioPikaConnection",
    "AioPikaConnector",
    "coerce_connection",
    "exchange_kwargs",
]
