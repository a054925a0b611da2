"""Connection establishment for the AMQP transport.

Purpose
-------
Turn configuration into a ready channel: reuse or open a connection, open a
channel on it, then declare the target exchange. The exchange declaration
completes before the result is returned, so nothing is ever published against
an undeclared exchange.

Contents
--------
* :class:`Establishment` – result bundle (connection, channel, ownership).
* :func:`create_establish_channel` – factory returning the async routine.

System Role
-----------
Application-layer use case started once by :class:`lib_log_amqp.AMQPTransport`.
It runs to completion or fails permanently; there is no retry.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any

from lib_log_amqp.application.ports.broker import BrokerChannel, BrokerConnection, BrokerConnector

from ._diagnostics import DiagnosticHook, build_diagnostic_emitter

EXCHANGE_KIND = "direct"

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Establishment:
    """Outcome of a successful establishment.

    ``owns_connection`` is ``True`` when the connection was opened here (and so
    should be closed by the transport), ``False`` when it was supplied.
    """

    connection: BrokerConnection
    channel: BrokerChannel
    owns_connection: bool


def create_establish_channel(
    *,
    connection: BrokerConnection | None,
    connector: BrokerConnector,
    url: str | None,
    exchange: str,
    exchange_options: Mapping[str, Any],
    diagnostic: DiagnosticHook | None = None,
) -> Callable[[], Awaitable[Establishment]]:
    """Return an async callable performing the establishment sequence.

    Parameters
    ----------
    connection:
        Pre-existing connection; when given, ``connector`` is never used.
    connector:
        Opens a new connection to ``url`` when ``connection`` is ``None``.
    url:
        Broker address used only when ``connection`` is ``None``.
    exchange, exchange_options:
        Exchange declared as ``"direct"`` with exactly these options.
    diagnostic:
        Optional hook receiving ``channel_ready`` once the exchange exists.

    Raises
    ------
    ValueError
        When neither ``connection`` nor ``url`` is available.
    """

    if connection is None and not url:
        raise ValueError("Missing AMQP connection on options.amqpConn")
    emit = build_diagnostic_emitter(diagnostic)

    async def establish() -> Establishment:
        """Obtain a connection, open a channel, declare the exchange."""
        if connection is not None:
            conn = connection
            owns_connection = False
        else:
            logger.debug("Opening AMQP connection to %s", url)
            conn = await connector.connect(url)  # type: ignore[arg-type]
            owns_connection = True
        channel = await conn.channel()
        await channel.declare_exchange(exchange, EXCHANGE_KIND, exchange_options)
        logger.debug("Declared %s exchange %r", EXCHANGE_KIND, exchange)
        emit("channel_ready", {"exchange": exchange, "owns_connection": owns_connection})
        return Establishment(connection=conn, channel=channel, owns_connection=owns_connection)

    return establish


__all__ = ["EXCHANGE_KIND", "Establishment", "create_establish_channel"]
