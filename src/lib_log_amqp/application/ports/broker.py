"""Broker ports describing the slice of the AMQP client the transport uses.

Purpose
-------
Keep the establisher and publisher independent of :mod:`aio_pika` so tests can
substitute in-memory fakes and alternative clients can be plugged in.

Contents
--------
* :class:`BrokerConnector` – opens connections from a URL.
* :class:`BrokerConnection` – opens channels; closable.
* :class:`BrokerChannel` – declares exchanges and publishes bodies.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class BrokerChannel(Protocol):
    """Multiplexed session on which declarations and publishes are issued."""

    async def declare_exchange(self, name: str, kind: str, options: Mapping[str, Any]) -> None:
        """Declare exchange ``name`` of type ``kind`` with ``options``."""

    async def publish(
        self,
        exchange: str,
        routing_key: str,
        body: bytes,
        *,
        content_type: str,
        content_encoding: str,
    ) -> None:
        """Publish ``body`` to ``exchange`` under ``routing_key``."""


@runtime_checkable
class BrokerConnection(Protocol):
    """Live connection to a broker."""

    async def channel(self) -> BrokerChannel:
        """Open a new channel on this connection."""

    async def close(self) -> None:
        """Close the connection."""


@runtime_checkable
class BrokerConnector(Protocol):
    """Factory opening new broker connections."""

    async def connect(self, url: str) -> BrokerConnection:
        """Open a connection to ``url``."""


__all__ = ["BrokerChannel", "BrokerConnection", "BrokerConnector"]
