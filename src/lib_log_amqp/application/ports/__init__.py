"""Ports separating the application layer from concrete adapters."""

from __future__ import annotations

from .broker import BrokerChannel, BrokerConnection, BrokerConnector
from .sink import Acknowledgement, LogSinkPort
from .time import ClockPort

__all__ = [
    "Acknowledgement",
    "BrokerChannel",
    "BrokerConnection",
    "BrokerConnector",
    "ClockPort",
    "LogSinkPort",
]
