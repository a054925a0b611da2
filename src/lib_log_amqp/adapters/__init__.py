"""Concrete adapters: aio-pika broker bindings and the stdlib logging bridge."""

from __future__ import annotations

from .aio_pika_broker import AioPikaChannel, AioPikaConnection, AioPikaConnector, coerce_connection
from .logging_handler import AMQPLogHandler

__all__ = [
    "AMQPLogHandler",
    "AioPikaChannel",
    "AioPikaConnection",
    "AioPikaConnector",
    "coerce_connection",
]
