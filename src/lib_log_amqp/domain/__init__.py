"""Domain entities and value objects used by the AMQP transport."""

from __future__ import annotations

from .envelope import CONTENT_ENCODING, CONTENT_TYPE, LogEnvelope
from .identity import process_hostname
from .levels import LogLevel, coerce_level
from .state import PublisherState, Ready, Unready

__all__ = [
    "CONTENT_ENCODING",
    "CONTENT_TYPE",
    "LogEnvelope",
    "LogLevel",
    "PublisherState",
    "Ready",
    "Unready",
    "coerce_level",
    "process_hostname",
]
