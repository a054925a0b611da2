"""Public package surface of the AMQP log transport.

``AMQPTransport`` forwards log records to an AMQP exchange and buffers them
until the broker channel is ready; ``AMQPLogHandler`` attaches it to the stdlib
:mod:`logging` framework.
"""

from __future__ import annotations

from .adapters.logging_handler import AMQPLogHandler
from .config import ConfigurationError, TransportConfig
from .domain import LogEnvelope, LogLevel, process_hostname
from .transport import AMQPTransport


def summary_info() -> str:
    """Return the metadata banner used by the CLI entry point.

    Examples
    --------
    >>> "version" in summary_info()
    True
    """
    from . import __init__conf__

    lines: list[str] = []
    __init__conf__.print_info(writer=lines.append)
    return "".join(lines)


__all__ = [
    "AMQPLogHandler",
    "AMQPTransport",
    "ConfigurationError",
    "LogEnvelope",
    "LogLevel",
    "TransportConfig",
    "process_hostname",
    "summary_info",
]
