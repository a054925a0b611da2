"""Port the logging framework depends on to hand over records.

The framework filters by level before calling :meth:`LogSinkPort.log`; the sink
only exposes its threshold so the framework can do so.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from lib_log_amqp.domain.levels import LogLevel

Acknowledgement = Callable[[BaseException | None, bool], None]


@runtime_checkable
class LogSinkPort(Protocol):
    """Receive log records and acknowledge them through a callback."""

    name: str
    level: LogLevel

    def log(
        self,
        level: LogLevel | str,
        message: str,
        meta: Any = None,
        callback: Acknowledgement | None = None,
    ) -> None:
        """Accept one record; ``callback`` receives ``(error, logged)``."""


__all__ = ["Acknowledgement", "LogSinkPort"]
