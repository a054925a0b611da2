"""Bridge from the stdlib :mod:`logging` framework to an AMQP sink.

Purpose
-------
Let applications attach the transport with ``logger.addHandler``. The logging
framework owns level filtering (the handler level defaults to the sink's
threshold); the handler only formats the record and forwards it.

Contents
--------
* :class:`AMQPLogHandler` – :class:`logging.Handler` subclass.
* :data:`META_ATTRIBUTE` – record attribute carrying structured metadata.
"""

from __future__ import annotations

import logging
import sys
import traceback

from lib_log_amqp.application.ports.sink import LogSinkPort
from lib_log_amqp.domain.levels import LogLevel

META_ATTRIBUTE = "meta"
_OWN_LOGGER_PREFIX = "lib_log_amqp"


def _is_own_record(record: logging.LogRecord) -> bool:
    return record.name == _OWN_LOGGER_PREFIX or record.name.startswith(_OWN_LOGGER_PREFIX + ".")


class AMQPLogHandler(logging.Handler):
    """Forward log records to a :class:`LogSinkPort`.

    Metadata travels via ``extra={"meta": ...}``. Records emitted by this
    package's own loggers are dropped so transport failures cannot feed back
    into the transport.

    Examples
    --------
    >>> class Sink:
    ...     name = 'sink'
    ...     level = LogLevel.INFO
    ...     def __init__(self):
    ...         self.records = []
    ...     def log(self, level, message, meta=None, callback=None):
    ...         self.records.append((level, message, meta))
    ...         callback(None, True)
    >>> sink = Sink()
    >>> log = logging.getLogger('doc.amqp')
    >>> log.propagate = False
    >>> log.setLevel(logging.DEBUG)
    >>> log.addHandler(AMQPLogHandler(sink))
    >>> log.debug('filtered')
    >>> log.warning('kept', extra={'meta': {'k': 1}})
    >>> sink.records
    [(<LogLevel.WARNING: 30>, 'kept', {'k': 1})]
    """

    def __init__(self, sink: LogSinkPort, level: int | str | None = None) -> None:
        super().__init__(level=sink.level.to_python_level() if level is None else level)
        self._sink = sink
        self.addFilter(lambda record: not _is_own_record(record))

    @property
    def sink(self) -> LogSinkPort:
        return self._sink

    def emit(self, record: logging.LogRecord) -> None:
        try:
            message = self.format(record)
            level = LogLevel.from_python_level(record.levelno)
            meta = getattr(record, META_ATTRIBUTE, None)
        except Exception:  # noqa: BLE001
            self.handleError(record)
            return

        def acknowledge(error: BaseException | None, _logged: bool) -> None:
            if error is not None:
                self.handle_publish_error(record, error)

        try:
            self._sink.log(level, message, meta, acknowledge)
        except Exception:  # noqa: BLE001
            self.handleError(record)

    def handle_publish_error(self, record: logging.LogRecord, error: BaseException) -> None:
        """Report an asynchronous publish failure the way ``handleError`` does."""

        if not logging.raiseExceptions or sys.stderr is None:
            return
        sys.stderr.write(f"--- AMQP publish failed for record from {record.name!r} ---\n")
        traceback.print_exception(type(error), error, error.__traceback__, file=sys.stderr)


__all__ = ["AMQPLogHandler", "META_ATTRIBUTE"]
