"""Envelope describing one log record on its way to the broker.

Purpose
-------
Provide an immutable, serialisable representation of a log call, stamped with
origin host and arrival time, so queued and directly published records share
one wire format.

Contents
--------
* :data:`CONTENT_TYPE` / :data:`CONTENT_ENCODING` – message properties.
* :class:`LogEnvelope` dataclass with JSON encode/decode helpers.

System Role
-----------
Sits in the domain layer; the publisher builds envelopes, the broker adapter
only ever sees the bytes produced by :meth:`LogEnvelope.encode`.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .levels import LogLevel

CONTENT_TYPE = "application/json"
CONTENT_ENCODING = "utf-8"


@dataclass(slots=True, frozen=True)
class LogEnvelope:
    """Immutable log record ready for transmission.

    Attributes
    ----------
    host:
        Hostname of the emitting process.
    timestamp:
        Arrival time in milliseconds since the Unix epoch.
    name:
        Transport name that produced the envelope.
    level:
        :class:`LogLevel` severity of the record.
    message:
        Rendered log message.
    meta:
        Optional caller-supplied metadata; any JSON-compatible value.
    """

    host: str
    timestamp: int
    name: str
    level: LogLevel
    message: str
    meta: Any = None

    def __post_init__(self) -> None:
        if not isinstance(self.message, str):
            raise TypeError(f"message must be a string, got {type(self.message).__name__}")
        if self.timestamp < 0:
            raise ValueError("timestamp must not be negative")
        if isinstance(self.meta, Mapping):
            object.__setattr__(self, "meta", dict(self.meta))

    def to_dict(self) -> dict[str, Any]:
        """Return the payload fields keyed as they appear on the wire."""

        return {
            "host": self.host,
            "timestamp": self.timestamp,
            "name": self.name,
            "level": self.level.severity,
            "message": self.message,
            "meta": self.meta,
        }

    def to_json(self) -> str:
        """Serialize the envelope to JSON in wire field order.

        ``meta`` is passed through untouched, so mappings with mixed key
        types serialize as long as :mod:`json` accepts each key.

        Examples
        --------
        >>> LogEnvelope('h', 0, 'n', LogLevel.INFO, 'm', {1: 'a', 'b': 2}).to_json()
        '{"host": "h", "timestamp": 0, "name": "n", "level": "info", "message": "m", "meta": {"1": "a", "b": 2}}'
        """

        return json.dumps(self.to_dict())

    def encode(self) -> bytes:
        """Return the message body published to the exchange."""

        return self.to_json().encode(CONTENT_ENCODING)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "LogEnvelope":
        """Reconstruct an envelope from :meth:`to_dict` output."""

        return cls(
            host=payload["host"],
            timestamp=int(payload["timestamp"]),
            name=payload["name"],
            level=LogLevel.from_name(payload["level"]),
            message=payload["message"],
            meta=payload.get("meta"),
        )

    @classmethod
    def decode(cls, body: bytes) -> "LogEnvelope":
        """Parse a message body produced by :meth:`encode`.

        Examples
        --------
        >>> original = LogEnvelope('web01', 1700000000000, 'amqp-transport', LogLevel.INFO, 'hi', {'a': 1})
        >>> LogEnvelope.decode(original.encode()) == original
        True
        """

        return cls.from_dict(json.loads(body.decode(CONTENT_ENCODING)))


__all__ = ["CONTENT_ENCODING", "CONTENT_TYPE", "LogEnvelope"]
