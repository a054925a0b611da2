"""Severity scale shared by the transport and the logging framework.

Purpose
-------
Give the adapter a single, ordered notion of log severity that lines up with
the stdlib :mod:`logging` numbers, so the framework can filter records before
they reach the transport and envelopes carry a stable lowercase level name.

Contents
--------
* :class:`LogLevel` enum with name/numeric conversion helpers.
* ``_ALIASES`` constant mapping alternative spellings onto members.
"""

from __future__ import annotations

import logging
from enum import Enum


class LogLevel(Enum):
    """Enumerated logging levels used throughout the transport."""

    DEBUG = 10
    INFO = 20
    WARNING = 30
    ERROR = 40
    CRITICAL = 50

    @property
    def severity(self) -> str:
        """Return the lowercase severity name written into envelopes."""

        return self.name.lower()

    def to_python_level(self) -> int:
        """Return the :mod:`logging` constant matching this level."""

        return getattr(logging, self.name)

    @classmethod
    def from_name(cls, name: str) -> "LogLevel":
        """Resolve a case-insensitive level name, accepting ``warn``/``fatal``.

        Examples
        --------
        >>> LogLevel.from_name(' Warn ') is LogLevel.WARNING
        True
        >>> LogLevel.from_name('verbose')
        Traceback (most recent call last):
        ...
        ValueError: Unknown log level: 'verbose'
        """

        normalized = name.strip().upper()
        normalized = _ALIASES.get(normalized, normalized)
        try:
            return cls[normalized]
        except KeyError as exc:
            raise ValueError(f"Unknown log level: {name!r}") from exc

    @classmethod
    def from_numeric(cls, level: int) -> "LogLevel":
        """Return the member whose value equals ``level`` exactly."""
        try:
            return cls(level)
        except ValueError as exc:
            raise ValueError(f"Unsupported log level numeric: {level}") from exc

    @classmethod
    def from_python_level(cls, level: int) -> "LogLevel":
        """Translate a stdlib level, rounding custom levels down.

        Custom levels registered with :func:`logging.addLevelName` fall into
        the closest standard bucket below them; anything under ``DEBUG`` is
        treated as ``DEBUG``.

        Examples
        --------
        >>> LogLevel.from_python_level(logging.ERROR) is LogLevel.ERROR
        True
        >>> LogLevel.from_python_level(25) is LogLevel.INFO
        True
        >>> LogLevel.from_python_level(5) is LogLevel.DEBUG
        True
        """

        candidate = cls.DEBUG
        for member in cls:
            if member.value <= level:
                candidate = member
        return candidate


_ALIASES = {
    "WARN": "WARNING",
    "FATAL": "CRITICAL",
}


def coerce_level(level: str | LogLevel) -> LogLevel:
    """Normalise level inputs (string or enum) into :class:`LogLevel`.

    Examples
    --------
    >>> coerce_level("error") is LogLevel.ERROR
    True
    >>> coerce_level(LogLevel.DEBUG) is LogLevel.DEBUG
    True
    """
    if isinstance(level, LogLevel):
        return level
    return LogLevel.from_name(level)


__all__ = ["LogLevel", "coerce_level"]
