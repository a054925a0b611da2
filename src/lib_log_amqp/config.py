"""Transport configuration and environment helpers.

Purpose
-------
Turn construction-time options into an immutable :class:`TransportConfig`,
applying documented defaults, the camelCase option spellings used by existing
deployments, and ``LOG_AMQP_*`` environment overrides. Optionally hydrate the
environment from the nearest ``.env`` file via :mod:`dotenv`.

Contents
--------
* :class:`ConfigurationError` – raised synchronously for unusable options.
* :class:`TransportConfig` – frozen option bundle with :meth:`from_options`.
* :func:`enable_dotenv` / :func:`should_use_dotenv` – ``.env`` integration.

System Role
-----------
Consumed by :class:`lib_log_amqp.AMQPTransport` before anything asynchronous
starts, so configuration problems surface to the caller of the constructor.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from dotenv import find_dotenv, load_dotenv

from lib_log_amqp.adapters.aio_pika_broker import exchange_kwargs
from lib_log_amqp.domain.levels import LogLevel, coerce_level

DEFAULT_NAME = "amqp-transport"
DEFAULT_LEVEL = LogLevel.INFO
DEFAULT_AMQP_URL = "amqp://localhost"
DEFAULT_EXCHANGE = "logs"
DEFAULT_ROUTING_KEY = "amqp-transport"


def _default_exchange_options() -> dict[str, Any]:
    return {"durable": False, "autoDelete": True}


DOTENV_ENV_VAR = "LOG_AMQP_USE_DOTENV"

_OPTION_ALIASES = {
    "name": "name",
    "level": "level",
    "amqpConn": "amqp_conn",
    "amqp_conn": "amqp_conn",
    "amqpUrl": "amqp_url",
    "amqp_url": "amqp_url",
    "exchange": "exchange",
    "exchangeOptions": "exchange_options",
    "exchange_options": "exchange_options",
    "routingKey": "routing_key",
    "routing_key": "routing_key",
}

_ENV_OVERRIDES = {
    "LOG_AMQP_NAME": "name",
    "LOG_AMQP_LEVEL": "level",
    "LOG_AMQP_URL": "amqp_url",
    "LOG_AMQP_EXCHANGE": "exchange",
    "LOG_AMQP_ROUTING_KEY": "routing_key",
}

_ENV_EXCHANGE_FLAGS = {
    "LOG_AMQP_EXCHANGE_DURABLE": "durable",
    "LOG_AMQP_EXCHANGE_AUTO_DELETE": "autoDelete",
}

_TRUTHY = {"1", "true", "yes", "on"}


class ConfigurationError(ValueError):
    """Raised when transport options cannot produce a broker connection."""


@dataclass(frozen=True)
class TransportConfig:
    """Immutable construction-time options of an AMQP transport.

    Attributes
    ----------
    name:
        Transport name written into every envelope.
    level:
        Minimum severity; the logging framework filters with it.
    amqp_conn:
        Pre-existing connection. When present, ``amqp_url`` is ignored.
    amqp_url:
        Broker address used to open a new connection.
    exchange, exchange_options:
        Exchange declared as ``direct`` with these options.
    routing_key:
        Routing key attached to every published message.
    """

    name: str = DEFAULT_NAME
    level: LogLevel = DEFAULT_LEVEL
    amqp_conn: Any = None
    amqp_url: str | None = DEFAULT_AMQP_URL
    exchange: str = DEFAULT_EXCHANGE
    exchange_options: Mapping[str, Any] = field(default_factory=_default_exchange_options)
    routing_key: str = DEFAULT_ROUTING_KEY

    def __post_init__(self) -> None:
        if self.amqp_conn is None and not self.amqp_url:
            raise ConfigurationError("Missing AMQP connection on options.amqpConn")
        if not self.exchange:
            raise ConfigurationError("exchange must not be empty")
        try:
            object.__setattr__(self, "level", coerce_level(self.level))
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc
        object.__setattr__(self, "exchange_options", dict(self.exchange_options))
        try:
            exchange_kwargs(self.exchange_options)
        except ValueError as exc:
            raise ConfigurationError(str(exc)) from exc

    @property
    def uses_existing_connection(self) -> bool:
        """Return ``True`` when a supplied connection handle will be reused."""
        return self.amqp_conn is not None

    @classmethod
    def from_options(cls, options: Mapping[str, Any] | None = None, /, **overrides: Any) -> "TransportConfig":
        """Merge defaults, ``options``, keyword overrides, and environment.

        Environment variables win over call arguments so operators can
        redirect a deployed service without code changes.

        Raises
        ------
        ConfigurationError
            For unknown option names, unknown levels, unsupported exchange
            options, or when neither a connection nor a URL is available.

        Examples
        --------
        >>> TransportConfig.from_options({'amqpUrl': 'amqp://broker', 'routingKey': 'svc'}).routing_key
        'svc'
        >>> TransportConfig.from_options(amqpUrl=None)
        Traceback (most recent call last):
        ...
        lib_log_amqp.config.ConfigurationError: Missing AMQP connection on options.amqpConn
        """

        values: dict[str, Any] = {}
        for source in (options or {}, overrides):
            for key, value in source.items():
                try:
                    values[_OPTION_ALIASES[key]] = value
                except KeyError as exc:
                    raise ConfigurationError(f"Unknown transport option: {key!r}") from exc

        for env_name, attribute in _ENV_OVERRIDES.items():
            env_value = os.getenv(env_name)
            if env_value:
                values[attribute] = env_value

        exchange_options = values.get("exchange_options")
        flags = _env_exchange_flags()
        if flags:
            merged = dict(_default_exchange_options() if exchange_options is None else exchange_options)
            merged.update(flags)
            values["exchange_options"] = merged

        for attribute in ("name", "level", "exchange", "routing_key", "exchange_options"):
            if attribute in values and values[attribute] is None:
                del values[attribute]

        return cls(**values)


def _env_exchange_flags() -> dict[str, bool]:
    flags: dict[str, bool] = {}
    for env_name, option in _ENV_EXCHANGE_FLAGS.items():
        raw = os.getenv(env_name)
        if raw is None or not raw.strip():
            continue
        flags[option] = raw.strip().lower() in _TRUTHY
    return flags


_DOTENV_PATH: Path | None = None


def enable_dotenv(search_from: Path | None = None) -> Path | None:
    """Load the nearest ``.env`` file without overriding existing variables.

    The search walks upwards from ``search_from`` (default: the current
    working directory). Subsequent calls return the cached path.

    Returns
    -------
    Path | None
        Resolved path of the loaded file, or ``None`` when none was found.
    """

    global _DOTENV_PATH
    if _DOTENV_PATH is not None:
        return _DOTENV_PATH
    if search_from is not None:
        candidate = _find_upwards(search_from)
    else:
        found = find_dotenv(usecwd=True)
        candidate = Path(found) if found else None
    if candidate is None:
        return None
    load_dotenv(candidate, override=False)
    _DOTENV_PATH = candidate.resolve()
    return _DOTENV_PATH


def _find_upwards(start: Path) -> Path | None:
    directory = start.resolve()
    for folder in (directory, *directory.parents):
        candidate = folder / ".env"
        if candidate.is_file():
            return candidate
    return None


def should_use_dotenv(*, explicit: bool | None = None, env_value: str | None = None) -> bool:
    """Decide whether ``.env`` loading is requested.

    An explicit CLI choice wins; otherwise :data:`DOTENV_ENV_VAR` decides.

    Examples
    --------
    >>> should_use_dotenv(explicit=False, env_value='1')
    False
    >>> should_use_dotenv(env_value='yes')
    True
    >>> should_use_dotenv()
    False
    """

    if explicit is not None:
        return explicit
    if env_value is None:
        return False
    return env_value.strip().lower() in _TRUTHY


def _reset_dotenv_state_for_testing() -> None:
    global _DOTENV_PATH
    _DOTENV_PATH = None


__all__ = [
    "ConfigurationError",
    "DEFAULT_AMQP_URL",
    "DEFAULT_EXCHANGE",
    "DEFAULT_LEVEL",
    "DEFAULT_NAME",
    "DEFAULT_ROUTING_KEY",
    "DOTENV_ENV_VAR",
    "TransportConfig",
    "enable_dotenv",
    "should_use_dotenv",
]
