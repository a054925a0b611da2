"""Two-variant publisher state.

Purpose
-------
Make the publisher's connectivity explicit: either records are collected in a
pending queue (:class:`Unready`) or a channel is available for direct
publishing (:class:`Ready`). Code branches on the variant instead of testing an
optional channel attribute, so queue access only happens while unready.

Contents
--------
* :class:`Unready` – owns the ordered pending queue.
* :class:`Ready` – holds the channel handle for the adapter's lifetime.
* :data:`PublisherState` – union of both variants.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

from .envelope import LogEnvelope


@dataclass(slots=True)
class Unready:
    """No channel yet; envelopes accumulate in arrival order."""

    queue: list[LogEnvelope] = field(default_factory=list)


@dataclass(slots=True, frozen=True)
class Ready:
    """Channel established and exchange declared."""

    channel: Any


PublisherState = Union[Unready, Ready]


__all__ = ["PublisherState", "Ready", "Unready"]
