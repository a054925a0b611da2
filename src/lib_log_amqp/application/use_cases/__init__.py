"""Use cases: channel establishment and buffered publishing."""

from __future__ import annotations

from ._diagnostics import DiagnosticHook, build_diagnostic_emitter
from .establish import EXCHANGE_KIND, Establishment, create_establish_channel
from .publish import BufferedPublisher

__all__ = [
    "BufferedPublisher",
    "DiagnosticHook",
    "EXCHANGE_KIND",
    "Establishment",
    "build_diagnostic_emitter",
    "create_establish_channel",
]
