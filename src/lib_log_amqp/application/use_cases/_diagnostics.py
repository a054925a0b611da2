"""Guarded diagnostic hook shared by the establisher and the publisher."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

DiagnosticHook = Callable[[str, dict[str, Any]], None]

logger = logging.getLogger(__name__)


def build_diagnostic_emitter(diagnostic: DiagnosticHook | None) -> DiagnosticHook:
    """Wrap ``diagnostic`` so exceptions raised by the hook never escape.

    Examples
    --------
    >>> seen = []
    >>> emit = build_diagnostic_emitter(lambda name, payload: seen.append(name))
    >>> emit("queued", {})
    >>> seen
    ['queued']
    >>> build_diagnostic_emitter(None)("queued", {}) is None
    True
    """

    if diagnostic is None:

        def _noop(name: str, payload: dict[str, Any]) -> None:
            return None

        return _noop

    def _emit(name: str, payload: dict[str, Any]) -> None:
        try:
            diagnostic(name, payload)
        except Exception as exc:  # noqa: BLE001
            logger.error("Diagnostic hook raised while reporting %s", name, exc_info=exc)

    return _emit


__all__ = ["DiagnosticHook", "build_diagnostic_emitter"]
