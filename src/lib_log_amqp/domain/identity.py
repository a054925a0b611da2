"""Process-wide origin hostname."""

from __future__ import annotations

import socket
from functools import lru_cache


@lru_cache(maxsize=1)
def process_hostname() -> str:
    """Return the hostname stamped on every envelope, resolved once per process."""

    return socket.gethostname() or "localhost"


__all__ = ["process_hostname"]
