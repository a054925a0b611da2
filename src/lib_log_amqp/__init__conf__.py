"""Static package metadata surfaced by the CLI banner."""

from __future__ import annotations

from collections.abc import Callable

name = "lib_log_amqp"
title = "AMQP log transport with connect-time buffering"
version = "0.1.0"
homepage = "https://github.com/bitranox/lib_log_amqp"
author = "bitranox"
author_email = "bitranox@gmail.com"
shell_command = "lib_log_amqp"


def print_info(writer: Callable[[str], None] | None = None) -> None:
    """Write the metadata banner line by line.

    Examples
    --------
    >>> lines = []
    >>> print_info(writer=lines.append)
    >>> lines[0]
    'Info for lib_log_amqp:\\n'
    """

    fields = [
        ("name", name),
        ("title", title),
        ("version", version),
        ("homepage", homepage),
        ("author", author),
        ("author_email", author_email),
        ("shell_command", shell_command),
    ]
    pad = max(len(label) for label, _ in fields)
    out = writer or (lambda text: print(text, end=""))
    out(f"Info for {name}:\n")
    out("\n")
    for label, value in fields:
        out(f"    {label:<{pad}} = {value}\n")


__all__ = ["print_info", "shell_command", "version"]
