"""Console entry point for ``python -m lib_log_amqp`` and the console script."""

from __future__ import annotations

from typing import Sequence

import click

from .cli import cli


def main(argv: Sequence[str] | None = None) -> int:
    """Run the Click group in a test-friendly manner.

    Parameters
    ----------
    argv:
        Optional sequence of argument strings (defaults to ``sys.argv[1:]``).

    Returns
    -------
    int
        Exit code: zero on success, the Click error code otherwise.

    Examples
    --------
    >>> main(["--version"])  # doctest: +ELLIPSIS
    lib_log_amqp, version 0...
    0
    """

    args = list(argv) if argv is not None else None
    try:
        cli.main(args=args, prog_name="lib_log_amqp", standalone_mode=False)
    except click.ClickException as error:
        error.show()
        return error.exit_code
    except click.exceptions.Exit as exit_request:
        return exit_request.exit_code
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
