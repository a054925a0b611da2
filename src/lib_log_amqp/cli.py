"""Click command group for smoke-testing the transport from a shell.

Purpose
-------
Give operators a quick way to confirm broker connectivity and exchange
configuration: ``lib_log_amqp send "hello"`` publishes one record through the
same buffering transport applications use.

Contents
--------
* :func:`cli` – root group with ``--version`` and ``--use-dotenv`` switches.
* :func:`info` – print the metadata banner.
* :func:`send` – publish a single record and report the outcome via Rich.
"""

from __future__ import annotations

import asyncio
import json
import os
from typing import Any

import click
from rich.console import Console

from . import __init__conf__, config, summary_info
from .domain.levels import LogLevel
from .transport import AMQPTransport

CLICK_CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}
_LEVEL_CHOICES = [level.severity for level in LogLevel]


@click.group(invoke_without_command=True, context_settings=CLICK_CONTEXT_SETTINGS)
@click.version_option(__init__conf__.version, "--version", "-V", prog_name=__init__conf__.shell_command)
@click.option(
    "--use-dotenv/--no-use-dotenv",
    default=None,
    help=f"Load the nearest .env before reading LOG_AMQP_* variables (env: {config.DOTENV_ENV_VAR}).",
)
@click.pass_context
def cli(ctx: click.Context, use_dotenv: bool | None) -> None:
    """AMQP log transport utilities."""

    if config.should_use_dotenv(explicit=use_dotenv, env_value=os.getenv(config.DOTENV_ENV_VAR)):
        config.enable_dotenv()
    if ctx.invoked_subcommand is None:
        click.echo(summary_info(), nl=False)


@cli.command()
def info() -> None:
    """Print package metadata."""
    click.echo(summary_info(), nl=False)


@cli.command()
@click.argument("message")
@click.option("--url", "amqp_url", default=None, help="Broker URL (default: amqp://localhost).")
@click.option("--exchange", default=None, help="Exchange name (default: logs).")
@click.option("--routing-key", default=None, help="Routing key (default: amqp-transport).")
@click.option("--name", default=None, help="Transport name written into the envelope.")
@click.option("--level", default="info", show_default=True, type=click.Choice(_LEVEL_CHOICES, case_sensitive=False))
@click.option("--meta", default=None, help="JSON metadata attached to the record.")
@click.option("--timeout", default=10.0, show_default=True, type=float, help="Seconds to wait for the channel.")
def send(
    message: str,
    amqp_url: str | None,
    exchange: str | None,
    routing_key: str | None,
    name: str | None,
    level: str,
    meta: str | None,
    timeout: float,
) -> None:
    """Publish MESSAGE once and report whether the broker accepted it."""

    try:
        meta_value = json.loads(meta) if meta is not None else None
    except json.JSONDecodeError as exc:
        raise click.BadParameter(f"not valid JSON: {exc}", param_hint="--meta") from exc

    options = {
        key: value
        for key, value in {
            "amqpUrl": amqp_url,
            "exchange": exchange,
            "routingKey": routing_key,
            "name": name,
        }.items()
        if value is not None
    }
    try:
        ok, detail = asyncio.run(_send_once(options, level, message, meta_value, timeout))
    except config.ConfigurationError as exc:
        raise click.ClickException(str(exc)) from exc

    console = Console()
    if not ok:
        console.print(f"[bold red]failed[/bold red] {detail}")
        raise click.ClickException(detail)
    console.print(f"[green]published[/green] {level} record to exchange [bold]{detail}[/bold]")


async def _send_once(
    options: dict[str, Any],
    level: str,
    message: str,
    meta: Any,
    timeout: float,
) -> tuple[bool, str]:
    transport = AMQPTransport(options)
    try:
        try:
            ready = await asyncio.wait_for(transport.wait_ready(), timeout)
        except asyncio.TimeoutError:
            ready = False
        if not ready:
            return False, f"broker channel not ready after {timeout:g}s"

        outcome: asyncio.Future[BaseException | None] = asyncio.get_running_loop().create_future()
        transport.log(level, message, meta, lambda error, _logged: outcome.set_result(error))
        error = await outcome
        if error is not None:
            return False, repr(error)
        return True, transport.exchange
    finally:
        await transport.close()


__all__ = ["cli", "info", "send"]
