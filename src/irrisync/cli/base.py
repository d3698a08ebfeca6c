import asyncio
from datetime import datetime
from typing import Optional

import click
from rich.console import Console
from rich.table import Table

from irrisync.client import Session
from irrisync.types import Command, CommandAckMessage, StateMessage, build_command
from irrisync.util import (
    DEFAULT_ACK_TIMEOUT,
    DEFAULT_LOGLEVEL,
    DEFAULT_WS_URL,
    shutdown_client_log,
    start_client_log,
)

SUMMARY_ROWS = 10


def print_tree(cmd, prefix="", parent_ctx=None):
    """Print command tree starting from given command."""
    ctx = click.Context(cmd, info_name=cmd.name, parent=parent_ctx)

    # Only print root name if no parent
    if not parent_ctx:
        click.echo(cmd.name)

    for sub in sorted(cmd.list_commands(ctx)):
        sub_cmd = cmd.get_command(ctx, sub)
        click.echo(f"{prefix}└── {sub}")
        if isinstance(sub_cmd, click.Group):
            print_tree(sub_cmd, prefix + "    ", ctx)


def tree_option(f):
    """Add --tree option to command."""

    def callback(ctx, param, value):
        if not value or ctx.resilient_parsing:
            return
        print_tree(ctx.command)
        ctx.exit()

    return click.option(
        "--tree",
        is_flag=True,
        help="Show command tree from this point",
        expose_value=False,
        is_eager=True,
        callback=callback,
    )(f)


def connection_options(f):
    """Endpoint and logging options shared by every command."""
    options = [
        click.option(
            "--url",
            "-u",
            default=DEFAULT_WS_URL,
            help=f"Controller websocket endpoint (default: {DEFAULT_WS_URL})",
        ),
        click.option(
            "--log-to-file/--no-log-to-file",
            "-ltf/",
            default=False,
            help="Enable/disable logging to file (default: disabled)",
        ),
        click.option(
            "--log-to-stdout/--no-log-to-stdout",
            "-lts/",
            default=False,
            help="Enable/disable console logging (default: disabled)",
        ),
        click.option(
            "--log-path",
            "-lp",
            default="",
            help="Custom path for log file (default: ~/.irrisync/client.log)",
        ),
        click.option(
            "--log-level",
            "-ll",
            default=DEFAULT_LOGLEVEL,
            help="Logging level (TRACE, DEBUG, INFO, WARNING, ERROR) (default: INFO)",
        ),
    ]
    for option in reversed(options):
        f = option(f)
    return f


def _start_log(log_to_file, log_to_stdout, log_path, log_level):
    start_client_log(
        log_to_file=log_to_file,
        log_to_stdout=log_to_stdout,
        log_path=log_path,
        log_level=log_level,
    )


def format_time(timestamp: float) -> str:
    """Controller timestamps are epoch milliseconds."""
    try:
        return datetime.fromtimestamp(timestamp / 1000).strftime("%Y-%m-%d %H:%M:%S")
    except (OverflowError, OSError, ValueError):
        return str(timestamp)


def format_state(msg: StateMessage) -> str:
    volumes = ", ".join(f"{v:.2f}" for v in msg.volumes)
    moists = ", ".join(str(m) for m in msg.moists)
    valves = "".join(str(v) for v in msg.valves)
    return (
        f"{format_time(msg.time)}  {msg.device_id}  valves [{valves}]"
        f"  volumes (L) [{volumes}]  moisture [{moists}]"
    )


def history_table(history: tuple[StateMessage, ...], rows: int = SUMMARY_ROWS) -> Table:
    table = Table(title=f"Last {min(rows, len(history))} of {len(history)} states")
    table.add_column("Time")
    table.add_column("Device")
    table.add_column("Valves")
    table.add_column("Volumes (L)", justify="right")
    table.add_column("Moisture", justify="right")
    for msg in history[-rows:]:
        table.add_row(
            format_time(msg.time),
            msg.device_id,
            " ".join(str(v) for v in msg.valves),
            " ".join(f"{v:.2f}" for v in msg.volumes),
            " ".join(str(m) for m in msg.moists),
        )
    return table


async def _monitor(session: Session, count: int) -> None:
    done = asyncio.Event()
    received = 0

    def on_state(msg: StateMessage):
        nonlocal received
        received += 1
        click.echo(format_state(msg))
        if count and received >= count:
            done.set()

    session.start(
        on_state=on_state,
        on_ack=lambda ack: click.echo(f"ACK  {ack.device_id}: {ack.command}"),
        on_error=lambda err: click.echo(f"ERROR  {err.message}", err=True),
        on_open=lambda: click.echo(f"Connected to {session.manager.url}"),
    )
    try:
        await done.wait()
    finally:
        session.stop()


async def _send_and_wait(
    url: str, command: Command, timeout: float
) -> Optional[CommandAckMessage]:
    """Connect, send `command` once open and wait for the device's ack."""
    session = Session(url)
    opened = asyncio.Event()
    ack = asyncio.get_running_loop().create_future()

    def on_ack(msg: CommandAckMessage):
        if msg.device_id == command.device_id and not ack.done():
            ack.set_result(msg)

    session.start(
        on_ack=on_ack,
        on_error=lambda err: click.echo(f"Error: {err.message}", err=True),
        on_open=opened.set,
    )
    try:
        async with asyncio.timeout(timeout):
            await opened.wait()
            session.send_command(command)
            return await ack
    except TimeoutError:
        return None
    finally:
        session.stop()


def _run_command(action, device_id, valves, url, timeout, **log_kwargs):
    try:
        command = build_command(action, device_id, valves)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="VALVES")
    _start_log(**log_kwargs)
    try:
        click.echo(f"Sending {command.to_json()}")
        ack = asyncio.run(_send_and_wait(url, command, timeout))
    finally:
        shutdown_client_log()
    if ack is None:
        click.echo(f"No acknowledgement from {device_id} within {timeout} s.", err=True)
        raise SystemExit(1)
    click.echo(f"Command ACK for: {ack.command}")


@click.group()
@tree_option
def cli():
    """irrisync - smart irrigation controller client.

    Follow a controller's live telemetry and open/close its valves.
    """
    pass


@cli.command()
@connection_options
@click.option(
    "--count",
    "-n",
    default=0,
    type=click.IntRange(min=0),
    help="Stop after this many state messages (default: 0, run until Ctrl-C)",
)
def monitor(url, count, **log_kwargs):
    """Print live controller state.

    Stays connected (reconnecting every 5 s if the link drops) and prints each
    state message, acknowledgement and error. On exit a table of the most
    recent states is shown.
    """
    _start_log(**log_kwargs)
    session = Session(url)
    try:
        asyncio.run(_monitor(session, count))
    except KeyboardInterrupt:
        click.echo("Interrupted.")
    finally:
        shutdown_client_log()

    history = session.snapshot()
    if not history:
        click.echo("No state messages received.")
        return
    Console().print(history_table(history))


def _valve_command(name, action, nargs, help_text):
    @cli.command(name=name, help=help_text)
    @connection_options
    @click.option(
        "--timeout",
        "-t",
        default=DEFAULT_ACK_TIMEOUT,
        type=float,
        help=f"Seconds to wait for the acknowledgement (default: {DEFAULT_ACK_TIMEOUT})",
    )
    @click.argument("device_id")
    @click.argument("valves", nargs=nargs, type=click.IntRange(min=0), required=True)
    def command(device_id, valves, url, timeout, **log_kwargs):
        if nargs == 1:
            valves = (valves,)
        _run_command(action, device_id, valves, url, timeout, **log_kwargs)

    return command


open_valve = _valve_command("open-valve", "open", 1, "Open one valve on DEVICE_ID.")
close_valve = _valve_command("close-valve", "close", 1, "Close one valve on DEVICE_ID.")
open_valves = _valve_command(
    "open-valves", "open-many", -1, "Open several valves on DEVICE_ID at once."
)
