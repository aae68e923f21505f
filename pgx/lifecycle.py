from __future__ import annotations

import asyncio
import enum
import logging
import signal
from pathlib import Path

import typer

from . import PostgreSQL
from .context import build_settings, connection_url, load_runtime_context
from .data_dir import resolve_data_dir
from .db_status import Status
from .errors import METADATA_UNAVAILABLE, ConflictError, NotRunningError
from .secret import managed_password_for_connection, resolve_start_password
from .state import StateFile, write_state_file

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.25
SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ShutdownOutcome(enum.Enum):
    SIGNAL = "signal"
    SERVER_STOPPED = "server stopped"


async def wait_for_shutdown_signal_or_server_stop(
    postgresql: PostgreSQL, poll_interval: float = POLL_INTERVAL
) -> ShutdownOutcome:
    """
    Block until SIGINT/SIGTERM arrives or the server stops on its own.

    :param postgresql: The server to watch.
    :param poll_interval: Seconds between status checks.
    :return: Whichever happened first.
    """
    loop = asyncio.get_running_loop()
    received = asyncio.Event()

    def _on_signal(*_) -> None:
        loop.call_soon_threadsafe(received.set)

    previous_handlers = {sig: signal.getsignal(sig) for sig in SHUTDOWN_SIGNALS}
    loop_handlers = []
    for sig in SHUTDOWN_SIGNALS:
        try:
            loop.add_signal_handler(sig, received.set)
            loop_handlers.append(sig)
        except NotImplementedError:
            # no loop signal support on this platform
            signal.signal(sig, _on_signal)

    try:
        while True:
            try:
                await asyncio.wait_for(received.wait(), timeout=poll_interval)
            except asyncio.TimeoutError:
                if postgresql.status() != Status.STARTED:
                    return ShutdownOutcome.SERVER_STOPPED
            else:
                return ShutdownOutcome.SIGNAL
    finally:
        for sig in loop_handlers:
            loop.remove_signal_handler(sig)
        for sig, handler in previous_handlers.items():
            if handler is not None:
                signal.signal(sig, handler)


def handle_start(
    cli_data_dir: Path | None,
    host: str = "localhost",
    port: int = 0,
    daemon: bool = False,
) -> None:
    """
    Start the server for a data directory and print its connection string.

    Without ``daemon`` this blocks until SIGINT/SIGTERM or until the server
    stops by itself, and only stops the server if it is still running.

    :param cli_data_dir: The value of ``--data-dir``, if given.
    :param host: The host to listen on.
    :param port: The port to listen on, 0 for any free port.
    :param daemon: Leave the server running and return immediately.
    """
    data_dir = resolve_data_dir(cli_data_dir)
    data_dir.mkdir(parents=True, exist_ok=True)

    password = resolve_start_password(data_dir)
    postgresql = PostgreSQL(build_settings(data_dir, host, port, password))
    if postgresql.status() == Status.STARTED:
        raise ConflictError(f"server already running for {data_dir}")

    with postgresql:
        postgresql.setup()
        postgresql.start()

        running = postgresql.settings
        password = managed_password_for_connection(data_dir, running)
        write_state_file(data_dir, StateFile(host=running.host, port=running.port))
        typer.echo(connection_url(running.host, running.port, password))

        if daemon:
            postgresql.detach()
            logger.info(f"Left database at {data_dir} running in the background")
            return

        outcome = asyncio.run(wait_for_shutdown_signal_or_server_stop(postgresql))
        logger.debug(f"Foreground wait ended: {outcome.value}")
        if outcome is ShutdownOutcome.SIGNAL and postgresql.status() == Status.STARTED:
            postgresql.stop()
            typer.echo("PostgreSQL stopped cleanly.")
        else:
            typer.echo("PostgreSQL is no longer running.")


def handle_stop(cli_data_dir: Path | None) -> None:
    context = load_runtime_context(cli_data_dir)
    if not context.is_running():
        typer.echo("not running")
        return

    context.postgresql.stop()
    typer.echo("stopped")


def handle_status(cli_data_dir: Path | None) -> None:
    context = load_runtime_context(cli_data_dir)
    if not context.is_running():
        typer.echo("not running")
        return

    typer.echo("running")
    if context.details is None:
        logger.warning(f"Server for {context.data_dir} is running without metadata")
        typer.echo(METADATA_UNAVAILABLE)
    else:
        typer.echo(context.details.url)


def handle_url(cli_data_dir: Path | None) -> None:
    context = load_runtime_context(cli_data_dir)
    if not context.is_running():
        raise NotRunningError(f"server is not running for {context.data_dir}")
    typer.echo(context.connection.url)
