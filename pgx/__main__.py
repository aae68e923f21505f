import logging
import os
import subprocess
from pathlib import Path
from typing import Callable, Optional

import pg8000.dbapi
import typer

from pgx import PgCtlError
from pgx.errors import PgxError
from pgx.lifecycle import handle_start, handle_status, handle_stop, handle_url

LOG_ENV = "PGX_LOG"
DEFAULT_LOG_FILTER = "warning,pgx=info"

app = typer.Typer(help="Run a local PostgreSQL server.", no_args_is_help=True)

logger = logging.getLogger("pgx")


def configure_logging(log_filter: Optional[str] = None) -> None:
    """
    Configure logging from a filter such as ``warning,pgx=debug``.

    Each comma separated directive is either a bare level for the root logger
    or ``logger=level``.
    """
    if log_filter is None:
        log_filter = os.environ.get(LOG_ENV) or DEFAULT_LOG_FILTER

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    root = logging.getLogger()
    root.addHandler(handler)

    unknown = []
    for directive in filter(None, (d.strip() for d in log_filter.split(","))):
        name, _, level_name = directive.rpartition("=")
        level = logging.getLevelName(level_name.upper())
        if not isinstance(level, int):
            unknown.append(directive)
            continue
        logging.getLogger(name or None).setLevel(level)

    for directive in unknown:
        logger.warning(f"Ignoring unknown {LOG_ENV} directive {directive!r}")


def _run(handler: Callable[..., None], *args, **kwargs) -> None:
    try:
        handler(*args, **kwargs)
    except (
        PgxError,
        PgCtlError,
        OSError,
        subprocess.SubprocessError,
        pg8000.dbapi.Error,
    ) as e:
        typer.echo(f"error: {e}", err=True)
        raise typer.Exit(code=1)


DATA_DIR_OPTION = typer.Option(
    None, "--data-dir", help="Data directory; PGX_DATA_DIR takes precedence."
)


@app.command()
def start(
    data_dir: Optional[Path] = DATA_DIR_OPTION,
    port: int = typer.Option(0, help="Port to listen on, 0 picks a free one."),
    host: str = "localhost",
    daemon: bool = typer.Option(False, "--daemon", help="Leave the server running."),
):
    """Start the server and print its connection string."""
    _run(handle_start, data_dir, host=host, port=port, daemon=daemon)


@app.command()
def stop(data_dir: Optional[Path] = DATA_DIR_OPTION):
    """Stop the server."""
    _run(handle_stop, data_dir)


@app.command()
def status(data_dir: Optional[Path] = DATA_DIR_OPTION):
    """Report whether the server is running."""
    _run(handle_status, data_dir)


@app.command()
def url(data_dir: Optional[Path] = DATA_DIR_OPTION):
    """Print the connection string of the running server."""
    _run(handle_url, data_dir)


def main():
    configure_logging()
    app()


if __name__ == "__main__":
    main()
