from __future__ import annotations

import dataclasses
import logging
from pathlib import Path

from . import PostgreSQL
from .data_dir import resolve_data_dir
from .db_status import Status
from .errors import SecretFileError, StateFileError, UnavailableMetadataError
from .secret import read_managed_password_file
from .settings import Settings
from .sidecar import password_file_path
from .state import read_state_file

logger = logging.getLogger(__name__)


def connection_url(host: str, port: int, password: str) -> str:
    return f"postgresql://postgres:{password}@{host}:{port}/postgres"


@dataclasses.dataclass(frozen=True)
class ConnectionDetails:
    """
    Everything needed to connect to a running server.
    """

    host: str
    port: int
    password: str

    @property
    def url(self) -> str:
        return connection_url(self.host, self.port, self.password)


def build_settings(
    data_dir: Path,
    host: str | None = None,
    port: int | None = None,
    password: str | None = None,
) -> Settings:
    """
    Build controller settings for a data directory, overriding the defaults
    with whatever is known.
    """
    overrides = {}
    if host is not None:
        overrides["host"] = host
    if port is not None:
        overrides["port"] = port
    if password is not None and password.strip():
        overrides["password"] = password
    return Settings(
        data_dir=data_dir, password_file=password_file_path(data_dir), **overrides
    )


def read_connection_details(data_dir: Path) -> ConnectionDetails:
    """
    Read the state and password sidecars of a data directory.

    Any failure, whether a missing file, an I/O error, or an undecodable or
    malformed file, is reported as UnavailableMetadataError. The cause is
    dropped since callers handle all of them the same way.

    :param data_dir: The postgres data directory.
    :return: The connection details of the last start.
    """
    try:
        state = read_state_file(data_dir)
        password = read_managed_password_file(data_dir)
    except (OSError, StateFileError, SecretFileError) as e:
        logger.debug(f"Could not read connection details for {data_dir}: {e}")
        raise UnavailableMetadataError() from None
    if state is None or password is None:
        raise UnavailableMetadataError()
    return ConnectionDetails(host=state.host, port=state.port, password=password)


@dataclasses.dataclass
class RuntimeContext:
    """
    What we believe is running for a data directory.
    """

    data_dir: Path
    postgresql: PostgreSQL
    details: ConnectionDetails | None = None

    @property
    def connection(self) -> ConnectionDetails:
        if self.details is None:
            raise UnavailableMetadataError()
        return self.details

    def is_running(self) -> bool:
        return self.postgresql.status() == Status.STARTED


def load_runtime_context(cli_data_dir: Path | None) -> RuntimeContext:
    """
    Load the runtime context for stop, status and url.

    :param cli_data_dir: The value of ``--data-dir``, if given.
    :return: The context, with details set only if both sidecars are usable.
    """
    data_dir = resolve_data_dir(cli_data_dir)
    try:
        details = read_connection_details(data_dir)
    except UnavailableMetadataError:
        details = None

    if details is None:
        settings = build_settings(data_dir)
    else:
        settings = build_settings(
            data_dir, details.host, details.port, details.password
        )
    return RuntimeContext(
        data_dir=data_dir, postgresql=PostgreSQL(settings), details=details
    )
