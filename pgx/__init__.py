from __future__ import annotations

import dataclasses
import logging
import os
import secrets
import shlex
import socket
import string
import subprocess
from pathlib import Path
from types import TracebackType
from typing import Type

import pg8000.dbapi
from retry import retry

from .db_status import Status
from .env import get_pg_environ, get_postgres_bin_dir
from .secret import PASSWORD_FILE_MODE
from .settings import Settings

__all__ = ["PgCtlError", "PostgreSQL", "Settings", "Status"]

logger = logging.getLogger(__name__)

PASSWORD_ALPHABET = string.ascii_letters + string.digits
PASSWORD_LENGTH = 16


class PgCtlError(Exception):
    """
    An error occurred while running pg_ctl.
    """

    def __init__(self, returncode: int, stderr: str):
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(f"pg_ctl failed with code {returncode}: {stderr.strip()}")


def generate_password() -> str:
    return "".join(secrets.choice(PASSWORD_ALPHABET) for _ in range(PASSWORD_LENGTH))


def pick_free_port(host: str) -> int:
    """
    Ask the OS for a TCP port that is free on ``host``.
    """
    family, type_, proto, _, address = socket.getaddrinfo(
        host, 0, type=socket.SOCK_STREAM
    )[0]
    with socket.socket(family, type_, proto) as sock:
        sock.bind(address)
        return sock.getsockname()[1]


class PostgreSQL:
    """
    Controls a single postgres server through pg_ctl.

    Used as a context manager, the server is stopped on exit unless the
    handle was detached.
    """

    def __init__(self, settings: Settings):
        self._settings = settings
        self._bin_dir = None
        self._detached = False
        self._stop_attempted = False

    @property
    def settings(self) -> Settings:
        """
        The effective settings. After start, the port is the bound one.
        """
        return self._settings

    @property
    def bin_dir(self) -> Path:
        if self._bin_dir is None:
            self._bin_dir = get_postgres_bin_dir()
        return self._bin_dir

    def _pg_ctl(self, args: list[str], timeout: int) -> subprocess.CompletedProcess:
        return subprocess.run(
            [str(self.bin_dir / "pg_ctl"), *args],
            env=get_pg_environ(self.bin_dir),
            universal_newlines=True,
            capture_output=True,
            timeout=timeout,
        )

    def _run(self, args: list[str]) -> str:
        """
        Run a pg_ctl command.
        :param args: The arguments to pass to pg_ctl.
        :return: The output of the pg_ctl command.
        """
        result = self._pg_ctl(args, timeout=self._settings.timeout + 5)
        return self._handle_result(result)

    def _handle_result(self, result: subprocess.CompletedProcess) -> str:
        """
        Handle the result of a pg_ctl command.
        :param result: The result of the pg_ctl command.
        :return: The standard output of the command.
        """
        if result.returncode != 0:
            logger.error(result.stderr)
            raise PgCtlError(result.returncode, result.stderr)
        logger.debug(result.stdout)
        return result.stdout

    def is_initialized(self) -> bool:
        return self._settings.version_file.exists()

    def status(self) -> Status:
        """
        Get the status of the postgres server using pg_ctl.
        :return: The status of the server.
        """
        if not self.is_initialized():
            return Status.NOT_INITIALIZED
        result = self._pg_ctl(
            ["status", "-D", str(self._settings.data_dir)],
            timeout=self._settings.timeout,
        )
        # 0 is running, 3 is not running, 4 is an inaccessible data directory
        if result.returncode == 0:
            return Status.STARTED
        return Status.STOPPED

    def setup(self) -> None:
        """
        Initialize the data directory if needed, writing the password file.
        """
        if self.is_initialized():
            logger.debug(f"Database at {self._settings.data_dir} already initialized")
            return

        password = self._settings.password or generate_password()
        self._write_password_file(password)
        self._settings = dataclasses.replace(self._settings, password=password)

        logger.info(f"Initializing database at {self._settings.data_dir}")
        options = " ".join(
            [
                f"--username={shlex.quote(self._settings.username)}",
                f"--pwfile={shlex.quote(str(self._settings.password_file))}",
                "--auth=scram-sha-256",
                "--encoding=UTF8",
            ]
        )
        self._run(["initdb", "-D", str(self._settings.data_dir), "-o", options])

    def _write_password_file(self, password: str) -> None:
        path = self._settings.password_file
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, PASSWORD_FILE_MODE)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(password)

    def start(self) -> None:
        """
        Start the postgres server using pg_ctl and wait until it accepts logins.
        """
        port = self._settings.port or pick_free_port(self._settings.host)
        self._settings = dataclasses.replace(self._settings, port=port)

        logger.info(f"Starting database at {self._settings.data_dir} on port {port}")
        options = " ".join(
            [
                f"-p {port}",
                f"-h {shlex.quote(self._settings.host)}",
                # TCP only, no unix socket
                "-k ''",
            ]
        )
        self._run(
            [
                "start",
                "-w",
                "-t",
                str(self._settings.timeout),
                "-D",
                str(self._settings.data_dir),
                "-l",
                str(self._settings.logfile),
                "-o",
                options,
            ]
        )
        self._test_connection()

    def stop(self) -> None:
        """
        Stop the postgres server using pg_ctl.
        """
        self._stop_attempted = True
        logger.info(f"Stopping database at {self._settings.data_dir}")
        self._run(
            [
                "stop",
                "-w",
                "-t",
                str(self._settings.timeout),
                "-m",
                "fast",
                "-D",
                str(self._settings.data_dir),
            ]
        )

    def detach(self) -> None:
        """
        Give up ownership of the server. It keeps running after this handle
        goes out of scope and after this process exits.
        """
        logger.debug(f"Detaching from database at {self._settings.data_dir}")
        self._detached = True

    @retry(pg8000.dbapi.Error, tries=10, delay=0.1, backoff=2, logger=logger, max_delay=5)
    def _connect(self) -> pg8000.dbapi.Connection:
        return pg8000.dbapi.connect(
            user=self._settings.username,
            password=self._settings.password,
            host=self._settings.host,
            port=self._settings.port,
            database="postgres",
        )

    def _test_connection(self) -> None:
        """
        Test the connection to the postgres server.
        """
        try:
            connection = self._connect()
            connection.close()
        except pg8000.dbapi.Error as e:
            logger.exception("Failed to connect to postgres server", exc_info=e)
            raise

    def __enter__(self) -> PostgreSQL:
        return self

    def __exit__(
        self,
        exc_type: Type[Exception] | None,
        exc_val: Exception | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """
        Stop the server if this handle still owns a running one and has not
        tried to stop it already.
        :param exc_type: The type of exception that was raised.
        :param exc_val: The exception that was raised.
        :param exc_tb: The traceback of the exception that was raised.
        """
        if self._detached or self._stop_attempted:
            return
        if self.status() != Status.STARTED:
            return
        try:
            self.stop()
        except PgCtlError:
            logger.exception(f"Failed to stop database at {self._settings.data_dir}")
