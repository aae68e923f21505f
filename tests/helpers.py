"""Test doubles shared across the pgx test suite.

``FakePostgreSQL`` mirrors the controller contract of ``pgx.PostgreSQL``
(status/settings/setup/start/stop/detach and the context manager) without
running any postgres binaries.
"""

from __future__ import annotations

import dataclasses
from pathlib import Path

from pgx.db_status import Status
from pgx.settings import Settings

GENERATED_PASSWORD = "generated-secret"
BOUND_PORT = 54321


class FakeServer:
    """State shared by every FakePostgreSQL handle, like postgres on disk."""

    def __init__(self) -> None:
        self.running: set[Path] = set()
        self.instances: list[FakePostgreSQL] = []
        self.bound_port = BOUND_PORT
        self.reported_password: str | None = None
        self.stop_error: Exception | None = None

    def stop_calls(self) -> int:
        return sum(instance.calls.count("stop") for instance in self.instances)


class FakePostgreSQL:
    server: FakeServer

    def __init__(self, settings: Settings) -> None:
        self._settings = settings
        self.detached = False
        self.stop_attempted = False
        self.calls: list[str] = []
        self.server.instances.append(self)

    @property
    def settings(self) -> Settings:
        return self._settings

    def status(self) -> Status:
        if self._settings.data_dir in self.server.running:
            return Status.STARTED
        if self._settings.version_file.exists():
            return Status.STOPPED
        return Status.NOT_INITIALIZED

    def setup(self) -> None:
        self.calls.append("setup")
        if self._settings.version_file.exists():
            return
        password = self._settings.password or GENERATED_PASSWORD
        self._settings.password_file.write_text(password)
        self._settings.version_file.write_text("18\n")
        (self._settings.data_dir / "postgresql.conf").write_text("")
        self._settings = dataclasses.replace(self._settings, password=password)

    def start(self) -> None:
        self.calls.append("start")
        port = self._settings.port or self.server.bound_port
        password = self._settings.password
        if self.server.reported_password is not None:
            password = self.server.reported_password
        self._settings = dataclasses.replace(self._settings, port=port, password=password)
        self.server.running.add(self._settings.data_dir)

    def stop(self) -> None:
        self.calls.append("stop")
        self.stop_attempted = True
        if self.server.stop_error is not None:
            raise self.server.stop_error
        self.server.running.discard(self._settings.data_dir)

    def detach(self) -> None:
        self.detached = True

    def __enter__(self) -> FakePostgreSQL:
        return self

    def __exit__(self, *exc_info) -> None:
        if self.detached or self.stop_attempted:
            return
        if self.status() == Status.STARTED:
            self.stop()


def mark_initialized(data_dir: Path) -> None:
    """Make *data_dir* look like a cluster initdb already ran in."""
    data_dir.mkdir(parents=True, exist_ok=True)
    (data_dir / "PG_VERSION").write_text("18\n")
    (data_dir / "postgresql.conf").write_text("")
