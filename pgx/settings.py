from __future__ import annotations

import dataclasses
from pathlib import Path


@dataclasses.dataclass(frozen=True)
class Settings:
    """
    The configuration of a postgres server.
    A port of 0 means any free port is picked on start.
    """

    data_dir: Path
    password_file: Path
    host: str = "localhost"
    port: int = 0
    password: str = ""
    username: str = "postgres"
    timeout: int = 30

    @property
    def logfile(self) -> Path:
        return self.data_dir / "pgx-server.log"

    @property
    def pidfile(self) -> Path:
        return self.data_dir / "postmaster.pid"

    @property
    def version_file(self) -> Path:
        return self.data_dir / "PG_VERSION"
