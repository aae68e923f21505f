from __future__ import annotations

import os
import shutil
from pathlib import Path

from .errors import PostgresNotFoundError

POSTGRES_BIN_ENV = "PGX_POSTGRES_BIN"


def get_postgres_bin_dir() -> Path:
    """
    Get the path to the postgres binaries.

    ``PGX_POSTGRES_BIN`` is used when set, otherwise the directory of
    whichever ``pg_ctl`` is on ``PATH``.

    :return: The path to the postgres binaries.
    """
    override = os.environ.get(POSTGRES_BIN_ENV)
    if override:
        return Path(override)

    pg_ctl = shutil.which("pg_ctl")
    if pg_ctl is not None:
        return Path(pg_ctl).resolve().parent

    raise PostgresNotFoundError(
        f"could not find pg_ctl: install postgres or set {POSTGRES_BIN_ENV}"
    )


def get_postgres_lib_dir(bin_dir: Path) -> Path:
    """
    Get the path to the postgres libraries.

    :return: The path to the postgres libraries.
    """
    return bin_dir.parent / "lib"


def get_pg_environ(bin_dir: Path) -> dict[str, str]:
    lib_dir = str(get_postgres_lib_dir(bin_dir))
    environ = {
        **os.environ,
        "LD_LIBRARY_PATH": lib_dir,
        "DYLD_LIBRARY_PATH": lib_dir,
        "PATH": os.environ.get("PATH", "") + os.pathsep + str(bin_dir),
    }
    return environ
