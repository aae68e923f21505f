from __future__ import annotations

import logging
import os
import stat
from pathlib import Path

from .errors import IntegrityError, InternalError, SecretFileError
from .settings import Settings
from .sidecar import password_file_path

logger = logging.getLogger(__name__)

PASSWORD_FILE_MODE = stat.S_IRUSR | stat.S_IWUSR


def read_managed_password_file(data_dir: Path) -> str | None:
    """
    Read the managed password of a data directory.

    :param data_dir: The postgres data directory.
    :return: The trimmed password, or None if the file is missing or blank.
    """
    path = password_file_path(data_dir)
    if not path.exists():
        return None
    try:
        password = path.read_text(encoding="utf-8").strip()
    except UnicodeDecodeError as e:
        raise SecretFileError(f"unreadable password file {path}: {e}") from e
    return password or None


def set_password_file_permissions(path: Path) -> None:
    """
    Restrict a password file to its owner. Does nothing where the platform
    has no permission bits.
    """
    if os.name != "posix":
        return
    os.chmod(path, PASSWORD_FILE_MODE)


def cluster_is_initialized(data_dir: Path) -> bool:
    return (data_dir / "postgresql.conf").exists()


def resolve_start_password(data_dir: Path) -> str | None:
    """
    Pick the password to start a server with.

    An existing managed password is reused. A brand-new data directory gets
    None, so the controller generates one while initializing. An initialized
    cluster without a managed password is refused, since its real password is
    unknown to us.

    :param data_dir: The postgres data directory.
    :return: The password to configure, or None to generate one.
    """
    password = read_managed_password_file(data_dir)
    if password is not None:
        return password

    if cluster_is_initialized(data_dir):
        raise IntegrityError(
            f"missing managed password file for initialized data directory {data_dir}. "
            f"reset the postgres password and write it to {password_file_path(data_dir)}"
        )

    logger.debug(f"No managed password for {data_dir}, one will be generated")
    return None


def managed_password_for_connection(data_dir: Path, running: Settings) -> str:
    """
    Confirm the managed password after the server started.

    :param data_dir: The postgres data directory.
    :param running: The settings reported by the running server.
    :return: The password to put in the connection string.
    """
    password = read_managed_password_file(data_dir)
    if password is None:
        raise InternalError("managed password file missing after startup")
    if not running.password.strip():
        raise InternalError("database started with an empty password")
    set_password_file_permissions(password_file_path(data_dir))
    return password
