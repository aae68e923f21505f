from __future__ import annotations

from pathlib import Path

FALLBACK_BASE_NAME = "pgx-data"
STATE_SUFFIX = "pgx-state.json"
PASSWORD_SUFFIX = "pgx-password"


def sidecar_file_path(data_dir: Path, suffix: str) -> Path:
    """
    Get the path of a file that lives beside the data directory.

    :param data_dir: The postgres data directory.
    :param suffix: The suffix appended to the data directory's name.
    :return: ``<parent>/<name>.<suffix>``
    """
    base = data_dir.name or FALLBACK_BASE_NAME
    parent = data_dir.parent
    if parent == data_dir:
        # a filesystem root has no parent
        parent = Path(".")
    return parent / f"{base}.{suffix}"


def state_file_path(data_dir: Path) -> Path:
    return sidecar_file_path(data_dir, STATE_SUFFIX)


def password_file_path(data_dir: Path) -> Path:
    return sidecar_file_path(data_dir, PASSWORD_SUFFIX)
