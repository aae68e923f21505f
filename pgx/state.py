from __future__ import annotations

import dataclasses
import json
import logging
import os
import tempfile
from pathlib import Path

from .errors import StateFileError
from .sidecar import state_file_path

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class StateFile:
    """
    The last known bind address of a started server.
    """

    host: str
    port: int

    def to_json(self) -> str:
        return json.dumps({"port": self.port, "host": self.host}, indent=2)

    @classmethod
    def from_json(cls, raw: str) -> StateFile:
        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise StateFileError(f"malformed state file: {e}") from e
        if not isinstance(data, dict):
            raise StateFileError("malformed state file: expected a JSON object")

        host = data.get("host")
        port = data.get("port")
        if not isinstance(host, str):
            raise StateFileError("malformed state file: 'host' must be a string")
        if isinstance(port, bool) or not isinstance(port, int) or not 0 <= port <= 65535:
            raise StateFileError("malformed state file: 'port' must be a port number")
        return cls(host=host, port=port)


def read_state_file(data_dir: Path) -> StateFile | None:
    """
    Read the state file of a data directory.

    :param data_dir: The postgres data directory.
    :return: The recorded state, or None if it was never written or is blank.
    """
    path = state_file_path(data_dir)
    if not path.exists():
        return None
    try:
        raw = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise StateFileError(f"malformed state file {path}: {e}") from e
    if not raw.strip():
        return None
    return StateFile.from_json(raw)


def write_state_file(data_dir: Path, state: StateFile) -> None:
    """
    Atomically replace the state file of a data directory.

    :param data_dir: The postgres data directory.
    :param state: The state of the running server.
    """
    path = state_file_path(data_dir)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(state.to_json())
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    logger.debug(f"Wrote state {state} to {path}")
