from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping

from .errors import ConfigurationError

logger = logging.getLogger(__name__)

DATA_DIR_ENV = "PGX_DATA_DIR"


def resolve_data_dir(
    cli_value: Path | None, environ: Mapping[str, str] | None = None
) -> Path:
    """
    Resolve the data directory for this invocation.

    ``PGX_DATA_DIR`` wins over ``--data-dir``; a conflicting flag is ignored
    with a warning.

    :param cli_value: The value of ``--data-dir``, if given.
    :param environ: The environment to read, defaults to ``os.environ``.
    :return: The data directory.
    """
    if environ is None:
        environ = os.environ

    env_value = environ.get(DATA_DIR_ENV)
    if env_value is not None:
        if not env_value:
            raise ConfigurationError(f"{DATA_DIR_ENV} is set but empty")
        env_dir = Path(env_value)
        if cli_value is not None and Path(cli_value) != env_dir:
            logger.warning(
                f"Ignoring --data-dir {cli_value} because {DATA_DIR_ENV}={env_dir} is set"
            )
        return env_dir

    if cli_value is not None:
        return Path(cli_value)

    raise ConfigurationError(
        f"no data directory given: pass --data-dir or set {DATA_DIR_ENV}"
    )
