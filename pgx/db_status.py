from __future__ import annotations

import enum


class Status(enum.Enum):
    """
    The status of a postgres server.
    """

    NOT_INITIALIZED = "not initialized"
    STOPPED = "stopped"
    STARTED = "started"
