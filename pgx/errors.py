from __future__ import annotations

METADATA_UNAVAILABLE = (
    "connection details unavailable (missing state or password metadata)"
)


class PgxError(Exception):
    """
    Base class for errors surfaced to the pgx command line.
    """

    pass


class ConfigurationError(PgxError):
    """
    The data directory could not be resolved.
    """

    pass


class ConflictError(PgxError):
    """
    A server is already running for the requested data directory.
    """

    pass


class IntegrityError(PgxError):
    """
    An initialized cluster has no managed password on disk.
    """

    pass


class UnavailableMetadataError(PgxError):
    """
    The state or password sidecar is missing or unreadable.
    """

    def __init__(self, message: str = METADATA_UNAVAILABLE):
        super().__init__(message)


class NotRunningError(PgxError):
    pass


class InternalError(PgxError):
    """
    The server controller violated a postcondition after startup.
    """

    pass


class StateFileError(PgxError):
    pass


class PostgresNotFoundError(PgxError):
    pass


class SecretFileError(PgxError):
    pass
