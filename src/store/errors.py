"""Domain exceptions for the digest store.

Storage errors are hard failures of the whole operation: the store rolls
back and re-raises rather than reporting partial success.
"""


class StateStoreError(Exception):
    """Base exception for all digest store errors."""


class ConnectionError(StateStoreError):
    """Raised when the database connection is not established."""

    def __init__(self, message: str = "Database not connected") -> None:
        """Initialize the connection error.

        Args:
            message: Human-readable error message.
        """
        super().__init__(message)


class RunNotFoundError(StateStoreError):
    """Raised when a requested run record is not found."""

    def __init__(self, run_id: str) -> None:
        """Initialize the error with the missing run ID.

        Args:
            run_id: The run ID that was not found.
        """
        self.run_id = run_id
        super().__init__(f"Run not found: {run_id}")


class MigrationError(StateStoreError):
    """Raised when a schema migration fails."""

    def __init__(self, version: int, message: str) -> None:
        """Initialize the migration error.

        Args:
            version: The migration version that failed.
            message: Human-readable error message.
        """
        self.version = version
        super().__init__(f"Migration {version} failed: {message}")
