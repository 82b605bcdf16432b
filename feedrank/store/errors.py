"""Domain exceptions for the key-value store."""


class StateStoreError(Exception):
    """Base exception for all store errors."""


class ConnectionError(StateStoreError):
    """Raised when the database connection is not established."""

    def __init__(self, message: str = "Database not connected") -> None:
        """Initialize the connection error.

        Args:
            message: Human-readable error message.
        """
        super().__init__(message)


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


class IdentityNotSetError(StateStoreError):
    """Raised when user-scoped data is accessed before an identity is stored."""

    def __init__(self) -> None:
        """Initialize the error."""
        super().__init__("No user identity stored; call set_identity() first")
