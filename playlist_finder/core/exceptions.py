"""
Exception classes for playlist-finder.

This module defines all custom exceptions used throughout the application.
Each exception carries a human-readable message plus an optional details
dictionary, so callers can log context without parsing strings.

Exception Hierarchy:
    PlaylistFinderError (base)
        ConfigError - Configuration file issues
        DatabaseError - Snapshot store (SQLite) issues
            StorageQuotaError - Write rejected because the store is full
        SpotifyError - Spotify Web API issues
        SyncCancelled - A sync run was superseded by a resync
"""


class PlaylistFinderError(Exception):
    """
    Base exception for all playlist-finder errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (ids, status codes).

    Example:
        try:
            orchestrator.begin_sync(token)
        except PlaylistFinderError as e:
            logger.error(f"Sync failed: {e.message}")
            if e.details:
                logger.debug(f"Details: {e.details}")
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error description that will be shown to the user.
            details: Optional dictionary containing additional context about the error.
                     Common keys include:
                     - 'container_id': Playlist ID involved in the error
                     - 'http_status': HTTP status returned by Spotify
                     - 'original_error': The underlying exception if wrapping another error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigError(PlaylistFinderError):
    """
    Raised when there's an issue with the configuration file.

    This is a CRITICAL error that should stop program execution.

    Common causes:
        - config.yaml not found
        - config.yaml has invalid YAML syntax
        - Required fields missing (client_id, client_secret, output directory)
        - Invalid field values (e.g., negative cooldown)
    """
    pass


class DatabaseError(PlaylistFinderError):
    """
    Raised when the snapshot store cannot be read or written.

    The snapshot store is only a cache: callers in the sync pipeline
    downgrade this error to a warning and keep going without persistence.
    It is CRITICAL only when the store cannot be opened at all.
    """
    pass


class StorageQuotaError(DatabaseError):
    """
    Raised when a write would push the snapshot store over its byte quota.

    The rejected write leaves the store unchanged. The snapshot cache reacts
    by evicting the current user's entries and retrying once.

    Example:
        raise StorageQuotaError(
            "Snapshot store quota exceeded",
            details={'quota_bytes': 5242880, 'required_bytes': 5300000}
        )
    """
    pass


class SpotifyError(PlaylistFinderError):
    """
    Raised when there's an issue with the Spotify Web API.

    Can be CRITICAL (auth failure) or NON-CRITICAL (a single playlist
    failing to load).

    Attributes:
        is_auth_error: True if the bearer credential was rejected (401).
                       The credential must be refreshed and the whole
                       operation resubmitted.
        is_rate_limit: True if throttling retries were exhausted.
                       Normally throttling never escapes the executor.
        is_not_found: True if the resource does not exist (404).
        http_status: The HTTP status code, or None for transport failures.
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        is_auth_error: bool = False,
        is_rate_limit: bool = False,
        is_not_found: bool = False,
        http_status: int | None = None
    ) -> None:
        """
        Initialize Spotify error with classification flags.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional context.
            is_auth_error: Set to True for 401 responses.
            is_rate_limit: Set to True when throttling retries ran out.
            is_not_found: Set to True for 404 responses.
            http_status: HTTP status code of the failed response.
        """
        super().__init__(message, details)
        self.is_auth_error = is_auth_error
        self.is_rate_limit = is_rate_limit
        self.is_not_found = is_not_found
        self.http_status = http_status


class SyncCancelled(PlaylistFinderError):
    """
    Raised inside a sync run that has been superseded by a resync.

    Only the orchestrator catches this; it means "stop quietly, a newer
    run owns the state now".
    """
    pass
