"""
Exception classes for spot-rotator.

Every failure in a rotation run is fatal for that run: errors are raised
where they are detected and propagate unchanged to the CLI, which logs them
and exits with a distinct code. Nothing in the engine retries.

Exception Hierarchy:
    RotatorError (base)
        ConfigError - Configuration file issues
        SpotifyError - Catalog transport or authorization failures
        CacheError - Malformed or unwritable cache files
        SummaryError - Malformed data while summarizing a playlist
        InsufficientTracksError - Sampling more tracks than available
        ReconcileError - A batched playlist mutation failed part way
"""


class RotatorError(Exception):
    """
    Base exception for all spot-rotator errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (playlist IDs,
                 file paths, the wrapped error).

    Example:
        try:
            generator.run(options)
        except RotatorError as e:
            logger.error(f"Rotation failed: {e.message}")
            if e.details:
                logger.debug(f"Details: {e.details}")
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error description shown to the user.
            details: Optional dictionary containing additional context.
                     Common keys: 'playlist_id', 'path', 'original_error'.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigError(RotatorError):
    """
    Raised when there's an issue with the configuration file.

    Common causes:
        - config.yaml not found or not valid YAML
        - Spotify credentials missing from both config.yaml and environment
        - Invalid field values (e.g., negative sample size)
    """
    pass


class SpotifyError(RotatorError):
    """
    Raised when a Spotify Web API call fails.

    Transport, authorization and rate limit failures are all fatal for the
    current run. The flags only exist so the CLI can print a useful hint.

    Attributes:
        is_auth_error: True for 401/403 responses or OAuth failures.
        is_rate_limit: True for 429 responses that spotipy gave up retrying.
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        is_auth_error: bool = False,
        is_rate_limit: bool = False
    ) -> None:
        super().__init__(message, details)
        self.is_auth_error = is_auth_error
        self.is_rate_limit = is_rate_limit


class CacheError(RotatorError):
    """
    Raised when a cache file cannot be decoded or written.

    A corrupt cache file is never silently replaced by a refetch: the data it
    held may be the only record of a playlist's last known contents.

    Example:
        raise CacheError(
            "Cache file corrupted: invalid JSON",
            details={'path': '/home/me/.cache/spot-rotator/playlist-abc.json'}
        )
    """
    pass


class SummaryError(RotatorError):
    """
    Raised when a playlist cannot be summarized.

    The only known cause is a track whose 'added_at' timestamp does not use
    the fixed catalog format (YYYY-MM-DDTHH:MM:SSZ).
    """
    pass


class InsufficientTracksError(RotatorError):
    """
    Raised when asked to sample more tracks than the sampling universe holds.

    A rotation never silently under-fills its target playlist.

    Attributes:
        requested: Number of tracks asked for.
        available: Number of tracks that could be drawn from.
    """

    def __init__(self, requested: int, available: int) -> None:
        super().__init__(
            f"Not enough tracks to sample from: requested {requested}, "
            f"only {available} available",
            details={"requested": requested, "available": available}
        )
        self.requested = requested
        self.available = available


class ReconcileError(RotatorError):
    """
    Raised when a batched add or remove against the target playlist fails.

    Batches applied before the failing one stay applied on Spotify; there is
    no rollback.

    Attributes:
        applied_batches: Number of batches that succeeded before the failure.
    """

    def __init__(
        self,
        message: str,
        applied_batches: int,
        details: dict | None = None
    ) -> None:
        details = dict(details or {})
        details["applied_batches"] = applied_batches
        super().__init__(message, details)
        self.applied_batches = applied_batches
