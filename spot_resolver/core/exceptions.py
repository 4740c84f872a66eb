"""
Exception classes for spot-resolver.

This module defines all custom exceptions used throughout the application.
Provider and resolver operations do not raise these for expected failures;
they return them inside a failed Outcome (see core/outcome.py). Only
configuration and database errors are raised directly, since those stop
the program before any query can run.

Exception Hierarchy:
    SpotResolverError (base)
        ConfigError - Configuration file issues
        DatabaseError - SQLite record store issues
        LinkInvalidError - Link does not belong to any supported platform
        ProviderError - A provider failed to answer a query
            SpotifyError - Spotify API issues
            YouTubeError - YouTube / YouTube Music issues
            SaavnError - JioSaavn issues
            GaanaError - Gaana issues
            ExtractionError - mp3 extraction service issues
        DownloadLinkFetchError - Every download-link source failed
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from spot_resolver.core.trace import DiagnosticTrace


class SpotResolverError(Exception):
    """
    Base exception for all spot-resolver errors.

    All custom exceptions in this project inherit from this class,
    allowing callers to catch all spot-resolver errors with a single
    except clause if desired.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context (e.g., link, video id).

    Example:
        outcome = await service.query(link)
        if outcome.failed:
            logger.error(f"Query failed: {outcome.error.message}")
            if outcome.error.details:
                logger.debug(f"Details: {outcome.error.details}")
    """

    def __init__(self, message: str, details: dict | None = None) -> None:
        """
        Initialize the base exception.

        Args:
            message: Human-readable error description that will be shown to the user.
            details: Optional dictionary containing additional context about the error.
                     Useful for logging and debugging. Common keys include:
                     - 'link': Link that caused the error
                     - 'video_id': Provider identifier involved in the error
                     - 'original_error': The underlying exception if wrapping another error
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return the error message for display."""
        return self.message


class ConfigError(SpotResolverError):
    """
    Raised when there's an issue with the configuration file.

    This is a CRITICAL error that should stop program execution.

    Common causes:
        - config.yaml not found
        - config.yaml has invalid YAML syntax
        - Required fields missing (output.directory)
        - Invalid field values (e.g., unknown audio quality)

    Example:
        raise ConfigError(
            "'preferences.audio_quality' must be one of 128, 160, 192, 224, 256, 320",
            details={'field': 'preferences.audio_quality', 'value': 999}
        )
    """
    pass


class DatabaseError(SpotResolverError):
    """
    Raised when there's an issue with the SQLite record store.

    Common causes:
        - Parent directory of database.db does not exist
        - Permission denied when reading/writing
        - Schema version mismatch

    Note:
        Raised from Database directly. When it happens inside the
        background recorder it is logged and never reaches the caller.
    """
    pass


class LinkInvalidError(SpotResolverError):
    """
    Returned when a link does not match any supported platform.

    Attributes:
        link: The original link text, unchanged.
    """

    def __init__(self, link: str) -> None:
        super().__init__(
            f"Link is not a Spotify, YouTube, JioSaavn or Gaana link: {link}",
            details={"link": link}
        )
        self.link = link


class ProviderError(SpotResolverError):
    """
    Base class for failures reported by a provider client.

    The query service hands these back to the caller exactly as the
    provider produced them; it never wraps or reinterprets them.
    """
    pass


class SpotifyError(ProviderError):
    """
    Returned when there's an issue with the Spotify API.

    Common causes:
        - Client not authenticated yet (call authenticate() first)
        - Invalid or expired credentials
        - Rate limiting
        - Track/album/playlist not found or private

    Attributes:
        is_auth_error: True if this is an authentication error.
        is_rate_limit: True if this is a rate limit error (may retry).

    Example:
        SpotifyError(
            "Failed to fetch playlist: playlist is private",
            details={'link': url, 'http_status': 403}
        )
    """

    def __init__(
        self,
        message: str,
        details: dict | None = None,
        is_auth_error: bool = False,
        is_rate_limit: bool = False
    ) -> None:
        """
        Initialize Spotify error with additional flags.

        Args:
            message: Human-readable error description.
            details: Optional dictionary with additional context.
            is_auth_error: Set to True if this is an authentication failure.
            is_rate_limit: Set to True if this is a rate limit error.
        """
        super().__init__(message, details)
        self.is_auth_error = is_auth_error
        self.is_rate_limit = is_rate_limit


class YouTubeError(ProviderError):
    """
    Returned when YouTube extraction or YouTube Music search fails.

    Common causes:
        - No matching song found for a track
        - Video is region-locked, private or removed
        - yt-dlp extraction failed
        - Network connectivity issues
    """
    pass


class SaavnError(ProviderError):
    """Returned by JioSaavn provider implementations."""
    pass


class GaanaError(ProviderError):
    """Returned by Gaana provider implementations."""
    pass


class ExtractionError(ProviderError):
    """Returned by mp3 extraction service implementations."""
    pass


class DownloadLinkFetchError(SpotResolverError):
    """
    Returned when no source could produce a download link for a track.

    Unlike the other errors, the interesting part is not the message but
    the trace: one entry per stage that was attempted, in order, with the
    reason it failed.

    Attributes:
        trace: The DiagnosticTrace accumulated during resolution.

    Example:
        outcome = await resolver.find_best_download_link(track)
        if outcome.failed:
            for entry in outcome.error.trace:
                print(entry.stage, entry.outcome)
    """

    def __init__(self, trace: "DiagnosticTrace", details: dict | None = None) -> None:
        super().__init__("Could not fetch a download link", details)
        self.trace = trace

    def __str__(self) -> str:
        rendered = self.trace.render()
        if not rendered:
            return self.message
        return f"{self.message}:\n{rendered}"
