"""
Core module for spot-resolver.

This module provides the foundational components used throughout the application:
    - exceptions: Custom exception classes for error handling
    - models: Track, query result and enum types shared by all providers
    - outcome: Success/failure result type returned instead of raising
    - trace: Diagnostic trace accumulated while resolving download links
    - config: Configuration loading and validation
    - database: Thread-safe SQLite record store
    - logger: Logging system with multiple outputs

Usage:
    from spot_resolver.core import (
        Config, load_config,
        Database,
        setup_logging, get_logger,
        Outcome, TrackDetails,
    )
"""

from spot_resolver.core.config import (
    Config,
    OutputConfig,
    PreferencesConfig,
    SpotifyConfig,
    YouTubeConfig,
    YouTubeMusicConfig,
    load_config,
)
from spot_resolver.core.database import Database
from spot_resolver.core.exceptions import (
    ConfigError,
    DatabaseError,
    DownloadLinkFetchError,
    ExtractionError,
    GaanaError,
    LinkInvalidError,
    ProviderError,
    SaavnError,
    SpotifyError,
    SpotResolverError,
    YouTubeError,
)
from spot_resolver.core.logger import (
    get_logger,
    log_download_link_failure,
    setup_logging,
    shutdown_logging,
)
from spot_resolver.core.models import (
    AudioQuality,
    FolderType,
    PlatformQueryResult,
    SongInfo,
    Source,
    TrackDetails,
)
from spot_resolver.core.outcome import Outcome
from spot_resolver.core.trace import DiagnosticTrace, TraceEntry, describe_error

__all__ = [
    # Config
    "Config",
    "SpotifyConfig",
    "OutputConfig",
    "PreferencesConfig",
    "YouTubeMusicConfig",
    "YouTubeConfig",
    "load_config",
    # Database
    "Database",
    # Exceptions
    "SpotResolverError",
    "ConfigError",
    "DatabaseError",
    "LinkInvalidError",
    "ProviderError",
    "SpotifyError",
    "YouTubeError",
    "SaavnError",
    "GaanaError",
    "ExtractionError",
    "DownloadLinkFetchError",
    # Logger
    "setup_logging",
    "get_logger",
    "log_download_link_failure",
    "shutdown_logging",
    # Models
    "AudioQuality",
    "FolderType",
    "PlatformQueryResult",
    "SongInfo",
    "Source",
    "TrackDetails",
    # Outcome / trace
    "Outcome",
    "DiagnosticTrace",
    "TraceEntry",
    "describe_error",
]
