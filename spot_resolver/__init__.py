"""
spot-resolver: Resolve music links and find playable download links.

This package turns a Spotify, YouTube, JioSaavn or Gaana link into a
structured PlatformQueryResult, and resolves single tracks into playable
URLs by trying several providers in priority order.

Architecture:
    QUERY (query/service.py): Link to collection
        - Classify the link by platform
        - Dispatch to the matching provider
        - Record successful results in the background (SQLite)

    RESOLVE (query/resolver.py): Track to download link
        - Fast path for tracks that already carry a JioSaavn or YouTube id
        - Fallback to JioSaavn search, then YouTube Music search
        - Every failed stage is kept in a DiagnosticTrace

Modules:
    core/       - Configuration, database, logging, exceptions, models
    providers/  - Provider contracts and Spotify/YouTube/YouTube Music adapters
    query/      - Classifier, resolver, recorder and query facade

Usage:
    from spot_resolver import build_service, load_config, setup_logging

    config = load_config()
    setup_logging(config.output.directory)

    async with build_service(config, saavn=saavn, gaana=gaana) as service:
        await service.authenticate()
        outcome = await service.query("https://open.spotify.com/album/...")
        for track in outcome.unwrap().track_list:
            link = await service.find_best_download_link(track)

Configuration:
    Reads a config.yaml file in the current directory:

        spotify:
          client_id: "your_client_id"
          client_secret: "your_client_secret"

        output:
          directory: "~/Music/SpotResolver"

        preferences:
          audio_quality: 320

Dependencies:
    - spotipy: Spotify API client
    - ytmusicapi: YouTube Music API client
    - yt-dlp: YouTube metadata and stream extraction
    - rapidfuzz: Fuzzy string matching
    - tqdm: Progress-bar safe console logging
    - pyyaml: Configuration file parsing
    - python-dotenv: Spotify credentials from .env
"""

__version__ = "0.1.0"
__author__ = "spot-resolver"
__license__ = "MIT"

# Convenience imports for common usage
from spot_resolver.core import (
    AudioQuality,
    Config,
    ConfigError,
    Database,
    DatabaseError,
    DiagnosticTrace,
    DownloadLinkFetchError,
    FolderType,
    LinkInvalidError,
    Outcome,
    PlatformQueryResult,
    ProviderError,
    Source,
    SpotResolverError,
    TrackDetails,
    get_logger,
    load_config,
    setup_logging,
)
from spot_resolver.query import (
    DownloadLinkResolver,
    PlatformQueryService,
    ResultRecorder,
    build_service,
    classify_link,
)

__all__ = [
    # Version
    "__version__",
    # Core
    "Config",
    "load_config",
    "Database",
    "setup_logging",
    "get_logger",
    # Exceptions
    "SpotResolverError",
    "ConfigError",
    "DatabaseError",
    "LinkInvalidError",
    "ProviderError",
    "DownloadLinkFetchError",
    # Models
    "AudioQuality",
    "FolderType",
    "PlatformQueryResult",
    "Source",
    "TrackDetails",
    "Outcome",
    "DiagnosticTrace",
    # Query
    "classify_link",
    "DownloadLinkResolver",
    "ResultRecorder",
    "PlatformQueryService",
    "build_service",
]
