"""
Configuration management for spot-resolver.

This module handles loading, validating, and providing access to the
application configuration stored in config.yaml.

The configuration file contains:
    - Spotify API credentials (client_id, client_secret), optional
    - Output directory holding the record database and logs
    - User preferences (default audio quality)
    - YouTube Music search options
    - Optional cookie file for yt-dlp

Configuration File Location:
    The config.yaml file is looked up in the current working directory
    unless an explicit path is given.

Environment:
    When the spotify section is missing, SPOTIFY_CLIENT_ID and
    SPOTIFY_CLIENT_SECRET are read from the environment (a .env file in
    the working directory is loaded first, if present).

Example config.yaml:
    spotify:
      client_id: "your_client_id_here"
      client_secret: "your_client_secret_here"

    output:
      directory: "~/Music/SpotResolver"

    preferences:
      audio_quality: 320

    youtube_music:
      language: "en"
      search_limit: 20

    youtube:
      cookie_file: null  # Optional: cookies.txt for age-restricted videos
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from spot_resolver.core.exceptions import ConfigError
from spot_resolver.core.models import DEFAULT_AUDIO_QUALITY, AudioQuality


# Default configuration file name (always in current working directory)
CONFIG_FILENAME = "config.yaml"

# Record database file name, created inside output.directory
DATABASE_FILENAME = "database.db"

DEFAULT_YTMUSIC_LANGUAGE = "en"
DEFAULT_SEARCH_LIMIT = 20


@dataclass(frozen=True)
class SpotifyConfig:
    """
    Spotify API credentials configuration.

    These credentials are obtained from the Spotify Developer Dashboard:
    https://developer.spotify.com/dashboard

    Attributes:
        client_id: The Spotify application client ID.
        client_secret: The Spotify application client secret.
    """
    client_id: str
    client_secret: str


@dataclass(frozen=True)
class OutputConfig:
    """
    Output directory configuration.

    Attributes:
        directory: Absolute path of the directory holding database.db and logs/.
                   Path expansion is performed (~ is expanded to home directory).
        database_path: Absolute path of the record database.
                       Defaults to {directory}/database.db.
    """
    directory: Path
    database_path: Path


@dataclass(frozen=True)
class PreferencesConfig:
    """
    User preferences.

    This is the read-only preference store consulted by the resolver
    when a caller does not pass an explicit quality.

    Attributes:
        audio_quality: Default preferred audio quality. Default: 160 kbps.
    """
    audio_quality: AudioQuality = DEFAULT_AUDIO_QUALITY


@dataclass(frozen=True)
class YouTubeMusicConfig:
    """
    YouTube Music search options.

    Attributes:
        language: Language passed to ytmusicapi. Default: "en".
        search_limit: Results requested per search filter. Default: 20.
    """
    language: str = DEFAULT_YTMUSIC_LANGUAGE
    search_limit: int = DEFAULT_SEARCH_LIMIT


@dataclass(frozen=True)
class YouTubeConfig:
    """
    yt-dlp options for YouTube metadata and stream extraction.

    Attributes:
        cookie_file: Optional path to a cookies.txt file exported from browser.
                     Needed for age-restricted or members-only videos.
                     Can be exported using a browser extension like
                     "Get cookies.txt".
    """
    cookie_file: Path | None = None


@dataclass(frozen=True)
class Config:
    """
    Complete application configuration.

    Created by load_config() and immutable (frozen dataclass).

    Attributes:
        spotify: Spotify credentials, or None if not configured.
                 Spotify links fail with an auth error without them.
        output: Output directory settings.
        preferences: User preferences.
        youtube_music: YouTube Music search settings.
        youtube: yt-dlp settings.
    """
    spotify: SpotifyConfig | None
    output: OutputConfig
    preferences: PreferencesConfig
    youtube_music: YouTubeMusicConfig
    youtube: YouTubeConfig = field(default_factory=YouTubeConfig)


def load_config(config_path: Path | None = None) -> Config:
    """
    Load and validate configuration from config.yaml.

    Args:
        config_path: Optional explicit path to config file.
                     If None, looks for config.yaml in current working directory.

    Returns:
        Config: A frozen dataclass containing all configuration values.

    Raises:
        ConfigError: If the config file is not found, has invalid YAML syntax,
                     is missing required fields, or contains invalid values.

    Behavior:
        1. Locate config file (explicit path or CWD/config.yaml)
        2. Read and parse YAML content
        3. Validate structure (required sections exist)
        4. Parse spotify credentials (falling back to the environment)
        5. Validate and expand output directory path
        6. Parse preferences, youtube_music and youtube sections with defaults
        7. Create and return frozen Config object
    """
    if config_path is None:
        config_path = Path.cwd() / CONFIG_FILENAME

    if not config_path.exists():
        raise ConfigError(
            f"Configuration file not found: {config_path}",
            details={"file_path": str(config_path)}
        )

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            content = f.read()
    except IOError as e:
        raise ConfigError(
            f"Failed to read configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    try:
        raw_config = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML syntax in configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    if not isinstance(raw_config, dict):
        raise ConfigError(
            "Configuration file must contain a YAML dictionary",
            details={"file_path": str(config_path)}
        )

    _validate_config(raw_config)

    return Config(
        spotify=_parse_spotify_config(raw_config.get("spotify")),
        output=_parse_output_config(raw_config["output"]),
        preferences=_parse_preferences_config(raw_config.get("preferences")),
        youtube_music=_parse_youtube_music_config(raw_config.get("youtube_music")),
        youtube=_parse_youtube_config(raw_config.get("youtube")),
    )


def _validate_config(raw_config: dict[str, Any]) -> None:
    """
    Validate the raw configuration dictionary structure.

    Raises:
        ConfigError: If 'output' is missing, or any present section is
                     not a dictionary.
    """
    if "output" not in raw_config:
        raise ConfigError(
            "Missing required section: 'output'",
            details={"missing_section": "output"}
        )

    for section in ("spotify", "output", "preferences", "youtube_music", "youtube"):
        value = raw_config.get(section)
        if value is not None and not isinstance(value, dict):
            raise ConfigError(
                f"Section '{section}' must be a dictionary",
                details={"section": section}
            )


def _parse_spotify_config(spotify_section: dict[str, Any] | None) -> SpotifyConfig | None:
    """
    Parse the Spotify configuration section.

    When the section is absent, credentials are taken from the
    SPOTIFY_CLIENT_ID / SPOTIFY_CLIENT_SECRET environment variables.
    Returns None if neither source provides them.

    Raises:
        ConfigError: If the section is present but client_id or
                     client_secret is missing or empty.
    """
    if spotify_section is None:
        load_dotenv()
        client_id = os.getenv("SPOTIFY_CLIENT_ID", "").strip()
        client_secret = os.getenv("SPOTIFY_CLIENT_SECRET", "").strip()
        if client_id and client_secret:
            return SpotifyConfig(client_id=client_id, client_secret=client_secret)
        return None

    client_id = spotify_section.get("client_id", "")
    client_secret = spotify_section.get("client_secret", "")

    if not isinstance(client_id, str) or not client_id.strip():
        raise ConfigError(
            "'spotify.client_id' must be a non-empty string",
            details={"field": "spotify.client_id"}
        )

    if not isinstance(client_secret, str) or not client_secret.strip():
        raise ConfigError(
            "'spotify.client_secret' must be a non-empty string",
            details={"field": "spotify.client_secret"}
        )

    return SpotifyConfig(
        client_id=client_id.strip(),
        client_secret=client_secret.strip()
    )


def _parse_output_config(output_section: dict[str, Any]) -> OutputConfig:
    """
    Parse and validate the output configuration section.

    Expands ~ to home directory and converts to absolute Path.
    Does NOT create the directory.

    Raises:
        ConfigError: If directory is missing or empty.
    """
    directory = output_section.get("directory", "")

    if not isinstance(directory, str) or not directory.strip():
        raise ConfigError(
            "'output.directory' must be a non-empty string",
            details={"field": "output.directory"}
        )

    path = Path(directory.strip()).expanduser().resolve()

    database_raw = output_section.get("database")
    if database_raw is not None:
        if not isinstance(database_raw, str) or not database_raw.strip():
            raise ConfigError(
                "'output.database' must be a non-empty string",
                details={"field": "output.database"}
            )
        database_path = Path(database_raw.strip()).expanduser().resolve()
    else:
        database_path = path / DATABASE_FILENAME

    return OutputConfig(directory=path, database_path=database_path)


def _parse_preferences_config(section: dict[str, Any] | None) -> PreferencesConfig:
    """
    Parse the preferences section, applying defaults.

    Raises:
        ConfigError: If audio_quality is not a known bitrate.
    """
    if section is None or section.get("audio_quality") is None:
        return PreferencesConfig()

    raw_quality = section["audio_quality"]
    try:
        quality = AudioQuality.from_value(raw_quality)
    except ValueError as e:
        allowed = ", ".join(q.value for q in AudioQuality if q is not AudioQuality.UNKNOWN)
        raise ConfigError(
            f"'preferences.audio_quality' must be one of {allowed}",
            details={"field": "preferences.audio_quality", "value": raw_quality}
        ) from e

    return PreferencesConfig(audio_quality=quality)


def _parse_youtube_music_config(section: dict[str, Any] | None) -> YouTubeMusicConfig:
    """
    Parse the youtube_music section, applying defaults.

    Raises:
        ConfigError: If language is not a non-empty string or search_limit
                     is not a positive integer.
    """
    if section is None:
        return YouTubeMusicConfig()

    language = section.get("language", DEFAULT_YTMUSIC_LANGUAGE)
    if not isinstance(language, str) or not language.strip():
        raise ConfigError(
            "'youtube_music.language' must be a non-empty string",
            details={"field": "youtube_music.language"}
        )

    search_limit = section.get("search_limit", DEFAULT_SEARCH_LIMIT)
    if isinstance(search_limit, bool) or not isinstance(search_limit, int) or search_limit < 1:
        raise ConfigError(
            "'youtube_music.search_limit' must be a positive integer",
            details={"field": "youtube_music.search_limit", "value": search_limit}
        )

    return YouTubeMusicConfig(language=language.strip(), search_limit=search_limit)


def _parse_youtube_config(section: dict[str, Any] | None) -> YouTubeConfig:
    """
    Parse the youtube section.

    Raises:
        ConfigError: If cookie_file is not a string, or points at a file
                     that doesn't exist.
    """
    if section is None or section.get("cookie_file") is None:
        return YouTubeConfig()

    raw_cookie = section["cookie_file"]
    if not isinstance(raw_cookie, str) or not raw_cookie.strip():
        raise ConfigError(
            "'youtube.cookie_file' must be a string path or null",
            details={"field": "youtube.cookie_file"}
        )

    cookie_path = Path(raw_cookie.strip()).expanduser().resolve()
    if not cookie_path.exists():
        raise ConfigError(
            f"Cookie file not found: {cookie_path}",
            details={"field": "youtube.cookie_file", "path": str(cookie_path)}
        )

    return YouTubeConfig(cookie_file=cookie_path)
