"""
Provider clients for spot-resolver.

This module defines the collaborator contracts and the adapters built on
the libraries in the dependency stack.

Components:
    - base: typing.Protocol contracts for every collaborator
    - SpotifyProvider: Spotify metadata via spotipy
    - YoutubeProvider: YouTube metadata and local stream extraction via yt-dlp
    - YoutubeMusicSearch: YouTube Music matching via ytmusicapi + rapidfuzz

JioSaavn, Gaana and mp3 extraction services have no adapter here; pass
any object satisfying the matching protocol.

Usage:
    from spot_resolver.providers import SpotifyProvider, YoutubeProvider

    spotify = SpotifyProvider(client_id, client_secret)
    youtube = YoutubeProvider()
"""

from spot_resolver.providers.base import (
    GaanaProviderProtocol,
    Mp3Extractor,
    PlatformProvider,
    PreferenceStore,
    RecordStore,
    SaavnProviderProtocol,
    SpotifyProviderProtocol,
    YoutubeMusicSearchProtocol,
    YoutubeProviderProtocol,
)
from spot_resolver.providers.spotify import SpotifyProvider, parse_spotify_link
from spot_resolver.providers.youtube import YoutubeProvider
from spot_resolver.providers.youtube_music import YouTubeMusicResult, YoutubeMusicSearch

__all__ = [
    # Protocols
    "PlatformProvider",
    "SpotifyProviderProtocol",
    "YoutubeProviderProtocol",
    "SaavnProviderProtocol",
    "GaanaProviderProtocol",
    "YoutubeMusicSearchProtocol",
    "Mp3Extractor",
    "RecordStore",
    "PreferenceStore",
    # Adapters
    "SpotifyProvider",
    "parse_spotify_link",
    "YoutubeProvider",
    "YoutubeMusicSearch",
    "YouTubeMusicResult",
]
