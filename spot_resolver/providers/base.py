"""
Collaborator contracts used by the query service and the resolver.

Providers are structural: anything with the right coroutine methods can
be passed in, including test doubles. SpotifyProvider, YoutubeProvider
and YoutubeMusicSearch in this package implement the Spotify, YouTube and
YouTube Music contracts; JioSaavn, Gaana and mp3 extraction services are
supplied by the caller.

Every coroutine returns an Outcome instead of raising for expected
failures (network errors, not found). The resolver still guards against
implementations that raise, but the query service passes provider
outcomes through unchanged.
"""

from typing import Protocol, runtime_checkable

from spot_resolver.core.models import (
    AudioQuality,
    FolderType,
    PlatformQueryResult,
    SongInfo,
    TrackDetails,
)
from spot_resolver.core.outcome import Outcome


@runtime_checkable
class PlatformProvider(Protocol):
    """Resolves a link on one platform into a PlatformQueryResult."""

    async def query(self, link: str) -> Outcome[PlatformQueryResult]:
        ...


@runtime_checkable
class SpotifyProviderProtocol(PlatformProvider, Protocol):
    async def authenticate(self) -> None:
        """Authenticate the client. Idempotent; later calls are no-ops."""
        ...


@runtime_checkable
class YoutubeProviderProtocol(PlatformProvider, Protocol):
    async def get_video_stream_url(self, video_id: str) -> str | None:
        """Extract a playable stream URL locally, None if unavailable."""
        ...


@runtime_checkable
class SaavnProviderProtocol(PlatformProvider, Protocol):
    async def get_song_by_id(self, song_id: str) -> Outcome[SongInfo]:
        ...

    async def find_best_song_download_url(
        self,
        title: str,
        artists: tuple[str, ...],
        preferred_quality: AudioQuality
    ) -> Outcome[str]:
        """Search by title and artists and pick the best match's media URL."""
        ...


GaanaProviderProtocol = PlatformProvider


@runtime_checkable
class YoutubeMusicSearchProtocol(Protocol):
    async def find_best_download_url(
        self,
        track: TrackDetails,
        preferred_quality: AudioQuality
    ) -> Outcome[str]:
        ...


@runtime_checkable
class Mp3Extractor(Protocol):
    """
    Dedicated mp3 extraction service for YouTube videos.

    A successful outcome may still carry a blank string; callers treat
    that as a failure.
    """

    async def get_download_link(
        self,
        video_id: str,
        preferred_quality: AudioQuality
    ) -> Outcome[str]:
        ...


@runtime_checkable
class RecordStore(Protocol):
    """Persistent store written by the ResultRecorder. Blocking."""

    def add_record(
        self,
        folder_type: FolderType,
        name: str,
        link: str,
        cover_url: str | None,
        total_files: int
    ) -> None:
        ...


@runtime_checkable
class PreferenceStore(Protocol):
    """Read-only access to the user's default audio quality."""

    @property
    def audio_quality(self) -> AudioQuality:
        ...
