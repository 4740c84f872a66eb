"""
Data models shared by providers, the resolver and the query service.

Design Decisions:
    - TrackDetails is frozen (immutable); the resolver only ever reads it
    - PlatformQueryResult is a plain mutable dataclass because callers are
      free to edit the track list they get back; copy() gives the recorder
      an independent snapshot so those edits never reach the record store
    - Factory classmethods build models from raw provider responses, so
      the provider adapters stay thin

Usage:
    from spot_resolver.core.models import TrackDetails, Source

    track = TrackDetails(
        title="Kesariya",
        artists=("Arijit Singh",),
        source=Source.JIO_SAAVN,
        video_id="abc123",
    )
"""

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Source(Enum):
    """Provider a TrackDetails came from."""

    SPOTIFY = "spotify"
    YOUTUBE = "youtube"
    JIO_SAAVN = "jiosaavn"
    GAANA = "gaana"
    UNKNOWN = "unknown"


class FolderType(Enum):
    """Kind of collection a link resolved to. Values are display/folder names."""

    ALBUM = "Albums"
    PLAYLIST = "Playlists"
    TRACK = "Tracks"
    CHANNEL = "YT Channels"


class AudioQuality(Enum):
    """
    Preferred audio bitrate.

    The value is the bitrate in kbps as a string, which is also how the
    quality is written in config.yaml and passed to extraction services.
    UNKNOWN means "whatever the provider offers".
    """

    KBPS128 = "128"
    KBPS160 = "160"
    KBPS192 = "192"
    KBPS224 = "224"
    KBPS256 = "256"
    KBPS320 = "320"
    UNKNOWN = "unknown"

    @property
    def kbps(self) -> int | None:
        """Bitrate as an integer, or None for UNKNOWN."""
        if self is AudioQuality.UNKNOWN:
            return None
        return int(self.value)

    @classmethod
    def from_value(cls, value: Any) -> "AudioQuality":
        """
        Parse a quality from config or user input.

        Accepts 320, "320", "320kbps", "KBPS320" (case-insensitive).

        Raises:
            ValueError: If the value is not a known bitrate.
        """
        if isinstance(value, cls):
            return value
        if isinstance(value, bool):
            raise ValueError(f"Invalid audio quality: {value!r}")

        text = str(value).strip().lower()
        if text.startswith("kbps"):
            text = text[len("kbps"):]
        elif text.endswith("kbps"):
            text = text[:-len("kbps")]
        text = text.strip()

        for quality in cls:
            if quality.value == text:
                return quality
        raise ValueError(f"Invalid audio quality: {value!r}")


DEFAULT_AUDIO_QUALITY = AudioQuality.KBPS160


@dataclass(frozen=True)
class TrackDetails:
    """
    Immutable description of a single track.

    Produced by provider clients as part of a PlatformQueryResult and
    consumed read-only by the DownloadLinkResolver.

    Attributes:
        title: Track title as the provider reports it.
               Example: "Bohemian Rhapsody"

        artists: Tuple of artist names, primary artist first.
                 Example: ("Queen",) or ("Calvin Harris", "Dua Lipa")

        duration_sec: Track duration in seconds, 0 if unknown.
                      Used by YouTube Music matching to reject wrong versions.

        album_name: Album name, if known.

        year: Release year, 0 if unknown.

        album_art_url: URL of the cover image, if known.

        track_url: Link to the track on its source platform.

        source: Provider the track came from. Selects the fast path used
                by the resolver when video_id is set.

        video_id: Provider-specific identifier already known for this
                  track (YouTube video id, JioSaavn song id). None when the
                  track has to be searched for by title and artists.

        audio_quality: Quality the provider reported, if any.
    """

    title: str
    artists: tuple[str, ...] = ()
    duration_sec: int = 0
    album_name: str | None = None
    year: int = 0
    album_art_url: str | None = None
    track_url: str | None = None
    source: Source = Source.UNKNOWN
    video_id: str | None = None
    audio_quality: AudioQuality = AudioQuality.UNKNOWN

    @property
    def primary_artist(self) -> str:
        """First artist, or empty string when the provider gave none."""
        return self.artists[0] if self.artists else ""

    @property
    def search_query(self) -> str:
        """
        Generate search query for text searches.

        Returns:
            Query string in format "Artist1, Artist2 - Title".
        """
        if not self.artists:
            return self.title
        return f"{', '.join(self.artists)} - {self.title}"

    @classmethod
    def from_spotify_api(
        cls,
        track_data: dict[str, Any],
        album_data: dict[str, Any] | None = None
    ) -> "TrackDetails":
        """
        Create a TrackDetails from a Spotify API track object.

        Args:
            track_data: Track object from spotify.track() or the 'track'
                        field of a playlist item.
            album_data: Album object to use when track_data comes from
                        album_tracks(), which omits the album.

        Returns:
            TrackDetails with source=SPOTIFY and no video_id.
        """
        album = album_data or track_data.get("album") or {}
        artists = tuple(
            artist["name"] for artist in track_data.get("artists", [])
            if artist.get("name")
        )

        release_date = album.get("release_date") or ""
        year = 0
        if release_date[:4].isdigit():
            year = int(release_date[:4])

        return cls(
            title=track_data.get("name") or "",
            artists=artists,
            duration_sec=(track_data.get("duration_ms") or 0) // 1000,
            album_name=album.get("name"),
            year=year,
            album_art_url=best_image_url(album.get("images")),
            track_url=(track_data.get("external_urls") or {}).get("spotify"),
            source=Source.SPOTIFY,
        )

    @classmethod
    def from_yt_dlp_info(cls, info: dict[str, Any]) -> "TrackDetails":
        """
        Create a TrackDetails from a yt-dlp info dict or flat playlist entry.

        YouTube Music uploads carry 'track' and 'artist' fields; plain
        videos only have 'title' and 'uploader'/'channel', which are used
        as fallbacks.
        """
        video_id = info.get("id")
        artist_field = info.get("artist") or info.get("uploader") or info.get("channel") or ""
        artists = tuple(
            name.strip() for name in artist_field.split(",") if name.strip()
        )

        upload_date = str(info.get("release_year") or info.get("upload_date") or "")
        year = int(upload_date[:4]) if upload_date[:4].isdigit() else 0

        return cls(
            title=info.get("track") or info.get("title") or "",
            artists=artists,
            duration_sec=int(info.get("duration") or 0),
            album_name=info.get("album"),
            year=year,
            album_art_url=info.get("thumbnail") or _best_thumbnail_url(info.get("thumbnails")),
            track_url=info.get("webpage_url") or (
                f"https://www.youtube.com/watch?v={video_id}" if video_id else None
            ),
            source=Source.YOUTUBE,
            video_id=video_id,
        )


@dataclass
class PlatformQueryResult:
    """
    Result of resolving a link on one of the supported platforms.

    Attributes:
        folder_type: Whether the link was an album, playlist, track or channel.
        title: Collection (or track) title.
        cover_url: Cover art URL, empty string if unknown.
        track_list: Ordered tracks contained in the collection.
    """

    folder_type: FolderType
    title: str
    cover_url: str = ""
    track_list: list[TrackDetails] = field(default_factory=list)

    @property
    def track_count(self) -> int:
        """Number of tracks, as written to the record store."""
        return len(self.track_list)

    def copy(self) -> "PlatformQueryResult":
        """Return an independent deep copy, safe to hand to a background task."""
        return copy.deepcopy(self)


@dataclass(frozen=True)
class SongInfo:
    """
    A JioSaavn song as returned by a lookup by id.

    Attributes:
        id: JioSaavn song id.
        title: Song title.
        artists: Artist names.
        media_url: Direct media URL. May be blank when JioSaavn does not
                   expose a stream for the song.
        album: Album name, if known.
        image_url: Cover image URL, if known.
    """

    id: str
    title: str
    media_url: str = ""
    artists: tuple[str, ...] = ()
    album: str | None = None
    image_url: str | None = None


def best_image_url(images: list[dict[str, Any]] | None) -> str | None:
    """Spotify lists images largest first, but not every response honours that."""
    if not images:
        return None
    best = max(images, key=lambda image: (image.get("width") or 0) * (image.get("height") or 0))
    return best.get("url")


def _best_thumbnail_url(thumbnails: list[dict[str, Any]] | None) -> str | None:
    if not thumbnails:
        return None
    # yt-dlp orders thumbnails worst to best
    return thumbnails[-1].get("url")
