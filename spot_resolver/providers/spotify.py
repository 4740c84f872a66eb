"""
Spotify provider for spot-resolver.

Wraps the spotipy library to turn Spotify track, album and playlist
links into PlatformQueryResult objects. Spotify only supplies metadata;
the resolver later finds a playable source for each track by title and
artists, so tracks produced here never carry a video_id.

Authentication:
    Uses the Client Credentials flow (client_id + client_secret), which
    is enough for public tracks, albums and playlists. authenticate() must
    succeed once before querying; after a success, calling it again is
    a no-op, after a failure it tries again.

Supported links:
    https://open.spotify.com/track/<id>
    https://open.spotify.com/intl-de/album/<id>?si=...
    spotify:playlist:<id>

Usage:
    provider = SpotifyProvider(client_id, client_secret)
    await provider.authenticate()
    outcome = await provider.query("https://open.spotify.com/album/...")
"""

import asyncio
import re
from typing import Any

import spotipy
from spotipy.oauth2 import SpotifyClientCredentials

from spot_resolver.core.exceptions import SpotifyError
from spot_resolver.core.logger import get_logger
from spot_resolver.core.models import FolderType, PlatformQueryResult, TrackDetails, best_image_url
from spot_resolver.core.outcome import Outcome

logger = get_logger(__name__)


_LINK_PATTERNS = (
    re.compile(r"open\.spotify\.com/(?:intl-[a-z-]+/)?(track|album|playlist)/([A-Za-z0-9]+)", re.IGNORECASE),
    re.compile(r"spotify:(track|album|playlist):([A-Za-z0-9]+)", re.IGNORECASE),
)


def parse_spotify_link(link: str) -> tuple[str, str] | None:
    """
    Extract (type, id) from a Spotify link.

    Returns:
        ("track" | "album" | "playlist", spotify_id), or None when the
        link does not point at one of those.

    Example:
        parse_spotify_link("https://open.spotify.com/track/4cOdK2wGLETKBW3PvgPWqT?si=x")
        # ("track", "4cOdK2wGLETKBW3PvgPWqT")
    """
    for pattern in _LINK_PATTERNS:
        match = pattern.search(link)
        if match:
            return match.group(1).lower(), match.group(2)
    return None


class SpotifyProvider:
    """
    Spotify metadata provider.

    Attributes:
        _client_id: Spotify application client ID.
        _client_secret: Spotify application client secret.
        _spotify: spotipy.Spotify instance, None until authenticate().

    Thread Safety:
        spotipy calls are blocking and run in worker threads via
        asyncio.to_thread. Each query only reads from the client.
    """

    def __init__(self, client_id: str | None, client_secret: str | None) -> None:
        self._client_id = client_id
        self._client_secret = client_secret
        self._spotify: spotipy.Spotify | None = None
        self._auth_lock = asyncio.Lock()

    @property
    def is_authenticated(self) -> bool:
        return self._spotify is not None

    async def authenticate(self) -> None:
        """
        Create the spotipy client and verify the credentials.

        Idempotent: once authenticated, further calls return immediately.
        Missing or rejected credentials are logged and leave the provider
        unauthenticated, so Spotify queries keep failing with an auth
        SpotifyError while every other platform works normally.
        """
        async with self._auth_lock:
            if self._spotify is not None:
                return

            if not self._client_id or not self._client_secret:
                logger.warning("Spotify credentials are not configured, Spotify links will fail")
                return

            try:
                self._spotify = await asyncio.to_thread(self._create_client)
            except SpotifyError as e:
                logger.error(f"{e.message}, Spotify links will fail until authenticate() succeeds")
                return
            logger.debug("Spotify client authenticated")

    def _create_client(self) -> spotipy.Spotify:
        try:
            auth_manager = SpotifyClientCredentials(
                client_id=self._client_id,
                client_secret=self._client_secret
            )
            spotify_instance = spotipy.Spotify(auth_manager=auth_manager)
            # Client credentials can't call current_user(); a tiny search proves the token works
            spotify_instance.search(q="test", type="track", limit=1)
            return spotify_instance
        except spotipy.SpotifyException as e:
            raise SpotifyError(
                f"Spotify authentication failed: {e}",
                details={"original_error": str(e)},
                is_auth_error=True
            ) from e
        except Exception as e:
            raise SpotifyError(
                f"Failed to initialize Spotify client: {e}",
                details={"original_error": str(e)},
                is_auth_error=True
            ) from e

    async def query(self, link: str) -> Outcome[PlatformQueryResult]:
        """
        Resolve a Spotify link into a PlatformQueryResult.

        Returns:
            Success with the result, or failure carrying SpotifyError when
            not authenticated, the link is unsupported, or the API call fails.
        """
        if self._spotify is None:
            return Outcome.failure(SpotifyError(
                "Spotify client not authenticated. Call authenticate() first.",
                details={"link": link},
                is_auth_error=True
            ))

        parsed = parse_spotify_link(link)
        if parsed is None:
            return Outcome.failure(SpotifyError(
                f"Unsupported Spotify link: {link}",
                details={"link": link}
            ))

        link_type, spotify_id = parsed
        logger.info(f"Fetching Spotify {link_type}: {spotify_id}")

        fetchers = {
            "track": self._fetch_track,
            "album": self._fetch_album,
            "playlist": self._fetch_playlist,
        }
        try:
            result = await asyncio.to_thread(fetchers[link_type], spotify_id)
        except spotipy.SpotifyException as e:
            return Outcome.failure(self._wrap_spotify_exception(e, link))
        except SpotifyError as e:
            return Outcome.failure(e)
        except Exception as e:
            return Outcome.failure(SpotifyError(
                f"Failed to fetch {link_type} from Spotify: {e}",
                details={"link": link, "original_error": str(e)}
            ))

        logger.debug(f"Spotify {link_type} '{result.title}': {result.track_count} tracks")
        return Outcome.success(result)

    def _fetch_track(self, track_id: str) -> PlatformQueryResult:
        data = self._spotify.track(track_id)
        if data is None:
            raise SpotifyError(f"Track not found: {track_id}", details={"track_id": track_id})

        track = TrackDetails.from_spotify_api(data)
        return PlatformQueryResult(
            folder_type=FolderType.TRACK,
            title=track.title,
            cover_url=track.album_art_url or "",
            track_list=[track],
        )

    def _fetch_album(self, album_id: str) -> PlatformQueryResult:
        album = self._spotify.album(album_id)
        if album is None:
            raise SpotifyError(f"Album not found: {album_id}", details={"album_id": album_id})

        items = self._collect_pages(album.get("tracks") or {})
        tracks = [
            TrackDetails.from_spotify_api(item, album_data=album)
            for item in items if item and item.get("name")
        ]
        return PlatformQueryResult(
            folder_type=FolderType.ALBUM,
            title=album.get("name") or "Unknown Album",
            cover_url=best_image_url(album.get("images")) or "",
            track_list=tracks,
        )

    def _fetch_playlist(self, playlist_id: str) -> PlatformQueryResult:
        playlist = self._spotify.playlist(playlist_id)
        if playlist is None:
            raise SpotifyError(f"Playlist not found: {playlist_id}", details={"playlist_id": playlist_id})

        items = self._collect_pages(playlist.get("tracks") or {})
        tracks = []
        for item in items:
            track_data = (item or {}).get("track")
            # Local files and removed episodes come back as None or without an id
            if not track_data or not track_data.get("id"):
                continue
            tracks.append(TrackDetails.from_spotify_api(track_data))

        return PlatformQueryResult(
            folder_type=FolderType.PLAYLIST,
            title=playlist.get("name") or "Unknown Playlist",
            cover_url=best_image_url(playlist.get("images")) or "",
            track_list=tracks,
        )

    def _collect_pages(self, page: dict[str, Any]) -> list[dict[str, Any]]:
        """Follow 'next' links of a paging object and return all items."""
        items = list(page.get("items") or [])
        while page.get("next"):
            page = self._spotify.next(page)
            if not page:
                break
            items.extend(page.get("items") or [])
        return items

    def _wrap_spotify_exception(self, error: spotipy.SpotifyException, link: str) -> SpotifyError:
        if error.http_status == 429:
            return SpotifyError(
                f"Rate limited while fetching: {link}",
                details={"link": link, "http_status": 429},
                is_rate_limit=True
            )
        return SpotifyError(
            f"Spotify API error: {error.msg}",
            details={"link": link, "http_status": error.http_status},
            is_auth_error=error.http_status == 401
        )
