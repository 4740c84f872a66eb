"""
YouTube provider for spot-resolver.

Uses yt-dlp for metadata extraction only; nothing is downloaded.

    - query(link): turns a video, playlist or channel link into a
      PlatformQueryResult whose tracks carry their YouTube video id, so the
      resolver can take the YouTube fast path for them.
    - get_video_stream_url(video_id): local extraction of a direct audio
      stream URL, used when the mp3 extraction service fails.

Usage:
    provider = YoutubeProvider()
    outcome = await provider.query("https://www.youtube.com/playlist?list=...")
    url = await provider.get_video_stream_url("dQw4w9WgXcQ")
"""

import asyncio
from pathlib import Path
from typing import Any

from yt_dlp import YoutubeDL
from yt_dlp.utils import DownloadError

from spot_resolver.core.exceptions import YouTubeError
from spot_resolver.core.logger import get_logger
from spot_resolver.core.models import FolderType, PlatformQueryResult, TrackDetails
from spot_resolver.core.outcome import Outcome

logger = get_logger(__name__)


WATCH_URL = "https://www.youtube.com/watch?v={video_id}"

# Audio-only first; fall back to muxed formats for videos without separate audio
STREAM_FORMAT = "bestaudio/best"


class YtDlpLogger:
    """
    Logger handed to yt-dlp so its output goes through our logging setup.

    yt-dlp ignores quiet=True for certain errors and prints directly to
    stderr. Routing everything to DEBUG keeps the console clean; the
    last error is kept so it can be attached to failure details.
    """

    def __init__(self) -> None:
        self.last_error: str | None = None

    def debug(self, msg: str) -> None:
        logger.debug(f"yt-dlp: {msg}")

    def info(self, msg: str) -> None:
        logger.debug(f"yt-dlp: {msg}")

    def warning(self, msg: str) -> None:
        logger.debug(f"yt-dlp warning: {msg}")

    def error(self, msg: str) -> None:
        self.last_error = msg
        logger.debug(f"yt-dlp error: {msg}")


class YoutubeProvider:
    """
    YouTube metadata and stream extraction via yt-dlp.

    Attributes:
        _cookie_file: Optional cookies.txt passed to yt-dlp, needed for
                      age-restricted videos.

    Thread Safety:
        A fresh YoutubeDL instance is created per call, and calls run in
        worker threads via asyncio.to_thread.
    """

    def __init__(self, cookie_file: Path | None = None) -> None:
        self._cookie_file = cookie_file

    def _options(self, yt_logger: YtDlpLogger, **extra: Any) -> dict[str, Any]:
        options: dict[str, Any] = {
            "quiet": True,
            "no_warnings": True,
            "noprogress": True,
            "skip_download": True,
            "logger": yt_logger,
            "retries": 3,
        }
        if self._cookie_file is not None:
            options["cookiefile"] = str(self._cookie_file)
        options.update(extra)
        return options

    async def query(self, link: str) -> Outcome[PlatformQueryResult]:
        """
        Resolve a YouTube link into a PlatformQueryResult.

        Returns:
            Success with the result, or failure carrying YouTubeError when
            yt-dlp cannot extract the link.
        """
        logger.info(f"Fetching YouTube link: {link}")
        try:
            info = await asyncio.to_thread(self._extract_link, link)
        except YouTubeError as e:
            return Outcome.failure(e)

        return Outcome.success(self._to_query_result(info, link))

    def _extract_link(self, link: str) -> dict[str, Any]:
        yt_logger = YtDlpLogger()
        options = self._options(yt_logger, extract_flat="in_playlist")
        try:
            with YoutubeDL(options) as ydl:
                info = ydl.extract_info(link, download=False)
        except DownloadError as e:
            raise YouTubeError(
                f"Failed to extract YouTube link: {e}",
                details={"link": link, "yt_dlp_error": yt_logger.last_error or str(e)}
            ) from e
        except Exception as e:
            raise YouTubeError(
                f"Unexpected error extracting YouTube link: {e}",
                details={"link": link, "original_error": str(e)}
            ) from e

        if not info:
            raise YouTubeError(
                f"No information returned for YouTube link: {link}",
                details={"link": link}
            )
        return info

    def _to_query_result(self, info: dict[str, Any], link: str) -> PlatformQueryResult:
        if info.get("_type") != "playlist":
            track = TrackDetails.from_yt_dlp_info(info)
            return PlatformQueryResult(
                folder_type=FolderType.TRACK,
                title=track.title,
                cover_url=track.album_art_url or "",
                track_list=[track],
            )

        tracks = [
            TrackDetails.from_yt_dlp_info(entry)
            for entry in info.get("entries") or []
            if entry and entry.get("id")
        ]

        is_channel = "/channel/" in link or "/@" in link or "/c/" in link
        cover_url = ""
        thumbnails = info.get("thumbnails") or []
        if thumbnails:
            cover_url = thumbnails[-1].get("url") or ""
        elif tracks:
            cover_url = tracks[0].album_art_url or ""

        return PlatformQueryResult(
            folder_type=FolderType.CHANNEL if is_channel else FolderType.PLAYLIST,
            title=info.get("title") or "Unknown Playlist",
            cover_url=cover_url,
            track_list=tracks,
        )

    async def get_video_stream_url(self, video_id: str) -> str | None:
        """
        Extract a direct audio stream URL for a video.

        Never raises: extraction failures are logged and reported as None.
        """
        return await asyncio.to_thread(self._extract_stream_url, video_id)

    def _extract_stream_url(self, video_id: str) -> str | None:
        yt_logger = YtDlpLogger()
        options = self._options(yt_logger, format=STREAM_FORMAT)
        try:
            with YoutubeDL(options) as ydl:
                info = ydl.extract_info(WATCH_URL.format(video_id=video_id), download=False)
        except Exception as e:
            logger.warning(f"Local extraction failed for {video_id}: {yt_logger.last_error or e}")
            return None

        if not info:
            return None

        url = info.get("url")
        if url:
            return url

        # Merged format selections put the URLs on the individual formats
        for requested in info.get("requested_formats") or []:
            if requested.get("acodec") not in (None, "none") and requested.get("url"):
                return requested["url"]
        return None
