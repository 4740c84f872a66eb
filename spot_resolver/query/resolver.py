"""
Download link resolution for a single track.

DownloadLinkResolver tries every source it knows, in a fixed order, and
only gives up when all of them failed. Each failure is appended to a
DiagnosticTrace that becomes the payload of DownloadLinkFetchError.

Resolution Order:
    1. Fast path (track.video_id is set)
       - JioSaavn tracks: look the song up by id, use its media URL
       - YouTube tracks: mp3 extraction service, then local extraction
       - Any other source: noted as unhandled in the trace
    2. Fallback (no usable link yet)
       - JioSaavn search by title + artists
       - YouTube Music search
    3. Success with the first non-blank link, otherwise failure with
       the accumulated trace

Stages run strictly one after another. Collaborators are expected to
return failed Outcomes, but one that raises is recorded as a failure of
its stage instead of aborting the run, wrapped in the ProviderError
subclass for that collaborator (SaavnError, ExtractionError, YouTubeError).

Usage:
    resolver = DownloadLinkResolver(saavn, youtube, youtube_music, mp3, preferences)
    outcome = await resolver.find_best_download_link(track)
    if outcome.failed:
        print(outcome.error.trace)
"""

from typing import Any, Awaitable, Callable

from spot_resolver.core.exceptions import (
    DownloadLinkFetchError,
    ExtractionError,
    ProviderError,
    SaavnError,
    SpotResolverError,
    YouTubeError,
)
from spot_resolver.core.logger import get_logger, log_download_link_failure
from spot_resolver.core.models import AudioQuality, Source, TrackDetails
from spot_resolver.core.outcome import Outcome
from spot_resolver.core.trace import DiagnosticTrace
from spot_resolver.providers.base import (
    Mp3Extractor,
    PreferenceStore,
    SaavnProviderProtocol,
    YoutubeMusicSearchProtocol,
    YoutubeProviderProtocol,
)

logger = get_logger(__name__)


STAGE_SAAVN_ID = "saavn-id"
STAGE_YT_MP3 = "yt-mp3"
STAGE_LOCAL_EXTRACTION = "local-extraction"
STAGE_INVALID_ARGUMENTS = "invalid-arguments"
STAGE_SAAVN = "saavn"
STAGE_YOUTUBE_MUSIC = "youtube-music"


def _is_usable(link: str | None) -> bool:
    return bool(link and link.strip())


class DownloadLinkResolver:
    """
    Ordered fallback chain from a TrackDetails to a playable URL.

    Attributes:
        _saavn: JioSaavn provider (lookup by id and generic search).
        _youtube: YouTube provider used for local stream extraction.
        _youtube_music: YouTube Music generic search.
        _mp3_extractor: mp3 extraction service for YouTube ids, optional.
        _preferences: Source of the default audio quality.

    The resolver keeps no per-call state; concurrent calls each get their
    own trace.
    """

    def __init__(
        self,
        saavn: SaavnProviderProtocol,
        youtube: YoutubeProviderProtocol,
        youtube_music: YoutubeMusicSearchProtocol,
        mp3_extractor: Mp3Extractor | None,
        preferences: PreferenceStore
    ) -> None:
        self._saavn = saavn
        self._youtube = youtube
        self._youtube_music = youtube_music
        self._mp3_extractor = mp3_extractor
        self._preferences = preferences

    async def find_best_download_link(
        self,
        track: TrackDetails,
        preferred_quality: AudioQuality | None = None
    ) -> Outcome[str]:
        """
        Resolve a playable URL for a track.

        Args:
            track: The track to resolve.
            preferred_quality: Quality to ask providers for. None uses the
                               preference store's default.

        Returns:
            Success with a non-blank URL, or failure carrying
            DownloadLinkFetchError whose trace lists every failed stage.
        """
        quality = preferred_quality if preferred_quality is not None else self._preferences.audio_quality
        trace = DiagnosticTrace()
        link: str | None = None

        if track.video_id is not None:
            link = await self._resolve_by_id(track, track.video_id, quality, trace)

        if not _is_usable(link):
            link = await self._resolve_by_search(track, quality, trace)

        if _is_usable(link):
            return Outcome.success(link)

        log_download_link_failure(logger, track, trace)
        return Outcome.failure(DownloadLinkFetchError(
            trace,
            details={"title": track.title, "artists": ", ".join(track.artists)}
        ))

    # =========================================================================
    # FAST PATH
    # =========================================================================

    async def _resolve_by_id(
        self,
        track: TrackDetails,
        video_id: str,
        quality: AudioQuality,
        trace: DiagnosticTrace
    ) -> str | None:
        match track.source:
            case Source.JIO_SAAVN:
                return await self._resolve_saavn_id(video_id, trace)
            case Source.YOUTUBE:
                return await self._resolve_youtube_id(video_id, quality, trace)
            case _:
                source_name = getattr(track.source, "value", track.source)
                trace.add(
                    STAGE_INVALID_ARGUMENTS,
                    f"video id {video_id!r} with {source_name} source is not handled"
                )
                return None

    async def _resolve_saavn_id(self, song_id: str, trace: DiagnosticTrace) -> str | None:
        outcome = await self._call(SaavnError, self._saavn.get_song_by_id, song_id)
        if outcome.failed:
            trace.add_error(STAGE_SAAVN_ID, outcome.error)
            return None

        media_url = outcome.value.media_url if outcome.value is not None else ""
        if not _is_usable(media_url):
            trace.add(STAGE_SAAVN_ID, f"song {song_id} has no media url")
            return None
        return media_url

    async def _resolve_youtube_id(
        self,
        video_id: str,
        quality: AudioQuality,
        trace: DiagnosticTrace
    ) -> str | None:
        if self._mp3_extractor is None:
            trace.add(STAGE_YT_MP3, "no mp3 extraction service configured")
        else:
            outcome = await self._call(ExtractionError, self._mp3_extractor.get_download_link, video_id, quality)
            if outcome.ok and _is_usable(outcome.value):
                return outcome.value
            if outcome.failed:
                trace.add_error(STAGE_YT_MP3, outcome.error)
            else:
                trace.add(STAGE_YT_MP3, f"couldn't fetch link for {video_id}, trying local extraction")

        trace.add(STAGE_LOCAL_EXTRACTION, f"extracting stream url for {video_id}")
        try:
            stream_url = await self._youtube.get_video_stream_url(video_id)
        except Exception as e:
            trace.add_error(STAGE_LOCAL_EXTRACTION, e)
            return None

        if not _is_usable(stream_url):
            trace.add(STAGE_LOCAL_EXTRACTION, f"no stream url for {video_id}")
            return None
        return stream_url

    # =========================================================================
    # FALLBACK PATH
    # =========================================================================

    async def _resolve_by_search(
        self,
        track: TrackDetails,
        quality: AudioQuality,
        trace: DiagnosticTrace
    ) -> str | None:
        outcome = await self._call(
            SaavnError,
            self._saavn.find_best_song_download_url,
            track.title,
            track.artists,
            quality
        )
        if outcome.ok and _is_usable(outcome.value):
            return outcome.value
        self._record_search_failure(STAGE_SAAVN, outcome, trace)

        outcome = await self._call(YouTubeError, self._youtube_music.find_best_download_url, track, quality)
        if outcome.ok and _is_usable(outcome.value):
            return outcome.value
        self._record_search_failure(STAGE_YOUTUBE_MUSIC, outcome, trace)
        return None

    def _record_search_failure(self, stage: str, outcome: Outcome[str], trace: DiagnosticTrace) -> None:
        if outcome.failed:
            trace.add_error(stage, outcome.error)
        else:
            trace.add(stage, "search returned a blank link")

    async def _call(
        self,
        error_type: type[ProviderError],
        fn: Callable[..., Awaitable[Outcome[Any]]],
        *args: Any
    ) -> Outcome[Any]:
        """
        Await a collaborator, turning a raised exception into a failed Outcome.

        A raised SpotResolverError is kept as is. Anything else is wrapped
        in error_type with the original exception chained as its cause, so
        the trace still shows the original traceback.
        """
        try:
            return await fn(*args)
        except SpotResolverError as e:
            return Outcome.failure(e)
        except Exception as e:
            name = getattr(fn, "__qualname__", repr(fn))
            logger.debug(f"{name} raised instead of returning a failure: {e}")
            error = error_type(
                f"{type(e).__name__}: {e}",
                details={"call": name}
            )
            error.__cause__ = e
            return Outcome.failure(error)
