"""
YouTube Music search for spot-resolver.

Finds the YouTube Music song that best matches a TrackDetails and turns
it into a playable URL. This is the last generic source the resolver
tries, after JioSaavn.

Matching Algorithm:
    1. Search YouTube Music by "Artists - Title", songs first, then videos
    2. Drop results whose duration differs too much (when the track's
       duration is known)
    3. Score title/artist similarity using rapidfuzz
    4. Add a bonus for official songs, subtract a penalty for each
       alternative-version keyword (remix, live, ...) the track lacks
    5. Keep the best result above MIN_SIMILARITY_SCORE

URL Resolution:
    The matched video id goes to the mp3 extraction service first (if one
    is configured); a blank or failed answer falls back to local
    extraction through YoutubeProvider.

Dependencies:
    - ytmusicapi: YouTube Music API client
    - rapidfuzz: Fuzzy string matching

Usage:
    search = YoutubeMusicSearch(youtube_provider, mp3_extractor=None)
    outcome = await search.find_best_download_url(track, AudioQuality.KBPS320)
"""

import asyncio
import random
import re
import time
from dataclasses import dataclass
from typing import Any, Callable

from rapidfuzz import fuzz
from ytmusicapi import YTMusic

from spot_resolver.core.config import DEFAULT_SEARCH_LIMIT, DEFAULT_YTMUSIC_LANGUAGE
from spot_resolver.core.exceptions import YouTubeError
from spot_resolver.core.logger import get_logger
from spot_resolver.core.models import AudioQuality, TrackDetails
from spot_resolver.core.outcome import Outcome
from spot_resolver.providers.base import Mp3Extractor, YoutubeProviderProtocol

logger = get_logger(__name__)


class TransientSearchError(Exception):
    """
    Raised when search fails due to transient API/network errors.

    Rate limiting, connection resets and malformed responses end up here
    once all retries are used up.
    """
    pass


# =============================================================================
# DURATION AND SIMILARITY THRESHOLDS
# =============================================================================

# If YouTube duration differs by more than this, result is rejected
DURATION_TOLERANCE_SECONDS = 10

# Below this score (0-100+) a result is rejected even if duration matches
MIN_SIMILARITY_SCORE = 70

TITLE_WEIGHT = 0.65
ARTIST_WEIGHT = 0.35

RESULT_TYPE_BONUS = {
    "song": 7,
    "video": 0,
}

# Alternative version markers: penalised when the result has one the track doesn't
FORBIDDEN_WORDS = (
    "bassboosted",
    "remix",
    "remastered",
    "remaster",
    "reverb",
    "bassboost",
    "live",
    "acoustic",
    "8daudio",
    "concert",
    "acapella",
    "slowed",
    "instrumental",
    "cover",
)
FORBIDDEN_WORD_PENALTY = 15

SEARCH_FILTERS = ("songs", "videos")


# =============================================================================
# RETRY CONFIGURATION FOR TRANSIENT ERRORS
# =============================================================================

MAX_SEARCH_RETRIES = 3
RETRY_DELAY_BASE = 2.0
RETRY_DELAY_MAX = 30.0
RETRY_JITTER_FACTOR = 0.3
RATE_LIMIT_DELAY_MULTIPLIER = 2.0

TRANSIENT_PATTERNS = (
    "expecting value", "json", "decode",
    "429", "rate", "too many", "quota", "throttl",
    "connection", "timeout", "timed out", "reset", "refused", "ssl",
    "500", "502", "503", "504", "temporarily", "unavailable", "server error",
    "network", "unreachable", "dns",
)


def _parse_duration(duration_str: str | None) -> int:
    """
    Parse "M:SS" or "H:MM:SS" to seconds, 0 if missing or malformed.

    Examples:
        "3:33" -> 213
        "1:02:15" -> 3735
    """
    if not duration_str:
        return 0

    try:
        seconds = 0
        for part in duration_str.split(":"):
            seconds = seconds * 60 + int(part)
        return seconds
    except (ValueError, TypeError):
        return 0


def _normalize_text(text: str) -> str:
    """
    Normalize text for comparison by removing special characters and lowercasing.

    Text in parentheses/brackets (usually version info) is dropped.
    """
    text = re.sub(r'\s*[\(\[\{].*?[\)\]\}]\s*', ' ', text)
    text = re.sub(r'[^\w\s]', '', text)
    text = ' '.join(text.split())
    return text.lower().strip()


def _check_forbidden_words(track_title: str, result_title: str) -> list[str]:
    """
    Words from FORBIDDEN_WORDS present in the result title but not the track title.

    Example:
        _check_forbidden_words("Playing God", "Playing God (Acoustic)")
        # ["acoustic"]
    """
    track_lower = track_title.lower()
    result_lower = result_title.lower()
    return [
        word for word in FORBIDDEN_WORDS
        if word in result_lower and word not in track_lower
    ]


def _is_transient_error(error_str: str) -> bool:
    return any(pattern in error_str for pattern in TRANSIENT_PATTERNS)


@dataclass(frozen=True)
class YouTubeMusicResult:
    """
    Immutable representation of a YouTube Music search result.

    Attributes:
        video_id: YouTube video ID (11-character string).
        title: Song/video title.
        artists: Artist names, may be empty for uploads.
        duration_seconds: Duration, 0 if unknown.
        result_type: "song" for official songs, "video" for videos.
        album: Album name for songs, None otherwise.
    """

    video_id: str
    title: str
    artists: tuple[str, ...]
    duration_seconds: int
    result_type: str = "video"
    album: str | None = None

    @classmethod
    def from_ytmusic_result(cls, result: dict[str, Any]) -> "YouTubeMusicResult":
        """Create from an entry of ytmusicapi.YTMusic.search()."""
        artists = tuple(
            artist["name"] for artist in result.get("artists") or []
            if artist.get("name")
        )
        duration = result.get("duration_seconds")
        if not isinstance(duration, int):
            duration = _parse_duration(result.get("duration"))

        album = result.get("album")
        album_name = album.get("name") if isinstance(album, dict) else None

        return cls(
            video_id=result["videoId"],
            title=result.get("title") or "",
            artists=artists,
            duration_seconds=duration,
            result_type=result.get("resultType") or "video",
            album=album_name,
        )


class YoutubeMusicSearch:
    """
    Matches a TrackDetails on YouTube Music and resolves a playable URL.

    Attributes:
        _youtube: Provider used for local stream extraction.
        _mp3_extractor: Optional mp3 extraction service, tried first.
        _ytmusic: ytmusicapi client.
        _search_limit: Results requested per search filter.
        _max_retries: Attempts per search call before giving up.
    """

    def __init__(
        self,
        youtube: YoutubeProviderProtocol,
        mp3_extractor: Mp3Extractor | None = None,
        language: str = DEFAULT_YTMUSIC_LANGUAGE,
        search_limit: int = DEFAULT_SEARCH_LIMIT,
        max_retries: int = MAX_SEARCH_RETRIES,
        ytmusic: YTMusic | None = None
    ) -> None:
        self._youtube = youtube
        self._mp3_extractor = mp3_extractor
        self._ytmusic = ytmusic if ytmusic is not None else YTMusic(language=language)
        self._search_limit = search_limit
        self._max_retries = max(1, max_retries)

    async def find_best_download_url(
        self,
        track: TrackDetails,
        preferred_quality: AudioQuality
    ) -> Outcome[str]:
        """
        Find the best YouTube Music match for a track and return a playable URL.

        Returns:
            Success with the URL, or failure carrying YouTubeError that
            explains which step failed (search, matching or extraction).
        """
        match_outcome = await self.find_best_match(track)
        if match_outcome.failed:
            return match_outcome

        best = match_outcome.value
        video_id = best.video_id

        if self._mp3_extractor is not None:
            try:
                mp3_outcome = await self._mp3_extractor.get_download_link(video_id, preferred_quality)
            except Exception as e:
                mp3_outcome = Outcome.failure(e)

            if mp3_outcome.ok and mp3_outcome.value and mp3_outcome.value.strip():
                return Outcome.success(mp3_outcome.value)
            logger.debug(
                f"mp3 extraction gave nothing for {video_id}: "
                f"{mp3_outcome.error or 'blank link'}, trying local extraction"
            )

        stream_url = await self._youtube.get_video_stream_url(video_id)
        if stream_url:
            return Outcome.success(stream_url)

        return Outcome.failure(YouTubeError(
            f"Could not extract a stream for matched video {video_id}",
            details={"video_id": video_id, "title": best.title, "query": track.search_query}
        ))

    async def find_best_match(self, track: TrackDetails) -> Outcome[YouTubeMusicResult]:
        """
        Search YouTube Music and select the best matching result.

        Returns:
            Success with the best YouTubeMusicResult, or failure with a
            YouTubeError whose message gives the reason no match was found.
        """
        query = track.search_query
        logger.debug(f"Searching YouTube Music: {query}")

        try:
            results = await asyncio.to_thread(self._search_by_text, query)
        except TransientSearchError as e:
            return Outcome.failure(YouTubeError(
                f"YouTube Music search failed: {e}",
                details={"query": query, "original_error": str(e)}
            ))

        if not results:
            return Outcome.failure(YouTubeError(
                f"No results found for search query: {query}",
                details={"query": query}
            ))

        filtered = self._filter_by_duration(results, track.duration_sec)
        if not filtered:
            return Outcome.failure(YouTubeError(
                f"No results within {DURATION_TOLERANCE_SECONDS}s duration tolerance",
                details={"query": query, "duration_sec": track.duration_sec}
            ))

        scored = [(result, self._score_result(result, track)) for result in filtered]
        scored.sort(key=lambda item: item[1], reverse=True)
        best, best_score = scored[0]

        if best_score < MIN_SIMILARITY_SCORE:
            return Outcome.failure(YouTubeError(
                f"No results above minimum similarity score ({MIN_SIMILARITY_SCORE})",
                details={"query": query, "best_title": best.title, "best_score": round(best_score, 1)}
            ))

        logger.debug(f"YouTube Music match: {best.title} ({best.video_id}, score: {best_score:.1f})")
        return Outcome.success(best)

    def _search_by_text(self, query: str) -> list[YouTubeMusicResult]:
        """
        Search YouTube Music using a text query.

        Searches both "songs" and "videos" filters, dropping duplicates and
        entries without a video id.
        """
        all_results = []
        seen_ids = set()

        for search_filter in SEARCH_FILTERS:
            raw_results = self._search_with_retry(
                self._ytmusic.search,
                query,
                filter=search_filter,
                limit=self._search_limit
            )

            for raw in raw_results:
                video_id = raw.get("videoId")
                if not video_id or video_id in seen_ids:
                    continue
                seen_ids.add(video_id)

                try:
                    all_results.append(YouTubeMusicResult.from_ytmusic_result(raw))
                except (KeyError, TypeError, AttributeError) as e:
                    logger.debug(f"Failed to parse search result: {e}")

        return all_results

    def _search_with_retry(self, search_func: Callable[..., Any], *args, **kwargs) -> list[dict[str, Any]]:
        """
        Execute a search function with retry logic for transient errors.

        Uses exponential backoff with jitter. Non-transient errors give up
        immediately with an empty list.

        Raises:
            TransientSearchError: If all retries fail due to transient errors.
        """
        for attempt in range(self._max_retries):
            try:
                return search_func(*args, **kwargs) or []
            except Exception as e:
                error_str = str(e).lower()
                if not _is_transient_error(error_str):
                    logger.warning(f"YouTube Music search failed: {e}")
                    return []

                if attempt == self._max_retries - 1:
                    raise TransientSearchError(str(e)) from e

                delay = min(RETRY_DELAY_BASE * (2 ** attempt), RETRY_DELAY_MAX)
                is_rate_limit = "429" in error_str or "rate" in error_str or "too many" in error_str
                if is_rate_limit:
                    delay = min(delay * RATE_LIMIT_DELAY_MULTIPLIER, RETRY_DELAY_MAX)
                delay += delay * RETRY_JITTER_FACTOR * (2 * random.random() - 1)
                delay = max(0.5, delay)

                logger.debug(
                    f"Search attempt {attempt + 1}/{self._max_retries} failed: {e}. "
                    f"Retrying in {delay:.1f}s"
                )
                time.sleep(delay)

        return []

    def _filter_by_duration(
        self,
        results: list[YouTubeMusicResult],
        target_seconds: int
    ) -> list[YouTubeMusicResult]:
        """Keep results within DURATION_TOLERANCE_SECONDS; no-op when duration is unknown."""
        if target_seconds <= 0:
            return list(results)
        return [
            result for result in results
            if result.duration_seconds > 0
            and abs(result.duration_seconds - target_seconds) <= DURATION_TOLERANCE_SECONDS
        ]

    def _score_result(self, result: YouTubeMusicResult, track: TrackDetails) -> float:
        """
        Calculate match score for a search result.

        Scoring Components:
            1. Base Score (0-100): Weighted average of title and artist similarity
            2. Result Type Bonus: +7 for songs
            3. Forbidden Word Penalty: -15 per forbidden word found
        """
        title_score = fuzz.ratio(_normalize_text(track.title), _normalize_text(result.title))

        track_artists = _normalize_text(" ".join(track.artists))
        result_artists = _normalize_text(" ".join(result.artists))
        artist_score = max(
            fuzz.ratio(_normalize_text(track.primary_artist), _normalize_text(result.artists[0]))
            if result.artists else 0.0,
            fuzz.ratio(track_artists, result_artists),
        )
        # Artists are sometimes only present in the video title ("Artist - Song")
        if track.primary_artist and _normalize_text(track.primary_artist) in _normalize_text(result.title):
            artist_score = max(artist_score, 100.0)

        score = title_score * TITLE_WEIGHT + artist_score * ARTIST_WEIGHT
        score += RESULT_TYPE_BONUS.get(result.result_type, 0)
        score -= FORBIDDEN_WORD_PENALTY * len(_check_forbidden_words(track.title, result.title))
        return score
