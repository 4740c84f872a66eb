"""Test YouTube Music matching"""

from unittest.mock import AsyncMock, MagicMock, Mock, patch

import pytest

from spot_resolver.core.exceptions import YouTubeError
from spot_resolver.core.models import AudioQuality, TrackDetails
from spot_resolver.core.outcome import Outcome
from spot_resolver.providers.youtube_music import (
    YouTubeMusicResult,
    YoutubeMusicSearch,
    _check_forbidden_words,
    _normalize_text,
    _parse_duration,
)


def ytmusic_result(video_id, title, artist, duration, result_type="song"):
    return {
        "videoId": video_id,
        "title": title,
        "artists": [{"name": artist, "id": "x"}],
        "duration": duration,
        "resultType": result_type,
    }


@pytest.fixture
def ytmusic():
    client = MagicMock()
    client.search.return_value = []
    return client


@pytest.fixture
def youtube():
    provider = Mock()
    provider.get_video_stream_url = AsyncMock(return_value="https://local/stream")
    return provider


@pytest.fixture
def track():
    return TrackDetails(title="Bohemian Rhapsody", artists=("Queen",), duration_sec=354)


def make_search(youtube, ytmusic, mp3_extractor=None, max_retries=3):
    return YoutubeMusicSearch(youtube, mp3_extractor=mp3_extractor, ytmusic=ytmusic, max_retries=max_retries)


class TestHelpers:
    """Test module helpers"""

    def test_normalize_text(self):
        assert _normalize_text("Bohemian Rhapsody (Remastered 2011)") == "bohemian rhapsody"
        assert _normalize_text("  AC/DC!! ") == "acdc"

    def test_check_forbidden_words(self):
        assert _check_forbidden_words("Song", "Song (Live at Wembley)") == ["live"]
        assert _check_forbidden_words("Song (Live)", "Song (Live)") == []

    def test_parse_duration(self):
        assert _parse_duration("3:33") == 213
        assert _parse_duration("1:02:15") == 3735
        assert _parse_duration("bad") == 0
        assert _parse_duration(None) == 0

    def test_result_from_ytmusic(self):
        result = YouTubeMusicResult.from_ytmusic_result({
            "videoId": "abc",
            "title": "Song",
            "artists": [{"name": "A"}, {"name": None}],
            "duration_seconds": 200,
            "album": {"name": "Album"},
            "resultType": "song",
        })

        assert result.artists == ("A",)
        assert result.duration_seconds == 200
        assert result.album == "Album"


class TestFindBestMatch:
    """Test matching and scoring"""

    @pytest.mark.asyncio
    async def test_best_match_wins(self, youtube, ytmusic, track):
        """Test the official song beats covers and live versions"""
        ytmusic.search.side_effect = lambda query, filter, limit: {
            "songs": [
                ytmusic_result("live1", "Bohemian Rhapsody (Live Aid)", "Queen", "5:55"),
                ytmusic_result("song1", "Bohemian Rhapsody", "Queen", "5:55"),
            ],
            "videos": [
                ytmusic_result("cover1", "Bohemian Rhapsody", "Some Cover Band", "5:50", "video"),
            ],
        }[filter]

        outcome = await make_search(youtube, ytmusic).find_best_match(track)

        assert outcome.value.video_id == "song1"
        filters = [call.kwargs["filter"] for call in ytmusic.search.call_args_list]
        assert filters == ["songs", "videos"]

    @pytest.mark.asyncio
    async def test_duration_filter(self, youtube, ytmusic, track):
        """Test results outside the duration tolerance are dropped"""
        ytmusic.search.return_value = [ytmusic_result("short", "Bohemian Rhapsody", "Queen", "3:00")]

        outcome = await make_search(youtube, ytmusic).find_best_match(track)

        assert isinstance(outcome.error, YouTubeError)
        assert "duration" in str(outcome.error)

    @pytest.mark.asyncio
    async def test_unknown_duration_skips_filter(self, youtube, ytmusic):
        ytmusic.search.return_value = [ytmusic_result("any", "Song", "Artist", "9:00")]
        track = TrackDetails(title="Song", artists=("Artist",))

        outcome = await make_search(youtube, ytmusic).find_best_match(track)

        assert outcome.value.video_id == "any"

    @pytest.mark.asyncio
    async def test_no_results(self, youtube, ytmusic, track):
        outcome = await make_search(youtube, ytmusic).find_best_match(track)

        assert "No results found" in str(outcome.error)

    @pytest.mark.asyncio
    async def test_low_similarity_rejected(self, youtube, ytmusic, track):
        ytmusic.search.return_value = [ytmusic_result("x", "Completely Different", "Nobody", "5:54")]

        outcome = await make_search(youtube, ytmusic).find_best_match(track)

        assert "minimum similarity" in str(outcome.error)

    @pytest.mark.asyncio
    async def test_transient_errors_are_retried(self, youtube, ytmusic, track):
        """Test transient search errors retry and then succeed"""
        ytmusic.search.side_effect = [
            Exception("HTTP Error 503: Service Unavailable"),
            [ytmusic_result("song1", "Bohemian Rhapsody", "Queen", "5:54")],
            [],
        ]

        with patch("spot_resolver.providers.youtube_music.time.sleep") as mock_sleep:
            outcome = await make_search(youtube, ytmusic).find_best_match(track)

        assert outcome.value.video_id == "song1"
        mock_sleep.assert_called_once()

    @pytest.mark.asyncio
    async def test_retries_exhausted(self, youtube, ytmusic, track):
        ytmusic.search.side_effect = Exception("connection reset")

        with patch("spot_resolver.providers.youtube_music.time.sleep"):
            outcome = await make_search(youtube, ytmusic, max_retries=2).find_best_match(track)

        assert isinstance(outcome.error, YouTubeError)
        assert "connection reset" in str(outcome.error)
        assert ytmusic.search.call_count == 2


class TestFindBestDownloadUrl:
    """Test URL resolution for the matched video"""

    @pytest.fixture(autouse=True)
    def one_result(self, ytmusic):
        ytmusic.search.return_value = [ytmusic_result("song1", "Bohemian Rhapsody", "Queen", "5:54")]

    @pytest.mark.asyncio
    async def test_mp3_extractor_first(self, youtube, ytmusic, track):
        mp3 = Mock()
        mp3.get_download_link = AsyncMock(return_value=Outcome.success("https://mp3/song1.mp3"))

        outcome = await make_search(youtube, ytmusic, mp3).find_best_download_url(track, AudioQuality.KBPS320)

        assert outcome.value == "https://mp3/song1.mp3"
        mp3.get_download_link.assert_awaited_once_with("song1", AudioQuality.KBPS320)
        youtube.get_video_stream_url.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_blank_mp3_uses_local_extraction(self, youtube, ytmusic, track):
        mp3 = Mock()
        mp3.get_download_link = AsyncMock(return_value=Outcome.success(" "))

        outcome = await make_search(youtube, ytmusic, mp3).find_best_download_url(track, AudioQuality.KBPS160)

        assert outcome.value == "https://local/stream"
        youtube.get_video_stream_url.assert_awaited_once_with("song1")

    @pytest.mark.asyncio
    async def test_without_mp3_extractor(self, youtube, ytmusic, track):
        outcome = await make_search(youtube, ytmusic).find_best_download_url(track, AudioQuality.KBPS160)

        assert outcome.value == "https://local/stream"

    @pytest.mark.asyncio
    async def test_no_stream(self, youtube, ytmusic, track):
        youtube.get_video_stream_url.return_value = None

        outcome = await make_search(youtube, ytmusic).find_best_download_url(track, AudioQuality.KBPS160)

        assert isinstance(outcome.error, YouTubeError)
        assert outcome.error.details["video_id"] == "song1"
