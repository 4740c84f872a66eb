"""Test the download link resolver fallback chain"""

import logging
from unittest.mock import AsyncMock, patch

import pytest

from spot_resolver.core.exceptions import DownloadLinkFetchError, SaavnError, YouTubeError
from spot_resolver.core.models import AudioQuality, SongInfo, Source, TrackDetails
from spot_resolver.core.outcome import Outcome
from spot_resolver.core.trace import DiagnosticTrace
from spot_resolver.query.resolver import (
    STAGE_INVALID_ARGUMENTS,
    STAGE_LOCAL_EXTRACTION,
    STAGE_SAAVN,
    STAGE_SAAVN_ID,
    STAGE_YOUTUBE_MUSIC,
    STAGE_YT_MP3,
    DownloadLinkResolver,
)


@pytest.fixture
def resolver(fake_saavn, fake_youtube, fake_youtube_music, fake_mp3_extractor, preferences):
    return DownloadLinkResolver(
        saavn=fake_saavn,
        youtube=fake_youtube,
        youtube_music=fake_youtube_music,
        mp3_extractor=fake_mp3_extractor,
        preferences=preferences,
    )


class TestSaavnFastPath:
    """Test tracks carrying a JioSaavn song id"""

    @pytest.mark.asyncio
    async def test_media_url_skips_fallback(self, resolver, saavn_track, fake_saavn, fake_youtube_music):
        """Test a non-blank media URL is returned without generic search"""
        fake_saavn.get_song_by_id.return_value = Outcome.success(
            SongInfo(id="saavn123", title="Kesariya", media_url="https://aac.saavncdn.com/k.mp4")
        )

        outcome = await resolver.find_best_download_link(saavn_track)

        assert outcome.value == "https://aac.saavncdn.com/k.mp4"
        fake_saavn.get_song_by_id.assert_awaited_once_with("saavn123")
        fake_saavn.find_best_song_download_url.assert_not_awaited()
        fake_youtube_music.find_best_download_url.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_blank_media_url_falls_back(self, resolver, saavn_track, fake_saavn):
        """Test a blank media URL is traced and generic search runs"""
        fake_saavn.get_song_by_id.return_value = Outcome.success(
            SongInfo(id="saavn123", title="Kesariya", media_url="  ")
        )
        fake_saavn.find_best_song_download_url.return_value = Outcome.success("https://saavn/search.mp4")

        outcome = await resolver.find_best_download_link(saavn_track)

        assert outcome.value == "https://saavn/search.mp4"
        fake_saavn.find_best_song_download_url.assert_awaited_once_with(
            "Kesariya", ("Arijit Singh",), AudioQuality.KBPS160
        )

    @pytest.mark.asyncio
    async def test_failed_lookup_is_traced(self, resolver, saavn_track, fake_saavn):
        """Test a failed id lookup appears in the final trace"""
        fake_saavn.get_song_by_id.return_value = Outcome.failure(SaavnError("song not found"))

        outcome = await resolver.find_best_download_link(saavn_track)

        assert isinstance(outcome.error, DownloadLinkFetchError)
        assert outcome.error.trace.stages() == [STAGE_SAAVN_ID, STAGE_SAAVN, STAGE_YOUTUBE_MUSIC]
        assert "song not found" in outcome.error.trace.for_stage(STAGE_SAAVN_ID)[0].outcome


class TestYoutubeFastPath:
    """Test tracks carrying a YouTube video id"""

    @pytest.mark.asyncio
    async def test_mp3_service_wins_when_not_blank(self, resolver, youtube_track, fake_mp3_extractor, fake_youtube):
        """Test the mp3 extraction result is preferred over local extraction"""
        fake_mp3_extractor.get_download_link.return_value = Outcome.success("https://mp3/abc.mp3")
        fake_youtube.get_video_stream_url.return_value = "https://local/stream"

        outcome = await resolver.find_best_download_link(youtube_track, AudioQuality.KBPS320)

        assert outcome.value == "https://mp3/abc.mp3"
        fake_mp3_extractor.get_download_link.assert_awaited_once_with("dQw4w9WgXcQ", AudioQuality.KBPS320)
        fake_youtube.get_video_stream_url.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_blank_mp3_falls_back_to_local_extraction(
        self, resolver, youtube_track, fake_mp3_extractor, fake_youtube, fake_saavn
    ):
        """Test blank mp3 result falls back to local extraction and is traced"""
        fake_mp3_extractor.get_download_link.return_value = Outcome.success("")
        fake_youtube.get_video_stream_url.return_value = "https://local/stream"

        traces = []

        def make_trace():
            trace = DiagnosticTrace()
            traces.append(trace)
            return trace

        with patch("spot_resolver.query.resolver.DiagnosticTrace", side_effect=make_trace):
            outcome = await resolver.find_best_download_link(youtube_track)

        assert outcome.value == "https://local/stream"
        fake_youtube.get_video_stream_url.assert_awaited_once_with("dQw4w9WgXcQ")
        fake_saavn.find_best_song_download_url.assert_not_awaited()
        assert traces[0].stages() == [STAGE_YT_MP3, STAGE_LOCAL_EXTRACTION]
        assert "couldn't fetch link for dQw4w9WgXcQ" in traces[0].entries[0].outcome

    @pytest.mark.asyncio
    async def test_mp3_failure_detail_is_traced(self, resolver, youtube_track, fake_mp3_extractor):
        """Test a failed mp3 call keeps its full diagnostic in the trace"""
        fake_mp3_extractor.get_download_link.return_value = Outcome.failure(
            YouTubeError("service down", details={"status": 503})
        )

        outcome = await resolver.find_best_download_link(youtube_track)

        trace = outcome.error.trace
        assert trace.stages()[:3] == [STAGE_YT_MP3, STAGE_LOCAL_EXTRACTION, STAGE_LOCAL_EXTRACTION]
        mp3_entry = trace.for_stage(STAGE_YT_MP3)[0].outcome
        assert "YouTubeError" in mp3_entry
        assert "status=503" in mp3_entry

    @pytest.mark.asyncio
    async def test_raising_extractor_is_a_stage_failure(
        self, resolver, youtube_track, fake_mp3_extractor, fake_youtube
    ):
        """Test collaborators that raise do not abort the run"""
        fake_mp3_extractor.get_download_link.side_effect = ConnectionError("reset by peer")
        fake_youtube.get_video_stream_url.return_value = "https://local/stream"

        outcome = await resolver.find_best_download_link(youtube_track)

        assert outcome.value == "https://local/stream"

    @pytest.mark.asyncio
    async def test_raising_extractor_is_traced_as_extraction_error(
        self, resolver, youtube_track, fake_mp3_extractor, fake_youtube
    ):
        """Test a raised exception is traced as ExtractionError with its cause"""
        fake_mp3_extractor.get_download_link.side_effect = ConnectionError("reset by peer")
        fake_youtube.get_video_stream_url.return_value = None

        outcome = await resolver.find_best_download_link(youtube_track)

        mp3_entry = outcome.error.trace.for_stage(STAGE_YT_MP3)[0].outcome
        assert "ExtractionError: ConnectionError: reset by peer" in mp3_entry
        assert "The above exception was the direct cause" in mp3_entry

    @pytest.mark.asyncio
    async def test_without_mp3_service(self, fake_saavn, fake_youtube, fake_youtube_music, preferences, youtube_track):
        """Test local extraction is used directly when no mp3 service exists"""
        fake_youtube.get_video_stream_url.return_value = "https://local/stream"
        resolver = DownloadLinkResolver(fake_saavn, fake_youtube, fake_youtube_music, None, preferences)

        outcome = await resolver.find_best_download_link(youtube_track)

        assert outcome.value == "https://local/stream"


class TestUnhandledSource:
    """Test video ids paired with a source that has no fast path"""

    @pytest.mark.asyncio
    async def test_records_entry_and_falls_through(self, resolver, fake_youtube_music, fake_saavn, fake_youtube):
        """Test the combination is traced and generic search still runs"""
        track = TrackDetails(title="Song", artists=("Artist",), source=Source.GAANA, video_id="g1")
        fake_youtube_music.find_best_download_url.return_value = Outcome.success("https://ytm/song")

        outcome = await resolver.find_best_download_link(track)

        assert outcome.value == "https://ytm/song"
        fake_saavn.get_song_by_id.assert_not_awaited()
        fake_youtube.get_video_stream_url.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unhandled_entry_in_failure_trace(self, resolver):
        """Test the unhandled entry comes first in the failure trace"""
        track = TrackDetails(title="Song", artists=("Artist",), source=Source.UNKNOWN, video_id="x1")

        outcome = await resolver.find_best_download_link(track)

        trace = outcome.error.trace
        assert trace.stages() == [STAGE_INVALID_ARGUMENTS, STAGE_SAAVN, STAGE_YOUTUBE_MUSIC]
        assert "unknown source is not handled" in trace.entries[0].outcome


class TestGenericFallback:
    """Test tracks without any provider id"""

    @pytest.mark.asyncio
    async def test_saavn_success_skips_youtube_music(self, resolver, search_track, fake_saavn, fake_youtube_music):
        """Test the first generic search to succeed wins"""
        fake_saavn.find_best_song_download_url.return_value = Outcome.success("https://saavn/q.mp4")

        outcome = await resolver.find_best_download_link(search_track)

        assert outcome.value == "https://saavn/q.mp4"
        fake_youtube_music.find_best_download_url.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_youtube_music_after_saavn_failure(self, resolver, search_track, fake_youtube_music):
        """Test YouTube Music URL is returned when Saavn search fails"""
        fake_youtube_music.find_best_download_url.return_value = Outcome.success("https://ytm/bohemian")

        outcome = await resolver.find_best_download_link(search_track, AudioQuality.KBPS320)

        assert outcome.value == "https://ytm/bohemian"
        fake_youtube_music.find_best_download_url.assert_awaited_once_with(search_track, AudioQuality.KBPS320)

    @pytest.mark.asyncio
    async def test_both_fail_carries_both_details(self, resolver, search_track, fake_saavn, fake_youtube_music):
        """Test total failure returns DownloadLinkFetchError with both stages"""
        fake_saavn.find_best_song_download_url.return_value = Outcome.failure(SaavnError("saavn: no match"))
        fake_youtube_music.find_best_download_url.return_value = Outcome.failure(YouTubeError("ytm: no match"))

        outcome = await resolver.find_best_download_link(search_track)

        assert outcome.failed
        error = outcome.error
        assert isinstance(error, DownloadLinkFetchError)
        assert error.trace.stages() == [STAGE_SAAVN, STAGE_YOUTUBE_MUSIC]
        assert "saavn: no match" in error.trace.for_stage(STAGE_SAAVN)[0].outcome
        assert "ytm: no match" in error.trace.for_stage(STAGE_YOUTUBE_MUSIC)[0].outcome
        assert "saavn: no match" in str(error)
        assert "ytm: no match" in str(error)

    @pytest.mark.asyncio
    async def test_blank_search_results_are_failures(self, resolver, search_track, fake_saavn, fake_youtube_music):
        """Test blank links from searches are not accepted"""
        fake_saavn.find_best_song_download_url.return_value = Outcome.success("")
        fake_youtube_music.find_best_download_url.return_value = Outcome.success("   ")

        outcome = await resolver.find_best_download_link(search_track)

        assert isinstance(outcome.error, DownloadLinkFetchError)
        assert len(outcome.error.trace) == 2

    @pytest.mark.asyncio
    async def test_default_quality_from_preferences(self, resolver, search_track, fake_saavn, preferences):
        """Test None quality reads the preference store"""
        preferences.audio_quality = AudioQuality.KBPS256

        await resolver.find_best_download_link(search_track)

        fake_saavn.find_best_song_download_url.assert_awaited_once_with(
            "Bohemian Rhapsody", ("Queen",), AudioQuality.KBPS256
        )

    @pytest.mark.asyncio
    async def test_failure_is_logged(self, resolver, search_track, caplog):
        """Test total failure is logged with the link failure extras"""
        with caplog.at_level(logging.ERROR):
            await resolver.find_best_download_link(search_track)

        records = [r for r in caplog.records if hasattr(r, "link_failed_track_title")]
        assert len(records) == 1
        assert records[0].link_failed_track_title == "Bohemian Rhapsody"
        assert STAGE_YOUTUBE_MUSIC in records[0].link_failed_trace

    @pytest.mark.asyncio
    async def test_sequential_calls_get_fresh_traces(self, resolver, search_track):
        """Test each call owns its own trace"""
        first = await resolver.find_best_download_link(search_track)
        second = await resolver.find_best_download_link(search_track)

        assert first.error.trace is not second.error.trace
        assert len(second.error.trace) == 2

    @pytest.mark.asyncio
    async def test_raising_search_does_not_abort(self, resolver, search_track, fake_saavn, fake_youtube_music):
        """Test a search that raises is recorded and the next one still runs"""
        fake_saavn.find_best_song_download_url = AsyncMock(side_effect=TimeoutError("saavn timed out"))
        fake_youtube_music.find_best_download_url.return_value = Outcome.success("https://ytm/x")

        outcome = await resolver.find_best_download_link(search_track)

        assert outcome.value == "https://ytm/x"

    @pytest.mark.asyncio
    async def test_raised_provider_error_is_kept(self, resolver, search_track, fake_saavn, fake_youtube_music):
        """Test a raised SaavnError reaches the trace unwrapped"""
        fake_saavn.find_best_song_download_url = AsyncMock(side_effect=SaavnError("blocked"))
        fake_youtube_music.find_best_download_url.side_effect = RuntimeError("quota")

        outcome = await resolver.find_best_download_link(search_track)

        trace = outcome.error.trace
        assert "SaavnError: blocked" in trace.for_stage(STAGE_SAAVN)[0].outcome
        assert "YouTubeError: RuntimeError: quota" in trace.for_stage(STAGE_YOUTUBE_MUSIC)[0].outcome
