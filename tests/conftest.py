"""Test configuration and fixtures"""

import tempfile
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest

from spot_resolver.core.models import (
    AudioQuality,
    FolderType,
    PlatformQueryResult,
    SongInfo,
    Source,
    TrackDetails,
)
from spot_resolver.core.outcome import Outcome


@pytest.fixture
def temp_dir():
    """Create temporary directory for tests"""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield Path(temp_dir)


@pytest.fixture
def search_track():
    """Track without a provider id, resolved by generic search"""
    return TrackDetails(
        title="Bohemian Rhapsody",
        artists=("Queen",),
        duration_sec=354,
        album_name="A Night at the Opera",
        year=1975,
        track_url="https://open.spotify.com/track/4u7EnebtmKWzUH433cf5Qv",
        source=Source.SPOTIFY,
    )


@pytest.fixture
def saavn_track():
    """Track carrying a JioSaavn song id"""
    return TrackDetails(
        title="Kesariya",
        artists=("Arijit Singh",),
        duration_sec=268,
        source=Source.JIO_SAAVN,
        video_id="saavn123",
    )


@pytest.fixture
def youtube_track():
    """Track carrying a YouTube video id"""
    return TrackDetails(
        title="Never Gonna Give You Up",
        artists=("Rick Astley",),
        duration_sec=213,
        source=Source.YOUTUBE,
        video_id="dQw4w9WgXcQ",
    )


@pytest.fixture
def sample_result(search_track):
    """Sample album query result"""
    return PlatformQueryResult(
        folder_type=FolderType.ALBUM,
        title="A Night at the Opera",
        cover_url="https://i.scdn.co/image/cover",
        track_list=[search_track],
    )


def _platform_provider(**methods):
    provider = Mock()
    provider.query = AsyncMock(return_value=Outcome.failure(RuntimeError("not configured")))
    for name, mock in methods.items():
        setattr(provider, name, mock)
    return provider


@pytest.fixture
def fake_spotify():
    return _platform_provider(authenticate=AsyncMock(return_value=None))


@pytest.fixture
def fake_youtube():
    return _platform_provider(get_video_stream_url=AsyncMock(return_value=None))


@pytest.fixture
def fake_saavn():
    return _platform_provider(
        get_song_by_id=AsyncMock(return_value=Outcome.success(SongInfo(id="saavn123", title="Kesariya"))),
        find_best_song_download_url=AsyncMock(
            return_value=Outcome.failure(RuntimeError("no saavn results"))
        ),
    )


@pytest.fixture
def fake_gaana():
    return _platform_provider()


@pytest.fixture
def fake_youtube_music():
    search = Mock()
    search.find_best_download_url = AsyncMock(
        return_value=Outcome.failure(RuntimeError("no youtube music results"))
    )
    return search


@pytest.fixture
def fake_mp3_extractor():
    extractor = Mock()
    extractor.get_download_link = AsyncMock(return_value=Outcome.success(""))
    return extractor


@pytest.fixture
def preferences():
    prefs = Mock()
    prefs.audio_quality = AudioQuality.KBPS160
    return prefs


@pytest.fixture
def fake_store():
    store = Mock()
    store.add_record = Mock(return_value=None)
    return store
