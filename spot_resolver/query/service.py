"""
Query facade for spot-resolver.

PlatformQueryService is the single entry point callers use:
    - query(link): classify the link and dispatch to the right provider,
      recording successful results in the background
    - authenticate(): Spotify authentication pass-through
    - find_best_download_link(track): download link resolution

build_service() wires everything from a Config, creating the library
backed providers and the SQLite record store. JioSaavn, Gaana and mp3
extraction collaborators are passed in.

Usage:
    config = load_config()
    async with build_service(config, saavn=saavn, gaana=gaana) as service:
        await service.authenticate()
        outcome = await service.query("https://open.spotify.com/playlist/...")
"""

from spot_resolver.core.config import Config
from spot_resolver.core.database import Database
from spot_resolver.core.exceptions import (
    GaanaError,
    LinkInvalidError,
    ProviderError,
    SaavnError,
    SpotifyError,
    SpotResolverError,
    YouTubeError,
)
from spot_resolver.core.logger import get_logger
from spot_resolver.core.models import AudioQuality, PlatformQueryResult, Source, TrackDetails
from spot_resolver.core.outcome import Outcome
from spot_resolver.providers.base import (
    GaanaProviderProtocol,
    Mp3Extractor,
    PlatformProvider,
    SaavnProviderProtocol,
    SpotifyProviderProtocol,
    YoutubeProviderProtocol,
)
from spot_resolver.providers.spotify import SpotifyProvider
from spot_resolver.providers.youtube import YoutubeProvider
from spot_resolver.providers.youtube_music import YoutubeMusicSearch
from spot_resolver.query.classifier import classify_link
from spot_resolver.query.recorder import ResultRecorder
from spot_resolver.query.resolver import DownloadLinkResolver

logger = get_logger(__name__)


# Error type for a provider that raises instead of returning a failed Outcome
_PROVIDER_ERRORS: dict[Source, type[ProviderError]] = {
    Source.SPOTIFY: SpotifyError,
    Source.YOUTUBE: YouTubeError,
    Source.JIO_SAAVN: SaavnError,
    Source.GAANA: GaanaError,
}


class PlatformQueryService:
    """
    Facade over the providers, the resolver and the recorder.

    Provider outcomes are returned unchanged. This class creates a failure
    itself only for links no provider recognises (LinkInvalidError) and
    for a provider that raises, whose exception is wrapped in that
    platform's ProviderError subclass.
    """

    def __init__(
        self,
        spotify: SpotifyProviderProtocol,
        youtube: YoutubeProviderProtocol,
        saavn: SaavnProviderProtocol,
        gaana: GaanaProviderProtocol,
        resolver: DownloadLinkResolver,
        recorder: ResultRecorder
    ) -> None:
        self._spotify = spotify
        self._resolver = resolver
        self._recorder = recorder
        self._providers: dict[Source, PlatformProvider] = {
            Source.SPOTIFY: spotify,
            Source.YOUTUBE: youtube,
            Source.JIO_SAAVN: saavn,
            Source.GAANA: gaana,
        }

    @property
    def recorder(self) -> ResultRecorder:
        return self._recorder

    async def query(self, link: str) -> Outcome[PlatformQueryResult]:
        """
        Resolve a link into a PlatformQueryResult.

        Returns:
            Failure with LinkInvalidError if the link matches no platform
            (no provider is called), otherwise the provider's outcome.
            Never raises for provider errors.
        """
        source = classify_link(link)
        if source is None:
            logger.warning(f"Invalid link: {link}")
            return Outcome.failure(LinkInvalidError(link))

        try:
            outcome = await self._providers[source].query(link)
        except SpotResolverError as e:
            outcome = Outcome.failure(e)
        except Exception as e:
            error = _PROVIDER_ERRORS[source](
                f"{source.value} query failed: {e}",
                details={"link": link, "original_error": str(e)}
            )
            error.__cause__ = e
            outcome = Outcome.failure(error)

        if outcome.ok:
            # The caller owns outcome.value; the recorder gets its own snapshot
            self._recorder.record_async(link, outcome.value.copy())
        else:
            logger.debug(f"{source.value} query failed for {link}: {outcome.error}")

        return outcome

    async def authenticate(self) -> None:
        """Authenticate the Spotify provider. Safe to call more than once."""
        await self._spotify.authenticate()

    async def find_best_download_link(
        self,
        track: TrackDetails,
        preferred_quality: AudioQuality | None = None
    ) -> Outcome[str]:
        """See DownloadLinkResolver.find_best_download_link."""
        return await self._resolver.find_best_download_link(track, preferred_quality)

    async def aclose(self, timeout: float | None = None) -> int:
        """
        Wait for background recording to finish.

        Args:
            timeout: Seconds to wait before cancelling what is left.

        Returns:
            Number of recording tasks cancelled.
        """
        return await self._recorder.drain(timeout)

    async def __aenter__(self) -> "PlatformQueryService":
        return self

    async def __aexit__(self, exc_type, exc_value, traceback) -> None:
        await self.aclose()


def build_service(
    config: Config,
    saavn: SaavnProviderProtocol,
    gaana: GaanaProviderProtocol,
    mp3_extractor: Mp3Extractor | None = None,
    database: Database | None = None
) -> PlatformQueryService:
    """
    Create a PlatformQueryService from configuration.

    Args:
        config: Loaded application configuration.
        saavn: JioSaavn provider implementation.
        gaana: Gaana provider implementation.
        mp3_extractor: Optional mp3 extraction service for YouTube ids.
        database: Record store to use instead of opening
                  config.output.database_path.

    Raises:
        DatabaseError: If the record database cannot be opened.
    """
    if database is None:
        database = Database(config.output.database_path)

    spotify_config = config.spotify
    spotify = SpotifyProvider(
        spotify_config.client_id if spotify_config else None,
        spotify_config.client_secret if spotify_config else None,
    )
    youtube = YoutubeProvider(cookie_file=config.youtube.cookie_file)
    youtube_music = YoutubeMusicSearch(
        youtube,
        mp3_extractor=mp3_extractor,
        language=config.youtube_music.language,
        search_limit=config.youtube_music.search_limit,
    )
    resolver = DownloadLinkResolver(
        saavn=saavn,
        youtube=youtube,
        youtube_music=youtube_music,
        mp3_extractor=mp3_extractor,
        preferences=config.preferences,
    )

    return PlatformQueryService(
        spotify=spotify,
        youtube=youtube,
        saavn=saavn,
        gaana=gaana,
        resolver=resolver,
        recorder=ResultRecorder(database),
    )
