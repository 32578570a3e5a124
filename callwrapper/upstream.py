"""Single upstream calls against the Spotify Web API.

Every call goes through :meth:`UpstreamClient.call`, which binds the current
bearer token, classifies the attempt, and refreshes-and-retries exactly once
when the token was rejected. Nothing else is retried here.
"""

import logging
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional, TypeVar, Union

import requests
import spotipy
from spotipy import SpotifyException

from .config import SpotifySettings
from .errors import UpstreamAuthError
from .http_logging import TimedRequestsSession, patch_spotipy_client
from .models import Page, Token
from .token_manager import TokenManager

logger = logging.getLogger(__name__)

T = TypeVar("T")

SEARCH_KINDS = ("artist", "album", "playlist")

# Album groups requested from the artist-albums endpoint
ARTIST_ALBUM_GROUPS = "album,single"

# Only the track id of each playlist entry is needed
PLAYLIST_TRACK_FIELDS = "items(track(id)),total,offset,limit"


@dataclass(frozen=True)
class Ok:
    value: Any


@dataclass(frozen=True)
class AuthExpired:
    error: SpotifyException


@dataclass(frozen=True)
class Failed:
    error: Exception


CallOutcome = Union[Ok, AuthExpired, Failed]


class UpstreamClient:
    """Issues single Spotify API calls with a valid bearer token."""

    def __init__(
        self,
        token_manager: TokenManager,
        settings: SpotifySettings,
        session: Optional[requests.Session] = None,
        http_logging: bool = False,
        spotify_factory: Optional[Callable[[str], spotipy.Spotify]] = None,
    ):
        """Initialize the upstream client.

        Args:
            token_manager: Source of bearer tokens.
            settings: Spotify API configuration.
            session: Shared HTTP session. A plain session has no retry
                adapter mounted, so spotipy does not retry behind our back.
            http_logging: Log every request with timing.
            spotify_factory: Builds a spotipy client for an access token.
        """
        self._token_manager = token_manager
        self.settings = settings
        self._session = session or requests.Session()
        self._timed_session = (
            TimedRequestsSession(self._session) if http_logging else None
        )
        self._spotify_factory = spotify_factory or self._build_spotify
        # Bound client for the current access token
        self._client: Optional[tuple[str, spotipy.Spotify]] = None
        self._client_lock = threading.Lock()

    def _build_spotify(self, access_token: str) -> spotipy.Spotify:
        client = spotipy.Spotify(
            auth=access_token,
            requests_session=self._session,
            requests_timeout=self.settings.requests_timeout,
            retries=0,
            status_retries=0,
        )
        if self._timed_session is not None:
            patch_spotipy_client(client, self._timed_session)
        return client

    def _client_for(self, access_token: str) -> spotipy.Spotify:
        """Return the spotipy client bound to this token, building it once.

        spotipy closes the shared session when a client is garbage collected.
        """
        with self._client_lock:
            if self._client is None or self._client[0] != access_token:
                self._client = (access_token, self._spotify_factory(access_token))
            return self._client[1]

    def log_traffic_summary(self) -> None:
        """Write call count and time in flight to the HTTP log, if enabled."""
        if self._timed_session is not None:
            self._timed_session.log_summary()

    def call(self, description: str, request: Callable[[spotipy.Spotify], T]) -> T:
        """Run one upstream request.

        Args:
            description: Human-readable name of the request, for logs.
            request: Function issuing the request on a bound spotipy client.

        Returns:
            Whatever ``request`` returns.

        Raises:
            UpstreamAuthError: If the refreshed token is rejected as well.
            CredentialsExchangeError: If the token cannot be refreshed.
            SpotifyException: Any other upstream error, unchanged.
        """
        token = self._token_manager.ensure_valid()
        outcome = self._attempt(token, request)

        if isinstance(outcome, AuthExpired):
            logger.info(f"Access token rejected for {description}, refreshing")
            token = self._token_manager.invalidate_and_refresh(token)
            outcome = self._attempt(token, request)
            if isinstance(outcome, AuthExpired):
                logger.error(f"Refreshed token rejected for {description}")
                raise UpstreamAuthError(description) from outcome.error

        if isinstance(outcome, Failed):
            logger.debug(f"Upstream call {description} failed: {outcome.error}")
            raise outcome.error

        return outcome.value

    def _attempt(
        self, token: Token, request: Callable[[spotipy.Spotify], Any]
    ) -> CallOutcome:
        try:
            return Ok(request(self._client_for(token.access_token)))
        except SpotifyException as e:
            if e.http_status == 401:
                return AuthExpired(e)
            return Failed(e)
        except requests.RequestException as e:
            return Failed(e)

    # Endpoint wrappers

    def search(self, kind: str, query: str, limit: int = 20) -> Page:
        """Search the catalog for one kind of entity."""
        if kind not in SEARCH_KINDS:
            raise ValueError(f"Unsupported search kind: {kind}")
        result = self.call(
            f"search {kind} '{query}'",
            lambda sp: sp.search(q=query, limit=limit, type=kind),
        )
        return Page.from_api(result.get(f"{kind}s") or {})

    def get_entity(self, kind: str, entity_id: str) -> dict:
        """Fetch one full artist, album, track or playlist."""
        market = self.settings.market
        lookups: dict[str, Callable[[spotipy.Spotify], dict]] = {
            "artist": lambda sp: sp.artist(entity_id),
            "album": lambda sp: sp.album(entity_id, market=market),
            "track": lambda sp: sp.track(entity_id, market=market),
            "playlist": lambda sp: sp.playlist(entity_id, market=market),
        }
        if kind not in lookups:
            raise ValueError(f"Unsupported entity kind: {kind}")
        return self.call(f"{kind} {entity_id}", lookups[kind])

    def get_several(self, kind: str, ids: list[str]) -> list[Optional[dict]]:
        """Fetch several entities by id in one call.

        The returned list may contain None slots, notably for audio features
        of tracks that were never analysed.
        """
        market = self.settings.market
        description = f"{len(ids)} {kind}"

        if kind == "album":
            result = self.call(description, lambda sp: sp.albums(ids, market=market))
            return result.get("albums") or []
        if kind == "track":
            result = self.call(description, lambda sp: sp.tracks(ids, market=market))
            return result.get("tracks") or []
        if kind == "artist":
            result = self.call(description, lambda sp: sp.artists(ids))
            return result.get("artists") or []
        if kind == "audio_features":
            return self.call(description, lambda sp: sp.audio_features(ids)) or []
        raise ValueError(f"Unsupported batch kind: {kind}")

    def artist_albums(self, artist_id: str, offset: int, limit: int) -> Page:
        result = self.call(
            f"albums of artist {artist_id} at {offset}",
            lambda sp: sp.artist_albums(
                artist_id,
                include_groups=ARTIST_ALBUM_GROUPS,
                country=self.settings.market,
                limit=limit,
                offset=offset,
            ),
        )
        return Page.from_api(result)

    def album_tracks(self, album_id: str, offset: int, limit: int) -> Page:
        result = self.call(
            f"tracks of album {album_id} at {offset}",
            lambda sp: sp.album_tracks(
                album_id, limit=limit, offset=offset, market=self.settings.market
            ),
        )
        return Page.from_api(result)

    def playlist_tracks(self, playlist_id: str, offset: int, limit: int) -> Page:
        result = self.call(
            f"tracks of playlist {playlist_id} at {offset}",
            lambda sp: sp.playlist_items(
                playlist_id,
                fields=PLAYLIST_TRACK_FIELDS,
                limit=limit,
                offset=offset,
                market=self.settings.market,
                additional_types=("track",),
            ),
        )
        return Page.from_api(result)
