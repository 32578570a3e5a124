"""Bearer token management for the client-credentials flow."""

import logging
import threading
import time
from typing import Optional

import requests
from spotipy.cache_handler import MemoryCacheHandler
from spotipy.oauth2 import SpotifyClientCredentials, SpotifyOauthError

from .config import SpotifySettings
from .errors import CredentialsExchangeError
from .models import Token

logger = logging.getLogger(__name__)

# Treat tokens as expired this many seconds early
EXPIRY_MARGIN_SECONDS = 60.0


class TokenManager:
    """Holds the current bearer token and refreshes it on demand.

    The token is only ever replaced under ``_lock``, so concurrent callers
    that all hit an expired token trigger a single credentials exchange.
    """

    def __init__(
        self,
        auth_manager: SpotifyClientCredentials,
        expiry_margin: float = EXPIRY_MARGIN_SECONDS,
    ):
        """Initialize the token manager.

        Args:
            auth_manager: spotipy credentials manager used for the exchange.
            expiry_margin: Seconds before expiry at which a token is refreshed.
        """
        self._auth_manager = auth_manager
        self._expiry_margin = expiry_margin
        self._token: Optional[Token] = None
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: SpotifySettings) -> "TokenManager":
        # In-memory cache: spotipy would otherwise write a .cache file
        auth_manager = SpotifyClientCredentials(
            client_id=settings.client_id,
            client_secret=settings.client_secret,
            cache_handler=MemoryCacheHandler(),
            requests_timeout=settings.requests_timeout,
        )
        return cls(auth_manager)

    def ensure_valid(self) -> Token:
        """Return a usable token, exchanging credentials if none is held.

        Raises:
            CredentialsExchangeError: If the exchange fails.
        """
        with self._lock:
            if self._token is None or self._token.is_expired(self._expiry_margin):
                self._token = self._exchange()
            return self._token

    def invalidate_and_refresh(self, stale: Optional[Token] = None) -> Token:
        """Drop a rejected token and fetch a fresh one.

        Args:
            stale: The token the upstream rejected. If another caller has
                already replaced it, the newer token is returned as is.

        Raises:
            CredentialsExchangeError: If the exchange fails.
        """
        with self._lock:
            current = self._token
            if (
                current is not None
                and current != stale
                and not current.is_expired(self._expiry_margin)
            ):
                logger.debug("Token already refreshed by another caller")
                return current

            self._token = None
            self._token = self._exchange()
            return self._token

    def _exchange(self) -> Token:
        """Run the client-credentials exchange. Caller holds the lock."""
        logger.debug("Requesting new access token")
        try:
            access_token = self._auth_manager.get_access_token(
                as_dict=False, check_cache=False
            )
        except SpotifyOauthError as e:
            logger.error(f"Credentials exchange rejected: {e}")
            raise CredentialsExchangeError(
                f"Credentials exchange rejected: {e.error_description or e}",
                error_code=e.error,
            ) from e
        except requests.RequestException as e:
            logger.error(f"Credentials exchange failed: {e}")
            raise CredentialsExchangeError(f"Credentials exchange failed: {e}") from e

        token_info = self._auth_manager.cache_handler.get_cached_token() or {}
        expires_at = token_info.get("expires_at")
        if expires_at is None:
            expires_at = time.time() + token_info.get("expires_in", 3600)

        logger.debug(f"Credentials expire in: {expires_at - time.time():.0f}s")
        return Token(access_token=access_token, expires_at=float(expires_at))
