"""Factory for wiring the catalog facade."""

import logging
from typing import Optional

import requests

from .aggregator import SpotifyAggregator
from .base_client import MusicCatalog
from .config import AppSettings
from .token_manager import TokenManager
from .upstream import UpstreamClient

logger = logging.getLogger(__name__)


def create_music_catalog(
    settings: AppSettings,
    http_logging: Optional[bool] = None,
    session: Optional[requests.Session] = None,
    token_manager: Optional[TokenManager] = None,
) -> MusicCatalog:
    """Create the catalog facade from settings.

    Args:
        settings: Application settings.
        http_logging: Log upstream traffic. Defaults to ``settings.http_log``.
        session: Optional HTTP session shared by all upstream calls.
        token_manager: Optional token manager to share between facades, so
            warm Lambda containers keep their token across invocations.

    Returns:
        Configured MusicCatalog instance.
    """
    if http_logging is None:
        http_logging = settings.http_log

    token_manager = token_manager or TokenManager.from_settings(settings.spotify)
    upstream = UpstreamClient(
        token_manager,
        settings.spotify,
        session=session,
        http_logging=http_logging,
    )

    logger.debug(
        f"Using Spotify market {settings.spotify.market}, "
        f"audio features {'on' if settings.spotify.include_audio_features else 'off'}"
    )
    return SpotifyAggregator(
        upstream,
        settings.paging,
        include_audio_features=settings.spotify.include_audio_features,
        deadline_seconds=settings.request_deadline_seconds,
    )
