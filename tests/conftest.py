"""Pytest fixtures shared by the test suite.

Nothing here touches the network: spotipy is replaced by FakeSpotify and the
credentials manager by a Mock that hands out numbered tokens.
"""
import time
from unittest.mock import Mock

import pytest

from callwrapper.aggregator import SpotifyAggregator
from callwrapper.config import PagingSettings, SpotifySettings
from callwrapper.token_manager import TokenManager
from callwrapper.upstream import UpstreamClient

from .mocks.fake_spotify import FakeSpotify


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep real SPOTIFY_/PAGING_ variables and .env files out of tests."""
    for name in (
        "SPOTIFY_CLIENT_ID",
        "SPOTIFY_CLIENT_SECRET",
        "SPOTIFY_MARKET",
        "SPOTIFY_INCLUDE_AUDIO_FEATURES",
        "SPOTIFY_CLIENT_SECRET_PARAM",
        "PAGING_MAX_PAGES",
        "PAGING_TRACK_BATCH_SIZE",
        "REQUEST_DEADLINE_SECONDS",
        "DEBUG",
        "HTTP_LOG",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def auth_manager():
    """Mock SpotifyClientCredentials issuing token-1, token-2, ..."""
    manager = Mock()
    issued = []

    def get_access_token(as_dict=False, check_cache=True):
        issued.append(f"token-{len(issued) + 1}")
        return issued[-1]

    manager.get_access_token.side_effect = get_access_token
    manager.cache_handler.get_cached_token.side_effect = lambda: {
        "access_token": issued[-1],
        "expires_at": int(time.time()) + 3600,
    }
    manager.issued = issued
    return manager


@pytest.fixture
def token_manager(auth_manager):
    return TokenManager(auth_manager)


@pytest.fixture
def spotify_settings():
    return SpotifySettings(client_id="test-client", client_secret="test-secret")


@pytest.fixture
def paging_settings():
    return PagingSettings()


@pytest.fixture
def fake_spotify():
    return FakeSpotify()


@pytest.fixture
def upstream(token_manager, spotify_settings, fake_spotify):
    return UpstreamClient(
        token_manager, spotify_settings, spotify_factory=fake_spotify.bind
    )


@pytest.fixture
def aggregator(upstream, paging_settings):
    return SpotifyAggregator(upstream, paging_settings, deadline_seconds=None)
