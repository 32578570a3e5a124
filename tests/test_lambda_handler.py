"""Tests for the API Gateway handler."""

import json
from unittest.mock import Mock

import pytest
import requests
from spotipy import SpotifyException

from callwrapper import lambda_handler
from callwrapper.errors import (
    CredentialsExchangeError,
    DeadlineExceededError,
    PaginationLimitError,
    UpstreamAuthError,
)


@pytest.fixture
def serve(monkeypatch, aggregator):
    """Install the fake-backed aggregator as the warm catalog."""
    monkeypatch.setattr(lambda_handler, "_catalog", aggregator)

    def invoke(path, params=None, method="GET"):
        response = lambda_handler.handler(
            {"path": path, "queryStringParameters": params, "httpMethod": method},
            None,
        )
        return response["statusCode"], json.loads(response["body"]), response["headers"]

    return invoke


class TestRouting:
    """Paths mapped onto catalog operations."""

    def test_search_artist(self, serve, fake_spotify):
        fake_spotify.search_results[("artist", "nina")] = [{"id": "a1", "name": "Nina"}]

        status, body, headers = serve("/search/artist", {"search": "nina"})

        assert status == 200
        assert body[0]["spotifyId"] == "a1"
        assert headers["Access-Control-Allow-Origin"] == "*"

    def test_search_without_query_is_bad_request(self, serve, fake_spotify):
        status, body, _ = serve("/search/album", {"search": "  "})

        assert status == 400
        assert "search" in body["error"]
        assert fake_spotify.calls == []

    def test_artist_tracks(self, serve, fake_spotify):
        fake_spotify.seed_artist("artist-1", album_count=2)

        status, body, _ = serve("/artists/artist-1/tracks")

        assert status == 200
        assert set(body) == {"artist-1-album-0-track-0", "artist-1-album-1-track-0"}
        assert body["artist-1-album-0-track-0"]["tempo"] == 120.0

    def test_playlist_tracks(self, serve, fake_spotify):
        fake_spotify.seed_playlist("p1", 3)

        status, body, _ = serve("/playlists/p1/tracks")

        assert status == 200
        assert len(body) == 3

    def test_artist_catalog(self, serve, fake_spotify):
        fake_spotify.seed_artist("artist-1", album_count=1)

        status, body, _ = serve("/artists/artist-1")

        assert status == 200
        assert set(body) == {"artists", "albums", "tracks"}

    def test_unknown_path(self, serve):
        status, _, _ = serve("/albums/x")

        assert status == 404

    def test_preflight(self, serve):
        response = lambda_handler.handler({"path": "/search/artist", "httpMethod": "OPTIONS"}, None)

        assert response["statusCode"] == 204

    def test_preflight_http_api_event(self, serve):
        response = lambda_handler.handler(
            {
                "rawPath": "/artists/a1/tracks",
                "requestContext": {"http": {"method": "OPTIONS"}},
            },
            None,
        )

        assert response["statusCode"] == 204


class TestErrorTranslation:
    """Upstream failures mapped to HTTP statuses."""

    @pytest.mark.parametrize("status", [400, 404, 429])
    def test_client_statuses_pass_through(self, serve, fake_spotify, status):
        fake_spotify.pending_errors.append(SpotifyException(status, -1, "nope"))

        code, body, _ = serve("/playlists/p1/tracks")

        assert code == status
        assert body["error"] == "nope"

    def test_rate_limit_keeps_retry_after(self):
        error = SpotifyException(429, -1, "slow down", headers={"Retry-After": 7})

        response = lambda_handler.translate_error(error)

        assert response["statusCode"] == 429
        assert response["headers"]["Retry-After"] == "7"

    @pytest.mark.parametrize("status", [403, 500, 503])
    def test_other_upstream_statuses_become_bad_gateway(self, status):
        response = lambda_handler.translate_error(SpotifyException(status, -1, "x"))

        assert response["statusCode"] == 502

    @pytest.mark.parametrize(
        "error,status",
        [
            (DeadlineExceededError(60), 504),
            (UpstreamAuthError("artist a1"), 502),
            (CredentialsExchangeError(), 502),
            (PaginationLimitError(200, 99999), 502),
            (requests.ConnectionError("down"), 502),
        ],
    )
    def test_pipeline_errors(self, error, status):
        assert lambda_handler.translate_error(error)["statusCode"] == status

    def test_malformed_upstream_record_is_server_error(self, serve, fake_spotify):
        fake_spotify.search_results[("artist", "x")] = [{"id": "a1"}]

        status, body, headers = serve("/search/artist", {"search": "x"})

        assert status == 500
        assert body["error"] == "Internal server error"
        assert headers["Access-Control-Allow-Origin"] == "*"

    def test_missing_configuration_is_server_error(self, monkeypatch):
        monkeypatch.setattr(lambda_handler, "_catalog", None)

        response = lambda_handler.handler(
            {"path": "/search/artist", "queryStringParameters": {"search": "x"}}, None
        )

        assert response["statusCode"] == 500
        assert response["headers"]["Access-Control-Allow-Origin"] == "*"
        assert lambda_handler._catalog is None

    def test_rejected_token_twice_is_bad_gateway(self, serve, fake_spotify):
        fake_spotify.rejected_tokens.update({"token-1", "token-2"})

        status, body, _ = serve("/search/artist", {"search": "x"})

        assert status == 502
        assert body["error"] == "Could not authenticate with Spotify"


class TestSettingsFromEnv:
    """Client secret loaded from SSM Parameter Store."""

    def test_secret_read_from_ssm(self, monkeypatch):
        ssm = Mock()
        ssm.get_parameter.return_value = {"Parameter": {"Value": "from-ssm"}}
        boto3_client = Mock(return_value=ssm)
        monkeypatch.setattr(lambda_handler.boto3, "client", boto3_client)
        monkeypatch.setenv("SPOTIFY_CLIENT_ID", "id")
        monkeypatch.setenv("SPOTIFY_CLIENT_SECRET_PARAM", "/callwrapper/secret")

        settings = lambda_handler.get_settings_from_env()

        assert settings.spotify.client_secret == "from-ssm"
        boto3_client.assert_called_once_with("ssm")
        ssm.get_parameter.assert_called_once_with(
            Name="/callwrapper/secret", WithDecryption=True
        )

    def test_plain_env_without_ssm(self, monkeypatch):
        monkeypatch.setattr(lambda_handler.boto3, "client", Mock(side_effect=AssertionError))
        monkeypatch.setenv("SPOTIFY_CLIENT_ID", "id")
        monkeypatch.setenv("SPOTIFY_CLIENT_SECRET", "plain")

        assert lambda_handler.get_settings_from_env().spotify.client_secret == "plain"

    def test_catalog_is_built_once(self, monkeypatch):
        monkeypatch.setattr(lambda_handler, "_catalog", None)
        factory = Mock(return_value=Mock())
        monkeypatch.setattr(lambda_handler, "create_music_catalog", factory)
        monkeypatch.setattr(lambda_handler, "get_settings_from_env", Mock())

        first = lambda_handler.get_catalog()
        second = lambda_handler.get_catalog()

        assert first is second
        assert factory.call_count == 1
