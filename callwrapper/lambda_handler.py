"""AWS Lambda handler for callwrapper.

Serves the catalog facade behind API Gateway (proxy integration). Routes are
matched on the request path, and upstream failures are translated into HTTP
status codes. The client secret can be kept in SSM Parameter Store.
"""

import json
import logging
import os
import re
from typing import Any, Callable, Optional

import boto3
import requests
from spotipy import SpotifyException

from .base_client import MusicCatalog
from .client_factory import create_music_catalog
from .config import AppSettings, SpotifySettings
from .errors import (
    CallwrapperError,
    CredentialsExchangeError,
    DeadlineExceededError,
    UpstreamAuthError,
)
from .models import to_front_end

logger = logging.getLogger()
logger.setLevel(logging.INFO)

# SSM parameter holding the Spotify client secret, if not given directly
SECRET_PARAM_ENV = "SPOTIFY_CLIENT_SECRET_PARAM"

# Upstream statuses passed through to the front end as is
PASSTHROUGH_STATUSES = {400, 404, 429}

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Content-Type": "application/json",
}

SEARCH_ROUTE = re.compile(r"^/search/(?P<kind>artist|album|playlist)/?$")
ARTIST_TRACKS_ROUTE = re.compile(r"^/artists/(?P<id>[^/]+)/tracks/?$")
ARTIST_ROUTE = re.compile(r"^/artists/(?P<id>[^/]+)/?$")
PLAYLIST_TRACKS_ROUTE = re.compile(r"^/playlists/(?P<id>[^/]+)/tracks/?$")

# Reused across invocations of a warm container
_catalog: Optional[MusicCatalog] = None


def get_client_secret_from_ssm(param_name: str) -> str:
    """Read the Spotify client secret from SSM Parameter Store."""
    ssm = boto3.client("ssm")
    response = ssm.get_parameter(Name=param_name, WithDecryption=True)
    logger.info(f"Loaded client secret from SSM parameter {param_name}")
    return response["Parameter"]["Value"]


def get_settings_from_env() -> AppSettings:
    """Load settings from Lambda environment variables."""
    param_name = os.environ.get(SECRET_PARAM_ENV)
    if not param_name:
        return AppSettings()

    spotify = SpotifySettings(client_secret=get_client_secret_from_ssm(param_name))
    return AppSettings(spotify=spotify)


def get_catalog() -> MusicCatalog:
    global _catalog
    if _catalog is None:
        _catalog = create_music_catalog(get_settings_from_env())
    return _catalog


def _response(
    status_code: int, body: Any, headers: Optional[dict[str, str]] = None
) -> dict[str, Any]:
    return {
        "statusCode": status_code,
        "headers": {**CORS_HEADERS, **(headers or {})},
        "body": json.dumps(body),
    }


def _error(
    status_code: int, message: str, headers: Optional[dict[str, str]] = None
) -> dict[str, Any]:
    return _response(status_code, {"error": message}, headers)


def route(
    catalog: MusicCatalog, path: str, params: dict[str, str]
) -> Optional[Callable[[], Any]]:
    """Match a request path to a catalog operation.

    Returns:
        A zero-argument callable running the operation, or None if no route
        matches.

    Raises:
        ValueError: If a search request has no ``search`` parameter.
    """
    match = SEARCH_ROUTE.match(path)
    if match:
        query = (params.get("search") or "").strip()
        if not query:
            raise ValueError("Missing 'search' query parameter")
        operations = {
            "artist": catalog.search_artist,
            "album": catalog.search_album,
            "playlist": catalog.search_playlist,
        }
        operation = operations[match.group("kind")]
        return lambda: operation(query)

    match = ARTIST_TRACKS_ROUTE.match(path)
    if match:
        return lambda: catalog.get_artist_tracks(match.group("id"))

    match = PLAYLIST_TRACKS_ROUTE.match(path)
    if match:
        return lambda: catalog.get_playlist_tracks(match.group("id"))

    match = ARTIST_ROUTE.match(path)
    if match:
        return lambda: catalog.get_artist_catalog(match.group("id"))

    return None


def translate_error(error: Exception) -> dict[str, Any]:
    """Turn an aggregation failure into an HTTP response."""
    if isinstance(error, SpotifyException):
        if error.http_status in PASSTHROUGH_STATUSES:
            headers = {}
            retry_after = (error.headers or {}).get("Retry-After")
            if error.http_status == 429 and retry_after:
                headers["Retry-After"] = str(retry_after)
            return _error(error.http_status, error.msg, headers)
        return _error(502, f"Spotify returned {error.http_status}")
    if isinstance(error, DeadlineExceededError):
        return _error(504, error.message)
    if isinstance(error, (UpstreamAuthError, CredentialsExchangeError)):
        return _error(502, "Could not authenticate with Spotify")
    if isinstance(error, CallwrapperError):
        return _error(502, error.message)
    if isinstance(error, requests.RequestException):
        return _error(502, "Could not reach Spotify")
    raise error


def _http_method(event: dict[str, Any]) -> str:
    """Request method from a REST API (v1) or HTTP API (v2) event."""
    method = event.get("httpMethod") or (
        (event.get("requestContext") or {}).get("http") or {}
    ).get("method")
    return (method or "GET").upper()


def handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """Lambda handler function.

    Triggered by API Gateway for every front-end request.
    """
    path = event.get("rawPath") or event.get("path") or "/"
    params = event.get("queryStringParameters") or {}
    logger.info(f"Request: {path} {params}")

    if _http_method(event) == "OPTIONS":
        return _response(204, None)

    try:
        catalog = get_catalog()
        try:
            operation = route(catalog, path, params)
        except ValueError as e:
            return _error(400, str(e))
        if operation is None:
            return _error(404, f"No route for {path}")

        result = operation()
    except (SpotifyException, CallwrapperError, requests.RequestException) as e:
        logger.error(f"Request {path} failed: {e}")
        return translate_error(e)
    except Exception as e:
        logger.error(f"Lambda execution failed: {e}", exc_info=True)
        return _error(500, "Internal server error")

    return _response(200, to_front_end(result))


# For local testing
if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    result = handler(
        {"path": "/search/artist", "queryStringParameters": {"search": "nina simone"}},
        None,
    )
    print(json.dumps(result, indent=2))
