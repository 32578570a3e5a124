"""Upstream traffic log for debugging aggregation runs.

Every Spotify Web API call is written to a dedicated log with its sequence
number, millisecond timing and status. One aggregation can issue hundreds of
calls, so bodies are cut short and the bearer token never reaches the log.
"""

import logging
import threading
import time
from datetime import datetime
from pathlib import Path
from typing import Optional
from urllib.parse import urlsplit

import requests

http_logger = logging.getLogger("callwrapper.http")

# Headers replaced by a placeholder in the log
REDACTED_HEADERS = {"authorization", "cookie", "set-cookie"}

BODY_PREVIEW_CHARS = 500


def setup_http_logging(
    log_file: Optional[Path] = None,
    console: bool = False,
) -> None:
    """Send upstream traffic to its own log file.

    Args:
        log_file: Path to log file. Defaults to callwrapper_http.log
        console: Also log to stderr (one or more lines per upstream call)
    """
    log_file = log_file or Path("callwrapper_http.log")
    formatter = logging.Formatter(
        "%(asctime)s.%(msecs)03d %(message)s",
        datefmt="%H:%M:%S",
    )

    handlers: list[logging.Handler] = [logging.FileHandler(log_file, mode="a")]
    if console:
        handlers.append(logging.StreamHandler())
    for handler in handlers:
        handler.setFormatter(formatter)
        http_logger.addHandler(handler)

    http_logger.setLevel(logging.DEBUG)
    http_logger.propagate = False

    http_logger.info(f"--- upstream log opened {datetime.now().isoformat()} ---")


def _redact(headers) -> dict:
    return {
        name: ("<redacted>" if name.lower() in REDACTED_HEADERS else value)
        for name, value in dict(headers or {}).items()
    }


def _preview(text: str) -> str:
    if len(text) <= BODY_PREVIEW_CHARS:
        return text
    return f"{text[:BODY_PREVIEW_CHARS]}... ({len(text)} chars)"


def _endpoint(url: str) -> str:
    """Strip scheme and host: https://api.spotify.com/v1/albums -> /v1/albums"""
    return urlsplit(url).path or url


class TimedRequestsSession:
    """Session wrapper that numbers, times and logs each upstream call.

    One instance is shared by every spotipy client of an UpstreamClient, so
    numbering runs across token refreshes and the totals cover a whole run.
    """

    def __init__(self, session: requests.Session):
        self._session = session
        self._lock = threading.Lock()
        self.request_count = 0
        self.total_ms = 0.0

    def _next_id(self) -> int:
        with self._lock:
            self.request_count += 1
            return self.request_count

    def request(self, method: str, url: str, **kwargs) -> requests.Response:
        req_id = self._next_id()
        http_logger.debug(
            f"#{req_id} {method} {_endpoint(url)} "
            f"params={kwargs.get('params') or {}} "
            f"headers={_redact(kwargs.get('headers'))}"
        )

        start = time.perf_counter()
        try:
            response = self._session.request(method, url, **kwargs)
        except Exception as e:
            elapsed_ms = (time.perf_counter() - start) * 1000
            http_logger.error(f"#{req_id} failed after {elapsed_ms:.1f}ms: {e}")
            raise

        elapsed_ms = (time.perf_counter() - start) * 1000
        with self._lock:
            self.total_ms += elapsed_ms

        summary = f"#{req_id} {response.status_code} in {elapsed_ms:.1f}ms"
        retry_after = response.headers.get("Retry-After")
        if retry_after:
            summary += f" retry-after={retry_after}s"
        if response.status_code >= 400:
            http_logger.warning(f"{summary} body={_preview(response.text)}")
        else:
            http_logger.debug(
                f"{summary} headers={_redact(response.headers)} "
                f"body={_preview(response.text)}"
            )
        return response

    def log_summary(self) -> None:
        http_logger.info(
            f"{self.request_count} upstream calls so far, {self.total_ms:.0f}ms in flight"
        )

    def __getattr__(self, name):
        return getattr(self._session, name)


def patch_spotipy_client(
    spotify_client, timed_session: Optional[TimedRequestsSession] = None
) -> None:
    """Route a spotipy.Spotify client's requests through a TimedRequestsSession.

    spotipy sends everything through its private ``_session``; that attribute
    is swapped. Clients already patched are left alone.
    """
    if getattr(spotify_client, "_http_logging_patched", False):
        return
    if not hasattr(spotify_client, "_session"):
        return

    spotify_client._session = timed_session or TimedRequestsSession(
        spotify_client._session
    )
    spotify_client._http_logging_patched = True
