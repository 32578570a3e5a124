"""Command line entry point for callwrapper."""

import argparse
import json
import logging
import sys
from typing import Any, Optional

import requests
from spotipy import SpotifyException

from .base_client import MusicCatalog
from .client_factory import create_music_catalog
from .config import load_settings
from .errors import CallwrapperError
from .http_logging import setup_http_logging
from .models import to_front_end

COMMANDS = (
    "search-artist",
    "search-album",
    "search-playlist",
    "artist-tracks",
    "playlist-tracks",
    "artist-info",
)


def setup_logging(debug: bool = False) -> None:
    """Configure logging for the application.

    Args:
        debug: Enable debug level logging.
    """
    level = logging.DEBUG if debug else logging.INFO
    format_str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    # Logs go to stderr so stdout stays valid JSON
    logging.basicConfig(
        level=level,
        format=format_str,
        datefmt=date_format,
        handlers=[logging.StreamHandler(sys.stderr)],
    )

    # Reduce noise from libraries
    logging.getLogger("spotipy").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command line arguments.

    Returns:
        Parsed arguments.
    """
    parser = argparse.ArgumentParser(
        description="callwrapper - aggregate Spotify catalog data as front-end JSON",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  callwrapper search-artist "nina simone"
  callwrapper artist-tracks 7G1GBhoKtEPnP86X2PvEYO
  callwrapper playlist-tracks 37i9dQZF1DXcBWIGoYBM5M --debug

Environment Variables:
  SPOTIFY_CLIENT_ID       Spotify App Client ID
  SPOTIFY_CLIENT_SECRET   Spotify App Client Secret
  SPOTIFY_MARKET          Market for lookups (default: US)
  SPOTIFY_INCLUDE_AUDIO_FEATURES  Merge audio features (default: true)

  PAGING_MAX_PAGES        Page cap per paged endpoint (default: 200)
  REQUEST_DEADLINE_SECONDS  Budget per request (default: 60)
        """,
    )

    parser.add_argument("command", choices=COMMANDS, help="Operation to run")
    parser.add_argument("value", help="Search query or Spotify ID")

    parser.add_argument(
        "--debug", "-d", action="store_true", help="Enable debug logging"
    )

    parser.add_argument(
        "--http-log",
        action="store_true",
        help="Log all HTTP requests/responses to callwrapper_http.log with timing",
    )

    parser.add_argument(
        "--compact",
        action="store_true",
        help="Print JSON on a single line",
    )

    return parser.parse_args(argv)


def run_command(catalog: MusicCatalog, command: str, value: str) -> Any:
    """Run one catalog operation.

    Args:
        catalog: Catalog facade.
        command: One of COMMANDS.
        value: Search query or Spotify ID.

    Returns:
        The operation result, converted for the front end.
    """
    operations = {
        "search-artist": catalog.search_artist,
        "search-album": catalog.search_album,
        "search-playlist": catalog.search_playlist,
        "artist-tracks": catalog.get_artist_tracks,
        "playlist-tracks": catalog.get_playlist_tracks,
        "artist-info": catalog.get_artist_catalog,
    }
    return to_front_end(operations[command](value))


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point.

    Returns:
        Exit code.
    """
    args = parse_args(argv)

    # Load configuration
    try:
        settings = load_settings()
    except Exception as e:
        print(f"❌ Configuration error: {e}", file=sys.stderr)
        print(
            "\nMake sure you have configured the required environment variables.",
            file=sys.stderr,
        )
        return 1

    setup_logging(debug=args.debug or settings.debug)
    logger = logging.getLogger(__name__)

    http_log = args.http_log or settings.http_log
    if http_log:
        setup_http_logging()

    catalog = create_music_catalog(settings, http_logging=http_log)

    try:
        result = run_command(catalog, args.command, args.value)
    except SpotifyException as e:
        logger.error(f"Spotify returned {e.http_status}: {e.msg}")
        return 1
    except CallwrapperError as e:
        logger.error(e.message)
        return 1
    except requests.RequestException as e:
        logger.error(f"Network error talking to Spotify: {e}")
        return 1

    print(json.dumps(result, indent=None if args.compact else 2))
    return 0


if __name__ == "__main__":
    sys.exit(main())
