"""Aggregation of Spotify catalog data for the front end."""

import logging
import time
from typing import Iterable, Optional

from .base_client import MusicCatalog
from .batching import resolve_batches
from .config import PagingSettings
from .deadline import Deadline
from .models import (
    AlbumSummary,
    ArtistSummary,
    CatalogSnapshot,
    PlaylistSummary,
    TrackRecord,
)
from .pagination import paginate
from .upstream import UpstreamClient

logger = logging.getLogger(__name__)


def _unique_ids(ids: Iterable[Optional[str]]) -> list[str]:
    """Drop empty ids and duplicates, keeping first-seen order."""
    return list(dict.fromkeys(i for i in ids if i))


def _elapsed_ms(since: float) -> int:
    return int((time.perf_counter() - since) * 1000)


class SpotifyAggregator(MusicCatalog):
    """Turns front-end requests into bounded sequences of Spotify calls."""

    def __init__(
        self,
        upstream: UpstreamClient,
        paging: PagingSettings,
        include_audio_features: bool = True,
        deadline_seconds: Optional[float] = 60.0,
    ):
        """Initialize the aggregator.

        Args:
            upstream: Client for single upstream calls.
            paging: Page and batch sizes.
            include_audio_features: Merge audio features onto track records.
            deadline_seconds: Budget for each operation, None for no limit.
        """
        self.upstream = upstream
        self.paging = paging
        self.include_audio_features = include_audio_features
        self.deadline_seconds = deadline_seconds

    @property
    def service_name(self) -> str:
        return "Spotify"

    def _new_deadline(self) -> Deadline:
        return Deadline(self.deadline_seconds)

    # Search

    def search_artist(self, query: str) -> list[ArtistSummary]:
        page = self.upstream.search("artist", query, limit=self.paging.search_limit)
        return [self._parse_artist(item) for item in page.items if item]

    def search_album(self, query: str) -> list[AlbumSummary]:
        """Search for albums and upgrade the results to full albums.

        Search results only carry simplified albums, so the ids are looked up
        again through the several-albums endpoint.
        """
        deadline = self._new_deadline()
        page = self.upstream.search("album", query, limit=self.paging.search_limit)
        album_ids = _unique_ids(item.get("id") for item in page.items if item)

        albums = self._resolve_albums(album_ids, deadline)
        return [albums[album_id] for album_id in album_ids if album_id in albums]

    def search_playlist(self, query: str) -> list[PlaylistSummary]:
        page = self.upstream.search("playlist", query, limit=self.paging.search_limit)
        # Spotify sometimes returns null entries in playlist search results
        return [self._parse_playlist(item) for item in page.items if item]

    # Track aggregation

    def get_artist_tracks(self, artist_id: str) -> dict[str, TrackRecord]:
        """Get full track information for an artist.

        Tracks on collaborative albums that do not credit the artist are
        dropped.
        """
        start = time.perf_counter()
        logger.debug(f"starting get artist track info for {artist_id}")
        deadline = self._new_deadline()

        albums = self._get_artist_albums(artist_id, deadline)
        album_time = time.perf_counter()
        logger.debug(f"got album info, took: {_elapsed_ms(start)}ms")

        track_ids = self._get_album_track_ids(list(albums), deadline)
        tracks = self._get_tracks(track_ids, deadline, artist_id=artist_id)
        logger.debug(f"got track info, took: {_elapsed_ms(album_time)}ms")

        logger.info(
            f"Aggregated {len(tracks)} tracks from {len(albums)} albums "
            f"for artist {artist_id} in {_elapsed_ms(start)}ms"
        )
        self.upstream.log_traffic_summary()
        return tracks

    def get_playlist_tracks(self, playlist_id: str) -> dict[str, TrackRecord]:
        start = time.perf_counter()
        deadline = self._new_deadline()
        size = self.paging.playlist_track_page_size

        entries = paginate(
            lambda offset: self.upstream.playlist_tracks(playlist_id, offset, size),
            size,
            max_pages=self.paging.max_pages,
            deadline=deadline,
            description=f"tracks of playlist {playlist_id}",
        )
        # Removed tracks come back as null, local files without an id
        track_ids = _unique_ids((entry.get("track") or {}).get("id") for entry in entries)

        tracks = self._get_tracks(track_ids, deadline)
        logger.info(
            f"Aggregated {len(tracks)} tracks for playlist {playlist_id} "
            f"in {_elapsed_ms(start)}ms"
        )
        self.upstream.log_traffic_summary()
        return tracks

    def get_artist_catalog(self, artist_id: str) -> CatalogSnapshot:
        """Get the artist, their albums and their tracks in one snapshot."""
        deadline = self._new_deadline()

        artist = self._parse_artist(self.upstream.get_entity("artist", artist_id))
        albums = self._get_artist_albums(artist_id, deadline)
        track_ids = self._get_album_track_ids(list(albums), deadline)
        tracks = self._get_tracks(track_ids, deadline, artist_id=artist_id)

        return CatalogSnapshot(
            artists={artist.spotify_id: artist},
            albums=albums,
            tracks=tracks,
        )

    # Pipeline steps

    def _get_artist_albums(
        self, artist_id: str, deadline: Deadline
    ) -> dict[str, AlbumSummary]:
        """Page through an artist's albums and singles, then resolve them."""
        size = self.paging.artist_album_page_size
        simple_albums = paginate(
            lambda offset: self.upstream.artist_albums(artist_id, offset, size),
            size,
            max_pages=self.paging.max_pages,
            deadline=deadline,
            description=f"albums of artist {artist_id}",
        )
        album_ids = _unique_ids(album.get("id") for album in simple_albums)
        return self._resolve_albums(album_ids, deadline)

    def _resolve_albums(
        self, album_ids: list[str], deadline: Deadline
    ) -> dict[str, AlbumSummary]:
        raw_albums = resolve_batches(
            album_ids,
            self.paging.album_batch_size,
            lambda chunk: self.upstream.get_several("album", chunk),
            deadline=deadline,
            description="albums",
        )
        return {
            album_id: self._parse_album(raw) for album_id, raw in raw_albums.items()
        }

    def _get_album_track_ids(
        self, album_ids: list[str], deadline: Deadline
    ) -> list[str]:
        """Collect the track ids of every album, album by album."""
        size = self.paging.album_track_page_size
        track_ids: list[str] = []

        for album_id in album_ids:
            items = paginate(
                lambda offset: self.upstream.album_tracks(album_id, offset, size),
                size,
                max_pages=self.paging.max_pages,
                deadline=deadline,
                description=f"tracks of album {album_id}",
            )
            track_ids.extend(item["id"] for item in items if item and item.get("id"))

        return track_ids

    def _get_tracks(
        self,
        track_ids: list[str],
        deadline: Deadline,
        artist_id: Optional[str] = None,
    ) -> dict[str, TrackRecord]:
        """Resolve tracks, merge their audio features and filter by artist.

        Args:
            track_ids: Track ids to resolve.
            deadline: Request deadline.
            artist_id: If given, drop tracks that do not credit this artist.

        Returns:
            Map of track ID to TrackRecord.
        """
        track_ids = _unique_ids(track_ids)
        size = self.paging.track_batch_size

        raw_tracks = resolve_batches(
            track_ids,
            size,
            lambda chunk: self.upstream.get_several("track", chunk),
            deadline=deadline,
            description="tracks",
        )
        tracks = {
            track_id: self._parse_track(raw) for track_id, raw in raw_tracks.items()
        }

        if self.include_audio_features:
            features = resolve_batches(
                track_ids,
                size,
                lambda chunk: self.upstream.get_several("audio_features", chunk),
                deadline=deadline,
                description="audio features",
            )
            for track_id, feature in features.items():
                track = tracks.get(track_id)
                if track is not None:
                    track.merge_audio_features(feature)

        if artist_id is None:
            return tracks

        # Tracks from collaborative albums may not include the artist at all
        filtered = {
            track_id: track
            for track_id, track in tracks.items()
            if track.is_by_artist(artist_id)
        }
        dropped = len(tracks) - len(filtered)
        if dropped:
            logger.debug(f"Dropped {dropped} tracks not credited to {artist_id}")
        return filtered

    # Parsing

    def _parse_artist(self, data: dict) -> ArtistSummary:
        """Parse an artist from Spotify API response.

        Args:
            data: Raw API artist data.

        Returns:
            Parsed ArtistSummary object.
        """
        images = data.get("images")
        return ArtistSummary(
            spotify_id=data["id"],
            name=data["name"],
            genres=list(data.get("genres") or []),
            popularity=data.get("popularity"),
            image_urls=[image["url"] for image in images] if images is not None else None,
        )

    def _parse_album(self, data: dict) -> AlbumSummary:
        """Parse a full album from Spotify API response.

        Args:
            data: Raw API album data.

        Returns:
            Parsed AlbumSummary object.
        """
        return AlbumSummary(
            spotify_id=data["id"],
            name=data["name"],
            artist_ids=[artist["id"] for artist in data.get("artists") or []],
            album_type=data.get("album_type"),
            available_markets=list(data.get("available_markets") or []),
            genres=list(data.get("genres") or []),
            popularity=data.get("popularity"),
            image_urls=[image["url"] for image in data.get("images") or []],
            release_date=data.get("release_date"),
            release_date_precision=data.get("release_date_precision"),
        )

    def _parse_playlist(self, data: dict) -> PlaylistSummary:
        return PlaylistSummary(
            spotify_id=data["id"],
            name=data["name"],
            user_id=(data.get("owner") or {}).get("id"),
            image_urls=[image["url"] for image in data.get("images") or []],
        )

    def _parse_track(self, data: dict) -> TrackRecord:
        """Parse a full track from Spotify API response.

        Args:
            data: Raw API track data.

        Returns:
            Parsed TrackRecord object without audio features.
        """
        return TrackRecord(
            spotify_id=data["id"],
            name=data["name"],
            artist_ids=[artist["id"] for artist in data.get("artists") or []],
            album_id=(data.get("album") or {}).get("id"),
            available_markets=list(data.get("available_markets") or []),
            popularity=data.get("popularity"),
            track_number=data.get("track_number"),
        )
