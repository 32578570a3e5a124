"""Abstract interface for the catalog facade served to the front end."""

from abc import ABC, abstractmethod

from .models import (
    AlbumSummary,
    ArtistSummary,
    CatalogSnapshot,
    PlaylistSummary,
    TrackRecord,
)


class MusicCatalog(ABC):
    """Read-only catalog operations consumed by the HTTP layer.

    Every call is an independent run: nothing is cached between calls, and
    a failure aborts the whole operation instead of returning partial data.
    """

    @property
    @abstractmethod
    def service_name(self) -> str:
        """Return the name of the upstream service (e.g., 'Spotify')."""
        pass

    @abstractmethod
    def search_artist(self, query: str) -> list[ArtistSummary]:
        """Search for artists.

        Args:
            query: Free-text search query.

        Returns:
            List of ArtistSummary objects in search order.
        """
        pass

    @abstractmethod
    def search_album(self, query: str) -> list[AlbumSummary]:
        """Search for albums, returning full album metadata.

        Args:
            query: Free-text search query.

        Returns:
            List of AlbumSummary objects in search order.
        """
        pass

    @abstractmethod
    def search_playlist(self, query: str) -> list[PlaylistSummary]:
        """Search for playlists.

        Args:
            query: Free-text search query.

        Returns:
            List of PlaylistSummary objects in search order.
        """
        pass

    @abstractmethod
    def get_artist_tracks(self, artist_id: str) -> dict[str, TrackRecord]:
        """Get every track credited to an artist, with audio features.

        Args:
            artist_id: Spotify artist ID.

        Returns:
            Map of track ID to TrackRecord.
        """
        pass

    @abstractmethod
    def get_playlist_tracks(self, playlist_id: str) -> dict[str, TrackRecord]:
        """Get every track in a playlist, with audio features.

        Args:
            playlist_id: Spotify playlist ID.

        Returns:
            Map of track ID to TrackRecord.
        """
        pass

    @abstractmethod
    def get_artist_catalog(self, artist_id: str) -> CatalogSnapshot:
        """Get an artist together with their albums and tracks.

        Args:
            artist_id: Spotify artist ID.

        Returns:
            CatalogSnapshot keyed by Spotify IDs.
        """
        pass
