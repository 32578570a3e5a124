"""Data models for callwrapper."""

import time
from dataclasses import dataclass, field, fields, is_dataclass
from typing import Any, Optional

# Audio-feature attributes copied onto a TrackRecord
AUDIO_FEATURE_FIELDS = (
    "danceability",
    "energy",
    "key",
    "loudness",
    "mode",
    "speechiness",
    "acousticness",
    "instrumentalness",
    "liveness",
    "valence",
    "tempo",
    "duration_ms",
    "time_signature",
)


@dataclass(frozen=True)
class Token:
    """A bearer token and the epoch second it stops being valid."""

    access_token: str
    expires_at: float

    def is_expired(self, margin: float = 60.0, now: Optional[float] = None) -> bool:
        """Check whether the token is expired or about to expire."""
        now = time.time() if now is None else now
        return now + margin >= self.expires_at


@dataclass
class Page:
    """One page of a paged upstream collection."""

    items: list[dict]
    total: int
    offset: int
    limit: int

    @classmethod
    def from_api(cls, data: dict) -> "Page":
        items = data.get("items") or []
        return cls(
            items=list(items),
            total=data.get("total") or 0,
            offset=data.get("offset") or 0,
            limit=data.get("limit") or len(items),
        )


@dataclass
class ArtistSummary:
    """Represents a Spotify artist."""

    spotify_id: str
    name: str
    genres: list[str] = field(default_factory=list)
    popularity: Optional[int] = None
    image_urls: Optional[list[str]] = None


@dataclass
class AlbumSummary:
    """Represents a full Spotify album."""

    spotify_id: str
    name: str
    artist_ids: list[str] = field(default_factory=list)
    album_type: Optional[str] = None
    available_markets: list[str] = field(default_factory=list)
    genres: list[str] = field(default_factory=list)
    popularity: Optional[int] = None
    image_urls: list[str] = field(default_factory=list)
    release_date: Optional[str] = None
    release_date_precision: Optional[str] = None


@dataclass
class PlaylistSummary:
    """Represents a Spotify playlist."""

    spotify_id: str
    name: str
    user_id: Optional[str] = None
    image_urls: list[str] = field(default_factory=list)


@dataclass
class TrackRecord:
    """Core track metadata combined with its audio features.

    Feature fields stay None when Spotify has no analysis for the track.
    """

    spotify_id: str
    name: str
    artist_ids: list[str] = field(default_factory=list)
    album_id: Optional[str] = None
    available_markets: list[str] = field(default_factory=list)
    popularity: Optional[int] = None
    track_number: Optional[int] = None

    danceability: Optional[float] = None
    energy: Optional[float] = None
    key: Optional[int] = None
    loudness: Optional[float] = None
    mode: Optional[int] = None
    speechiness: Optional[float] = None
    acousticness: Optional[float] = None
    instrumentalness: Optional[float] = None
    liveness: Optional[float] = None
    valence: Optional[float] = None
    tempo: Optional[float] = None
    duration_ms: Optional[int] = None
    time_signature: Optional[int] = None

    @property
    def has_audio_features(self) -> bool:
        """Check if audio features have been merged onto this track."""
        return any(getattr(self, name) is not None for name in AUDIO_FEATURE_FIELDS)

    def is_by_artist(self, artist_id: str) -> bool:
        """Check if the artist is credited on this track."""
        return artist_id in self.artist_ids

    def merge_audio_features(self, features: dict) -> None:
        """Copy audio-feature attributes onto this record.

        Args:
            features: Raw audio-features object for this track.
        """
        for name in AUDIO_FEATURE_FIELDS:
            setattr(self, name, features.get(name))


@dataclass
class CatalogSnapshot:
    """Artist, album and track maps for one artist, as sent to the front end."""

    artists: dict[str, ArtistSummary] = field(default_factory=dict)
    albums: dict[str, AlbumSummary] = field(default_factory=dict)
    tracks: dict[str, TrackRecord] = field(default_factory=dict)


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def to_front_end(value: Any) -> Any:
    """Convert models into JSON-ready structures with camelCase keys.

    Nulls are kept so the front end sees every field.
    """
    if is_dataclass(value) and not isinstance(value, type):
        return {
            _camel(f.name): to_front_end(getattr(value, f.name))
            for f in fields(value)
        }
    if isinstance(value, dict):
        return {k: to_front_end(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_front_end(v) for v in value]
    return value
