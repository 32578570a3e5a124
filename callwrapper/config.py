"""Configuration management for callwrapper."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class SpotifySettings(BaseSettings):
    """Spotify API configuration."""

    model_config = SettingsConfigDict(env_prefix="SPOTIFY_")

    client_id: str = Field(description="Spotify App Client ID")
    client_secret: str = Field(description="Spotify App Client Secret")
    market: str = Field(
        default="US",
        description="Market used for album, track and playlist lookups",
    )
    requests_timeout: float = Field(
        default=10.0,
        description="Per-request timeout in seconds for upstream calls",
    )
    # Apps registered after Nov 2024 get 403 from the audio-features endpoint
    include_audio_features: bool = Field(
        default=True,
        description="Merge audio analysis onto track records",
    )


class PagingSettings(BaseSettings):
    """Page and batch sizes for upstream calls.

    The batch sizes are upstream-imposed ceilings; raising them past what
    Spotify accepts makes the batched lookups fail.
    """

    model_config = SettingsConfigDict(env_prefix="PAGING_")

    album_batch_size: int = Field(
        default=20, ge=1, description="Albums per several-albums lookup"
    )
    track_batch_size: int = Field(
        default=50, ge=1, description="Tracks per several-tracks lookup"
    )
    artist_album_page_size: int = Field(
        default=50, ge=1, description="Page size for an artist's albums"
    )
    album_track_page_size: int = Field(
        default=50, ge=1, description="Page size for an album's tracks"
    )
    playlist_track_page_size: int = Field(
        default=100, ge=1, description="Page size for a playlist's tracks"
    )

    # Safety cap for a misbehaving upstream whose total is never reached
    max_pages: int = Field(
        default=200,
        ge=1,
        description="Maximum pages fetched from a single paged endpoint",
    )

    search_limit: int = Field(
        default=20, ge=1, le=50, description="Results per search call"
    )


class AppSettings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    spotify: SpotifySettings = Field(default_factory=SpotifySettings)
    paging: PagingSettings = Field(default_factory=PagingSettings)

    request_deadline_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Wall-clock budget for one aggregation request",
    )

    # Debug mode
    debug: bool = Field(default=False, description="Enable debug logging")
    http_log: bool = Field(
        default=False, description="Log upstream HTTP traffic with timing"
    )


def load_settings() -> AppSettings:
    """Load application settings from environment."""
    return AppSettings()
