"""
Spotify catalog access for spot-rotator.

    - client: spotipy wrapper (OAuth, pagination, error translation)
    - models: Playlist dataclasses and playlist item helpers
"""

from spot_rotator.spotify.client import SpotifyClient
from spot_rotator.spotify.models import (
    Image,
    Playlist,
    PlaylistSet,
    describe_track,
    is_monthly_name,
    item_track_id,
)

__all__ = [
    "SpotifyClient",
    "Image",
    "Playlist",
    "PlaylistSet",
    "describe_track",
    "is_monthly_name",
    "item_track_id",
]
