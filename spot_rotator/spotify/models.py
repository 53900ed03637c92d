"""
Data models for Spotify entities.

Playlists are modelled as immutable dataclasses because the rotation engine
reasons about them (names, owners, snapshot tokens). Tracks are left as the
raw dictionaries Spotify returns: they are cached verbatim and only ever
inspected through the small helpers at the bottom of this module.

Design Decisions:
    - Dataclasses are frozen to prevent accidental modification
    - to_dict()/from_dict() define the on-disk cache format
    - from_spotify_api() is the only place that knows the API response shape

Usage:
    from spot_rotator.spotify.models import Playlist, PlaylistSet

    playlists = PlaylistSet.from_spotify_api(items, user="jlewalle")
    for playlist in playlists.monthly():
        print(playlist.name, playlist.snapshot_id)
"""

import re
from dataclasses import dataclass, field
from typing import Any


MONTH_NAMES = (
    "january", "february", "march", "april", "may", "june",
    "july", "august", "september", "october", "november", "december",
)

# "<four digit year> <full english month name>", e.g. "2023 March"
MONTHLY_PATTERN = re.compile(
    r"(\d{4}) (" + "|".join(MONTH_NAMES) + r")",
    re.IGNORECASE
)


def is_monthly_name(name: str) -> bool:
    """
    Check whether a playlist name follows the monthly naming scheme.

    Examples:
        >>> is_monthly_name("2023 march")
        True
        >>> is_monthly_name("2023 March")
        True
        >>> is_monthly_name("march 2023")
        False
        >>> is_monthly_name("2023 marchx")
        False
    """
    return MONTHLY_PATTERN.fullmatch(name) is not None


@dataclass(frozen=True)
class Image:
    """
    Playlist cover image.

    Attributes:
        url: Image URL on Spotify's CDN.
        dx: Width in pixels (0 when Spotify doesn't report it).
        dy: Height in pixels (0 when Spotify doesn't report it).
    """
    url: str
    dx: int = 0
    dy: int = 0

    @classmethod
    def from_spotify_api(cls, data: dict[str, Any]) -> "Image":
        return cls(
            url=data.get("url", ""),
            dx=data.get("width") or 0,
            dy=data.get("height") or 0
        )

    def to_dict(self) -> dict[str, Any]:
        return {"url": self.url, "dx": self.dx, "dy": self.dy}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Image":
        return cls(url=data["url"], dx=data.get("dx", 0), dy=data.get("dy", 0))


@dataclass(frozen=True)
class Playlist:
    """
    Immutable representation of a playlist as seen from one user's listing.

    Attributes:
        spotify_id: Unique Spotify playlist ID.
        user: The user whose playlist listing this entry came from.
        owner: Spotify user ID of the playlist owner. Differs from user for
               playlists the user follows (subscribed playlists).
        name: Display name.
        images: Cover images, largest first as returned by Spotify.
        snapshot_id: Version token; Spotify changes it whenever the
                     playlist's tracks change.
        description: Playlist description (may be empty).
    """
    spotify_id: str
    user: str
    owner: str
    name: str
    images: tuple[Image, ...] = ()
    snapshot_id: str = ""
    description: str = ""

    @classmethod
    def from_spotify_api(cls, data: dict[str, Any], user: str) -> "Playlist":
        """
        Create a Playlist from a simplified playlist object.

        Args:
            data: One item of a user playlists page.
            user: The user the listing was requested for.
        """
        owner = data.get("owner") or {}
        return cls(
            spotify_id=data["id"],
            user=user,
            owner=owner.get("id", ""),
            name=data.get("name", ""),
            images=tuple(Image.from_spotify_api(i) for i in data.get("images") or []),
            snapshot_id=data.get("snapshot_id", ""),
            description=data.get("description") or ""
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.spotify_id,
            "user": self.user,
            "owner": self.owner,
            "name": self.name,
            "images": [image.to_dict() for image in self.images],
            "snapshot": self.snapshot_id,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Playlist":
        return cls(
            spotify_id=data["id"],
            user=data["user"],
            owner=data.get("owner", ""),
            name=data["name"],
            images=tuple(Image.from_dict(i) for i in data.get("images", [])),
            snapshot_id=data.get("snapshot", ""),
            description=data.get("description", "")
        )


@dataclass
class PlaylistSet:
    """Ordered collection of playlists from one user's listing."""
    playlists: list[Playlist] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.playlists)

    def __iter__(self):
        return iter(self.playlists)

    def monthly(self) -> "PlaylistSet":
        """Return the playlists named "<year> <month-name>"."""
        return PlaylistSet([p for p in self.playlists if is_monthly_name(p.name)])

    def find_by_name(self, name: str) -> Playlist | None:
        """Case-insensitive exact name lookup; first match wins."""
        wanted = name.casefold()
        for playlist in self.playlists:
            if playlist.name.casefold() == wanted:
                return playlist
        return None

    @classmethod
    def from_spotify_api(cls, items: list[dict[str, Any]], user: str) -> "PlaylistSet":
        # Spotify occasionally returns null entries for deleted playlists
        return cls([Playlist.from_spotify_api(item, user) for item in items if item])

    def to_dict(self) -> dict[str, Any]:
        return {"playlists": [playlist.to_dict() for playlist in self.playlists]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PlaylistSet":
        return cls([Playlist.from_dict(p) for p in data.get("playlists", [])])


# =========================================================================
# Playlist track item helpers
# =========================================================================

def item_track(item: dict[str, Any] | None) -> dict[str, Any] | None:
    """Return the track object of a playlist item, if it has one."""
    if not item:
        return None
    return item.get("track")


def item_track_id(item: dict[str, Any] | None) -> str | None:
    """
    Return the Spotify ID of a playlist item's track.

    Removed tracks (track is null) and local files (id is null) have no ID.
    """
    track = item_track(item)
    if not track:
        return None
    return track.get("id") or None


def track_artists(track: dict[str, Any]) -> list[dict[str, Any]]:
    return [a for a in track.get("artists") or [] if a]


def track_artist_names(track: dict[str, Any]) -> list[str]:
    return [a.get("name", "") for a in track_artists(track)]


def track_album(track: dict[str, Any]) -> dict[str, Any]:
    return track.get("album") or {}


def describe_track(track: dict[str, Any]) -> str:
    """Format a track as "Artist, Artist - Title" for log lines."""
    artists = ", ".join(track_artist_names(track)) or "Unknown Artist"
    return f"{artists} - {track.get('name', 'Unknown Track')}"
