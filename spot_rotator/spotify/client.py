"""
Spotify API client for spot-rotator.

This module wraps the spotipy library and is the only code that talks to
the Spotify Web API. It is responsible for:

    - OAuth user authentication (reading and editing playlists needs it)
    - Offset-based pagination of every listing endpoint
    - Translating spotipy and transport errors into SpotifyError

The client holds no global state: the CLI builds one instance per run with
SpotifyClient.from_config() and passes it to whatever needs it.

Pagination:
    Every listing is fetched with a fixed page size and an increasing
    offset. Fetching stops as soon as a page returns fewer items than were
    requested, which also covers the empty last page.

Errors:
    Spotify failures are never retried here beyond what spotipy itself does
    for 429/5xx responses. Every failure surfaces as SpotifyError and aborts
    the current run.

Usage:
    client = SpotifyClient.from_config(config.spotify, config.cache.directory)

    for item in client.playlist_all_items("37i9dQZF1DXcBWIGoYBM5M"):
        print(item["added_at"], item["track"]["name"])
"""

from pathlib import Path
from typing import Any, Callable

import requests
import spotipy
from spotipy.oauth2 import SpotifyOAuth, SpotifyOauthError

from spot_rotator.core.config import SpotifyConfig
from spot_rotator.core.exceptions import SpotifyError
from spot_rotator.core.logger import get_logger

logger = get_logger(__name__)


OAUTH_SCOPE = "playlist-read-private playlist-modify-public playlist-modify-private"
TOKEN_CACHE_FILENAME = ".spotify-token"

# Page sizes (Spotify API maximums per endpoint, except playlist lookup by
# name which stops early and so uses smaller pages)
USER_PLAYLISTS_PAGE_SIZE = 50
PLAYLIST_LOOKUP_PAGE_SIZE = 20
PLAYLIST_ITEMS_PAGE_SIZE = 100
ALBUM_TRACKS_PAGE_SIZE = 50
ARTIST_ALBUMS_PAGE_SIZE = 50

# Maximum IDs per /tracks request
TRACKS_BATCH_SIZE = 50


def paginate(
    fetch_page: Callable[[int, int], dict[str, Any]],
    limit: int
) -> list[dict[str, Any]]:
    """
    Collect every item of an offset-paginated listing.

    Args:
        fetch_page: Callable taking (limit, offset) and returning a Spotify
                    paging object with an 'items' list.
        limit: Page size to request.

    Returns:
        All items, in listing order.
    """
    all_items: list[dict[str, Any]] = []
    offset = 0

    while True:
        page = fetch_page(limit, offset)
        items = page.get("items") or []
        all_items.extend(items)

        if len(items) < limit:
            break
        offset += limit

    return all_items


class SpotifyClient:
    """
    Spotify Web API client.

    Wraps spotipy.Spotify and exposes exactly the catalog operations the
    rotation engine and the cache need.

    Attributes:
        _spotify: The underlying spotipy.Spotify instance.

    Example:
        client = SpotifyClient.from_config(config.spotify, cache_dir)
        playlist = client.find_user_playlist("jlewalle", "discovery monthly")
    """

    def __init__(self, spotify_instance: spotipy.Spotify) -> None:
        """
        Args:
            spotify_instance: Configured spotipy.Spotify instance. Tests pass
                              a mock here.
        """
        self._spotify = spotify_instance

    @classmethod
    def from_config(cls, spotify_config: SpotifyConfig, cache_dir: Path) -> "SpotifyClient":
        """
        Build an authenticated client.

        The OAuth token is cached next to the entity cache so that only the
        first run needs a browser.

        Args:
            spotify_config: Credentials and redirect URI.
            cache_dir: Directory for the OAuth token cache file.

        Raises:
            SpotifyError: If authentication fails.
        """
        try:
            cache_dir.mkdir(parents=True, exist_ok=True)
            auth_manager = SpotifyOAuth(
                client_id=spotify_config.client_id,
                client_secret=spotify_config.client_secret,
                redirect_uri=spotify_config.redirect_uri,
                scope=OAUTH_SCOPE,
                cache_path=str(cache_dir / TOKEN_CACHE_FILENAME),
                open_browser=True
            )
            spotify_instance = spotipy.Spotify(auth_manager=auth_manager)

            # Fail fast on bad credentials rather than half-way through a run
            me = spotify_instance.current_user()
            logger.debug(f"Authenticated as {me.get('id') if me else 'unknown'}")
        except spotipy.SpotifyException as e:
            raise SpotifyError(
                f"Spotify authentication failed: {e}",
                details={"original_error": str(e)},
                is_auth_error=True
            ) from e
        except (SpotifyOauthError, requests.exceptions.RequestException) as e:
            raise SpotifyError(
                f"Failed to initialize Spotify client: {e}",
                details={"original_error": str(e)},
                is_auth_error=True
            ) from e

        return cls(spotify_instance)

    def _call(self, description: str, func: Callable[..., Any], *args: Any,
              details: dict | None = None, **kwargs: Any) -> Any:
        """
        Invoke a spotipy method, translating failures into SpotifyError.

        Args:
            description: What is being done, for the error message
                         (e.g. "fetch playlist items").
            func: Bound spotipy method.
            details: Context merged into the error details.
        """
        details = details or {}
        try:
            return func(*args, **kwargs)
        except spotipy.SpotifyException as e:
            if e.http_status == 429:
                raise SpotifyError(
                    f"Rate limited while trying to {description}",
                    details={**details, "http_status": 429},
                    is_rate_limit=True
                ) from e
            if e.http_status in (401, 403):
                raise SpotifyError(
                    f"Not authorized to {description}: {e.msg}",
                    details={**details, "http_status": e.http_status},
                    is_auth_error=True
                ) from e
            raise SpotifyError(
                f"Failed to {description}: {e}",
                details={**details, "http_status": e.http_status, "original_error": str(e)}
            ) from e
        except requests.exceptions.RequestException as e:
            raise SpotifyError(
                f"Network error while trying to {description}: {e}",
                details={**details, "original_error": str(e)}
            ) from e

    # =========================================================================
    # Playlist Listing Operations
    # =========================================================================

    def user_playlists(
        self,
        user: str,
        limit: int = USER_PLAYLISTS_PAGE_SIZE,
        offset: int = 0
    ) -> dict[str, Any]:
        """Get one page of the playlists a user owns or follows."""
        return self._call(
            "fetch user playlists",
            self._spotify.user_playlists,
            user,
            limit=limit,
            offset=offset,
            details={"user": user, "offset": offset}
        )

    def all_user_playlists(self, user: str) -> list[dict[str, Any]]:
        """
        Get every playlist a user owns or follows.

        Returns:
            Simplified playlist objects in the order Spotify lists them.
        """
        items = paginate(
            lambda limit, offset: self.user_playlists(user, limit=limit, offset=offset),
            USER_PLAYLISTS_PAGE_SIZE
        )
        logger.debug(f"Fetched {len(items)} playlists for {user}")
        return items

    def find_user_playlist(self, user: str, name: str) -> dict[str, Any] | None:
        """
        Find a user's playlist by exact, case-insensitive name.

        Pages through the listing and stops at the first match, so it never
        reads from the cache: the target playlist may have been created or
        renamed since the last run.

        Returns:
            The simplified playlist object, or None if no playlist matches.
        """
        wanted = name.casefold()
        offset = 0

        while True:
            page = self.user_playlists(user, limit=PLAYLIST_LOOKUP_PAGE_SIZE, offset=offset)
            items = page.get("items") or []

            for item in items:
                if item and item.get("name", "").casefold() == wanted:
                    return item

            if len(items) < PLAYLIST_LOOKUP_PAGE_SIZE:
                return None
            offset += PLAYLIST_LOOKUP_PAGE_SIZE

    def create_playlist(self, user: str, name: str, public: bool = True) -> dict[str, Any]:
        """Create an empty playlist owned by user."""
        return self._call(
            "create playlist",
            self._spotify.user_playlist_create,
            user,
            name,
            public=public,
            details={"user": user, "name": name}
        )

    # =========================================================================
    # Playlist Track Operations
    # =========================================================================

    def playlist_items(
        self,
        playlist_id: str,
        limit: int = PLAYLIST_ITEMS_PAGE_SIZE,
        offset: int = 0
    ) -> dict[str, Any]:
        """
        Get one page of a playlist's tracks.

        Returns:
            Spotify paging object whose items carry 'added_at' and 'track'.
        """
        return self._call(
            "fetch playlist items",
            self._spotify.playlist_items,
            playlist_id,
            limit=limit,
            offset=offset,
            additional_types=("track",),
            details={"playlist_id": playlist_id, "offset": offset}
        )

    def playlist_all_items(self, playlist_id: str) -> list[dict[str, Any]]:
        """Get ALL items of a playlist, handling pagination automatically."""
        items = paginate(
            lambda limit, offset: self.playlist_items(playlist_id, limit=limit, offset=offset),
            PLAYLIST_ITEMS_PAGE_SIZE
        )
        logger.debug(f"Fetched {len(items)} items of playlist {playlist_id}")
        return items

    def add_items(self, playlist_id: str, track_ids: list[str]) -> dict[str, Any]:
        """Append tracks to a playlist in a single request (max 100 IDs)."""
        return self._call(
            "add tracks to playlist",
            self._spotify.playlist_add_items,
            playlist_id,
            track_ids,
            details={"playlist_id": playlist_id, "batch_size": len(track_ids)}
        )

    def remove_items(self, playlist_id: str, track_ids: list[str]) -> dict[str, Any]:
        """Remove every occurrence of the given tracks in a single request (max 100 IDs)."""
        return self._call(
            "remove tracks from playlist",
            self._spotify.playlist_remove_all_occurrences_of_items,
            playlist_id,
            track_ids,
            details={"playlist_id": playlist_id, "batch_size": len(track_ids)}
        )

    # =========================================================================
    # Album, Artist and Track Operations
    # =========================================================================

    def album(self, album_id: str) -> dict[str, Any]:
        """
        Get full album metadata.

        Raises:
            SpotifyError: If the album does not exist or the request fails.
        """
        result = self._call(
            "fetch album", self._spotify.album, album_id, details={"album_id": album_id}
        )
        if result is None:
            raise SpotifyError(f"Album not found: {album_id}", details={"album_id": album_id})
        return result

    def album_all_tracks(self, album_id: str) -> list[dict[str, Any]]:
        """Get every (simplified) track of an album."""
        return paginate(
            lambda limit, offset: self._call(
                "fetch album tracks",
                self._spotify.album_tracks,
                album_id,
                limit=limit,
                offset=offset,
                details={"album_id": album_id, "offset": offset}
            ),
            ALBUM_TRACKS_PAGE_SIZE
        )

    def artist_all_albums(self, artist_id: str) -> list[dict[str, Any]]:
        """Get every (simplified) album of an artist."""
        return paginate(
            lambda limit, offset: self._call(
                "fetch artist albums",
                self._spotify.artist_albums,
                artist_id,
                limit=limit,
                offset=offset,
                details={"artist_id": artist_id, "offset": offset}
            ),
            ARTIST_ALBUMS_PAGE_SIZE
        )

    def tracks(self, track_ids: list[str]) -> list[dict[str, Any] | None]:
        """
        Get full metadata for many tracks.

        Args:
            track_ids: Spotify track IDs. Split into requests of 50.

        Returns:
            Track objects in input order; None where Spotify has no such track.
        """
        results: list[dict[str, Any] | None] = []

        for i in range(0, len(track_ids), TRACKS_BATCH_SIZE):
            batch = track_ids[i:i + TRACKS_BATCH_SIZE]
            response = self._call(
                "fetch tracks",
                self._spotify.tracks,
                batch,
                details={"batch_size": len(batch)}
            )
            if response and "tracks" in response:
                results.extend(response["tracks"])
            else:
                results.extend([None] * len(batch))

        return results
