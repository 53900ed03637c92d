"""
Cached, typed access to the Spotify catalog.

SpotifyCacher sits between the rotation engine and SpotifyClient: every
read goes through the EntityCache, and the run-wide refresh flag is applied
here. A forced refresh covers playlist listings and playlist track lists
only (albums, artists and tracks do not change in ways the rotation cares
about), and each key is refreshed at most once per run.
"""

from typing import Any

from spot_rotator.cache.store import EntityCache, EntityKind
from spot_rotator.core.exceptions import CacheError
from spot_rotator.core.logger import get_logger
from spot_rotator.spotify.client import TRACKS_BATCH_SIZE, SpotifyClient
from spot_rotator.spotify.models import PlaylistSet

logger = get_logger(__name__)


class SpotifyCacher:
    """
    Typed cached accessors, one per EntityKind.

    Attributes:
        client: Catalog client used on cache misses.
        store: Backing entity cache.
        force_refresh: Refetch playlist listings and track lists once per run.
    """

    def __init__(
        self,
        client: SpotifyClient,
        store: EntityCache,
        force_refresh: bool = False
    ) -> None:
        self.client = client
        self.store = store
        self.force_refresh = force_refresh
        self._refreshed: set[tuple[EntityKind, str]] = set()

    def _should_refresh(self, kind: EntityKind, key: str) -> bool:
        if not self.force_refresh or (kind, key) in self._refreshed:
            return False
        self._refreshed.add((kind, key))
        return True

    def _malformed(self, kind: EntityKind, key: str, error: Exception) -> CacheError:
        path = self.store.path_for(kind, key)
        return CacheError(
            f"Malformed cache file {path.name}: {error}",
            details={"path": str(path), "original_error": str(error)}
        )

    # =========================================================================
    # Playlists
    # =========================================================================

    def get_playlists(self, user: str) -> PlaylistSet:
        """Every playlist in a user's listing."""
        kind = EntityKind.PLAYLISTS
        data, from_cache = self.store.get(
            kind,
            user,
            lambda: PlaylistSet.from_spotify_api(
                self.client.all_user_playlists(user), user
            ).to_dict(),
            force_refresh=self._should_refresh(kind, user)
        )
        try:
            if not isinstance(data, dict):
                raise TypeError(f"expected an object, got {type(data).__name__}")
            playlists = PlaylistSet.from_dict(data)
        except (AttributeError, KeyError, TypeError) as e:
            raise self._malformed(kind, user, e) from e
        logger.debug(
            f"{len(playlists)} playlists for {user} ({'cached' if from_cache else 'fetched'})"
        )
        return playlists

    def get_playlist_tracks(self, playlist_id: str) -> list[dict[str, Any]]:
        """Every item (added_at + track) of a playlist."""
        kind = EntityKind.PLAYLIST_TRACKS
        items, _ = self.store.get(
            kind,
            playlist_id,
            lambda: self.client.playlist_all_items(playlist_id),
            force_refresh=self._should_refresh(kind, playlist_id)
        )
        if not _is_item_list(items):
            raise self._malformed(
                kind, playlist_id, TypeError("expected a list of playlist items")
            )
        return items

    def invalidate_playlist(self, playlist_id: str) -> None:
        """Forget a playlist's cached track list."""
        self.store.invalidate(EntityKind.PLAYLIST_TRACKS, playlist_id)

    def invalidate_user(self, user: str) -> None:
        """Forget a user's cached playlist listing."""
        self.store.invalidate_all(EntityKind.PLAYLISTS, owner_key=user)

    def purge(self, kind: EntityKind) -> int:
        """Forget every cached entity of one kind."""
        return self.store.invalidate_all(kind)

    # =========================================================================
    # Albums and artists
    # =========================================================================

    def get_album(self, album_id: str) -> dict[str, Any]:
        album, _ = self.store.get(
            EntityKind.ALBUM, album_id, lambda: self.client.album(album_id)
        )
        return album

    def get_album_tracks(self, album_id: str) -> list[dict[str, Any]]:
        tracks, _ = self.store.get(
            EntityKind.ALBUM_TRACKS, album_id, lambda: self.client.album_all_tracks(album_id)
        )
        return tracks

    def get_artist_albums(self, artist_id: str) -> list[dict[str, Any]]:
        albums, _ = self.store.get(
            EntityKind.ARTIST_ALBUMS, artist_id, lambda: self.client.artist_all_albums(artist_id)
        )
        return albums

    # =========================================================================
    # Tracks
    # =========================================================================

    def get_tracks(self, track_ids: list[str]) -> list[dict[str, Any]]:
        """
        Full track objects for many IDs.

        Cached tracks are read from their own files; the rest are fetched in
        batches and each one is stored.

        Returns:
            Tracks in input order. IDs Spotify does not know are omitted.
        """
        found: dict[str, dict[str, Any]] = {}
        missing: list[str] = []

        for track_id in track_ids:
            if track_id in found or track_id in missing:
                continue
            track = self.store.peek(EntityKind.TRACK, track_id)
            if track is None:
                missing.append(track_id)
            else:
                found[track_id] = track

        if missing:
            logger.debug(
                f"Fetching {len(missing)} uncached tracks "
                f"({(len(missing) + TRACKS_BATCH_SIZE - 1) // TRACKS_BATCH_SIZE} requests)"
            )
            for track_id, track in zip(missing, self.client.tracks(missing)):
                if track is None:
                    logger.warning(f"Track not found on Spotify: {track_id}")
                    continue
                self.store.put(EntityKind.TRACK, track_id, track)
                found[track_id] = track

        return [found[track_id] for track_id in track_ids if track_id in found]


def _is_item_list(items: Any) -> bool:
    """True for a list of playlist items (objects or null) whose tracks are objects or null."""
    if not isinstance(items, list):
        return False
    for item in items:
        if item is None:
            continue
        if not isinstance(item, dict) or not isinstance(item.get("track"), (dict, type(None))):
            return False
    return True
