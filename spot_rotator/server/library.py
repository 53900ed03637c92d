"""
Read-only view of the cached playlist library.

The query server never talks to Spotify. It reads the summaries file and
the cached playlist track lists that rotation runs leave behind, and keeps
the searchable aggregate in memory for a while so that every search doesn't
re-read every file.
"""

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from spot_rotator.cache.store import EntityCache, EntityKind
from spot_rotator.core.logger import get_logger
from spot_rotator.rotation.summary import PlaylistSummary, SummaryStore
from spot_rotator.spotify.models import item_track, track_album, track_artists

logger = get_logger(__name__)


# Reload the search aggregate once it is older than this
LIBRARY_TTL_SECONDS = 6 * 60 * 60


@dataclass
class LoadedPlaylist:
    summary: PlaylistSummary
    tracks: list[dict[str, Any]]


def track_matches(track: dict[str, Any], query: str) -> bool:
    """Case-insensitive substring match on title, album name or any artist name."""
    if query in (track.get("name") or "").lower():
        return True
    if query in (track_album(track).get("name") or "").lower():
        return True
    return any(query in (artist.get("name") or "").lower() for artist in track_artists(track))


class CachedLibrary:
    """
    Cached playlists, loaded from the cache directory.

    Attributes:
        cache_dir: Directory rotation runs write to.
        ttl_seconds: Age after which search reloads everything.
    """

    def __init__(
        self,
        cache_dir: Path,
        ttl_seconds: float = LIBRARY_TTL_SECONDS,
        clock: Callable[[], float] = time.monotonic
    ) -> None:
        self.cache_dir = cache_dir
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entities = EntityCache(cache_dir)
        self._summaries = SummaryStore.in_directory(cache_dir)
        self._playlists: list[LoadedPlaylist] | None = None
        self._loaded_at = 0.0

    def summaries(self) -> dict[str, Any] | None:
        """The summaries batch as stored, or None if no run has written it."""
        summaries = self._summaries.load()
        return summaries.to_dict() if summaries is not None else None

    def playlist_tracks(self, playlist_id: str) -> list[dict[str, Any]] | None:
        """A playlist's cached track items, or None if not cached."""
        return self._entities.peek(EntityKind.PLAYLIST_TRACKS, playlist_id)

    def load(self) -> list[LoadedPlaylist]:
        """
        Read every summarized playlist and its cached tracks.

        Playlists whose track list is not cached are left out.

        Raises:
            CacheError: If a file is malformed.
        """
        summaries = self._summaries.load()
        playlists: list[LoadedPlaylist] = []

        if summaries is None:
            logger.warning(f"No playlist summaries in {self.cache_dir}")
        else:
            for summary in summaries.playlists:
                tracks = self.playlist_tracks(summary.spotify_id)
                if tracks is None:
                    logger.debug(f"No cached tracks for {summary.name} ({summary.spotify_id})")
                    continue
                playlists.append(LoadedPlaylist(summary=summary, tracks=tracks))

        self._playlists = playlists
        self._loaded_at = self._clock()
        logger.info(f"Loaded {len(playlists)} playlists")
        return playlists

    def load_if_necessary(self) -> list[LoadedPlaylist]:
        if self._playlists is not None and self._clock() - self._loaded_at < self.ttl_seconds:
            logger.debug("Using loaded playlists")
            return self._playlists
        return self.load()

    def search(self, query: str) -> dict[str, Any]:
        """
        Find tracks whose title, album or artist contains query.

        Returns:
            {"tracks": [...]}, one entry per matching track listing every
            playlist it appears in, in the order tracks were first found.
        """
        query = query.lower()
        started = self._clock()
        by_id: dict[str, dict[str, Any]] = {}

        for playlist in self.load_if_necessary():
            for item in playlist.tracks:
                track = item_track(item)
                if not track or not track.get("id") or not track_matches(track, query):
                    continue

                entry = by_id.get(track["id"])
                if entry is None:
                    album = track_album(track)
                    entry = {
                        "id": track["id"],
                        "name": track.get("name", ""),
                        "album": {"id": album.get("id", ""), "name": album.get("name", "")},
                        "artists": [
                            {"id": a.get("id", ""), "name": a.get("name", "")}
                            for a in track_artists(track)
                        ],
                        "playlists": [],
                    }
                    by_id[track["id"]] = entry

                entry["playlists"].append(
                    {"id": playlist.summary.spotify_id, "name": playlist.summary.name}
                )

        logger.info(
            f"Search q='{query}': {len(by_id)} tracks in {self._clock() - started:.3f}s"
        )
        return {"tracks": list(by_id.values())}
