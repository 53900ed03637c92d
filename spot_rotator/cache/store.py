"""
On-disk JSON store for Spotify entities.

Each cached entity lives in its own file inside the cache directory, named
after its kind and key:

    playlists-<user>.json        a user's playlist listing
    playlist-<id>.json           a playlist's track items
    album-<id>.json              full album object
    album-tracks-<id>.json       an album's simplified tracks
    artist-albums-<id>.json      an artist's simplified albums
    track-<id>.json              full track object

Files are written atomically (temporary file in the same directory, then
os.replace) so a reader in another process never sees a partial file.

The store has no expiry of its own. Callers decide when to refresh or
invalidate; see SpotifyCacher for the policy used by rotation runs.

Usage:
    store = EntityCache(cache_dir)
    items, from_cache = store.get(
        EntityKind.PLAYLIST_TRACKS, playlist_id,
        lambda: client.playlist_all_items(playlist_id)
    )
"""

import json
import os
import tempfile
from enum import Enum
from pathlib import Path
from typing import Any, Callable
from urllib.parse import quote, unquote

from spot_rotator.core.exceptions import CacheError
from spot_rotator.core.logger import get_logger

logger = get_logger(__name__)


CACHE_FILE_SUFFIX = ".json"

# Marks an absent file; a file may legitimately hold JSON null
_MISSING = object()


def read_json(path: Path, default: Any = None) -> Any:
    """
    Load a JSON file.

    Returns:
        The decoded value, or default if the file does not exist.

    Raises:
        CacheError: If the file cannot be read or is not valid JSON.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        return default
    except json.JSONDecodeError as e:
        raise CacheError(
            f"Malformed cache file {path.name}: {e}",
            details={"path": str(path), "original_error": str(e)}
        ) from e
    except (OSError, UnicodeDecodeError) as e:
        raise CacheError(
            f"Failed to read cache file {path.name}: {e}",
            details={"path": str(path), "original_error": str(e)}
        ) from e


def write_json_atomic(path: Path, value: Any) -> None:
    """
    Write a value as JSON, replacing path atomically.

    Raises:
        CacheError: If the value is not serializable or the write fails.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(dir=path.parent, prefix=".cache_", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(value, f, indent=2)
            os.replace(temp_path, path)
        except BaseException:
            if os.path.exists(temp_path):
                os.unlink(temp_path)
            raise
    except (OSError, TypeError, ValueError) as e:
        raise CacheError(
            f"Failed to write cache file {path.name}: {e}",
            details={"path": str(path), "original_error": str(e)}
        ) from e


class EntityKind(Enum):
    """Kinds of cached entity. The value is the file name prefix."""
    PLAYLISTS = "playlists"
    PLAYLIST_TRACKS = "playlist"
    ALBUM = "album"
    ALBUM_TRACKS = "album-tracks"
    ARTIST_ALBUMS = "artist-albums"
    TRACK = "track"

    @classmethod
    def from_cli_name(cls, name: str) -> "EntityKind":
        """
        Look up a kind by enum name or file prefix, case-insensitively.

        Raises:
            ValueError: If nothing matches.
        """
        wanted = name.strip().lower().replace("_", "-")
        for kind in cls:
            if wanted in (kind.value, kind.name.lower().replace("_", "-")):
                return kind
        raise ValueError(f"Unknown entity kind: {name}")

    @classmethod
    def of_filename(cls, filename: str) -> "EntityKind | None":
        """
        Return the kind a cache file name belongs to.

        "album-tracks-x.json" starts with both "album-" and "album-tracks-",
        so the longest matching prefix wins.
        """
        if not filename.endswith(CACHE_FILE_SUFFIX):
            return None
        matches = [kind for kind in cls if filename.startswith(kind.value + "-")]
        if not matches:
            return None
        return max(matches, key=lambda kind: len(kind.value))


class EntityCache:
    """
    Keyed JSON file cache.

    Attributes:
        directory: Cache directory. Created on first write.
    """

    def __init__(self, directory: Path) -> None:
        self.directory = directory

    def path_for(self, kind: EntityKind, key: str) -> Path:
        """
        Return the file path of one cache entry.

        The key is percent-encoded so that no key can name a file outside
        the cache directory.
        """
        if not key:
            raise CacheError(f"Empty cache key for {kind.name}", details={"kind": kind.name})
        return self.directory / f"{kind.value}-{quote(key, safe='')}{CACHE_FILE_SUFFIX}"

    def get(
        self,
        kind: EntityKind,
        key: str,
        fetch: Callable[[], Any],
        force_refresh: bool = False
    ) -> tuple[Any, bool]:
        """
        Return a cached entity, fetching and storing it on a miss.

        Args:
            kind: Entity kind.
            key: Entity key (user name or Spotify ID).
            fetch: Called with no arguments on a miss. Must return a JSON
                   serializable value.
            force_refresh: Ignore any existing file and fetch again.

        Returns:
            (value, from_cache) where from_cache is True when the value was
            read from disk.

        Raises:
            CacheError: If the cached file is malformed or cannot be written.
            Whatever fetch raises propagates unchanged; nothing is written.
        """
        path = self.path_for(kind, key)

        if not force_refresh:
            value = read_json(path, default=_MISSING)
            if value is not _MISSING:
                logger.debug(f"Cache hit: {path.name}")
                return value, True

        logger.debug(f"Cache {'refresh' if force_refresh else 'miss'}: {path.name}")
        value = fetch()
        write_json_atomic(path, value)
        return value, False

    def peek(self, kind: EntityKind, key: str) -> Any | None:
        """
        Return a cached entity without ever fetching it.

        Returns:
            The stored value, or None if there is no file for this key.

        Raises:
            CacheError: If the file exists but is malformed.
        """
        return read_json(self.path_for(kind, key))

    def put(self, kind: EntityKind, key: str, value: Any) -> None:
        """Store an already fetched entity, replacing any previous file."""
        write_json_atomic(self.path_for(kind, key), value)

    def invalidate(self, kind: EntityKind, key: str) -> None:
        """Remove one entry. Removing an absent entry is not an error."""
        path = self.path_for(kind, key)
        try:
            path.unlink()
            logger.debug(f"Invalidated {path.name}")
        except FileNotFoundError:
            pass
        except OSError as e:
            raise CacheError(
                f"Failed to remove cache file: {e}",
                details={"path": str(path), "original_error": str(e)}
            ) from e

    def invalidate_all(self, kind: EntityKind, owner_key: str | None = None) -> int:
        """
        Remove entries of one kind.

        Args:
            kind: Entity kind to purge.
            owner_key: If given, only the entry keyed by this owner (for
                       example a user's playlist listing) is removed.

        Returns:
            Number of files removed.
        """
        if owner_key is not None:
            existed = self.path_for(kind, owner_key).exists()
            self.invalidate(kind, owner_key)
            return int(existed)

        if not self.directory.is_dir():
            return 0

        removed = 0
        for path in self.directory.glob(f"{kind.value}-*{CACHE_FILE_SUFFIX}"):
            if EntityKind.of_filename(path.name) is not kind:
                continue
            key = unquote(path.name[len(kind.value) + 1:-len(CACHE_FILE_SUFFIX)])
            self.invalidate(kind, key)
            removed += 1

        logger.info(f"Purged {removed} cached {kind.value} entries")
        return removed
