"""
Playlist summaries and snapshot drift detection.

A summary records what a playlist looked like at the end of a run: its
metadata, how many tracks it held, when a track was last added, and the
snapshot token Spotify reported. All of a user's summaries are written
together to <cache>/playlists.json, which the query server serves and the
next run reads back.

Drift detection:
    Spotify changes a playlist's snapshot token whenever its tracks change.
    Before summarizing a playlist, SummaryGenerator compares the current
    token with the one in the previous summaries file. If they differ the
    playlist's cached track list is stale and is invalidated, so the fetch
    that follows goes to Spotify.

Timestamps:
    Track add times use the catalog format YYYY-MM-DDTHH:MM:SSZ (UTC). A
    playlist with no tracks reports the zero time 0001-01-01T00:00:00Z.
"""

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from tqdm import tqdm

from spot_rotator.cache.cacher import SpotifyCacher
from spot_rotator.cache.store import read_json, write_json_atomic
from spot_rotator.core.exceptions import CacheError, SummaryError
from spot_rotator.core.logger import get_logger
from spot_rotator.spotify.models import Image, Playlist, PlaylistSet

logger = get_logger(__name__)


SUMMARIES_FILENAME = "playlists.json"

ADDED_AT_FORMAT = "%Y-%m-%dT%H:%M:%SZ"
ADDED_AT_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}Z")

ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)


def parse_added_at(value: Any) -> datetime:
    """
    Parse a playlist item's added_at timestamp.

    Raises:
        SummaryError: If value is missing or not exactly YYYY-MM-DDTHH:MM:SSZ.
    """
    if not isinstance(value, str) or not ADDED_AT_PATTERN.fullmatch(value):
        raise SummaryError(
            f"Malformed added_at timestamp: {value!r}",
            details={"added_at": value}
        )
    try:
        return datetime.strptime(value, ADDED_AT_FORMAT).replace(tzinfo=timezone.utc)
    except ValueError as e:
        raise SummaryError(
            f"Malformed added_at timestamp: {value!r}",
            details={"added_at": value, "original_error": str(e)}
        ) from e


def format_timestamp(value: datetime) -> str:
    # isoformat() zero-pads the year, strftime("%Y") does not on every platform
    return value.astimezone(timezone.utc).replace(microsecond=0).isoformat().replace(
        "+00:00", "Z"
    )


def parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class PlaylistSummary:
    """
    What a playlist looked like when it was last summarized.

    Attributes:
        spotify_id: Playlist ID.
        name: Display name.
        user: User whose listing the playlist came from.
        owner: Playlist owner.
        images: Cover images.
        description: Playlist description.
        number_of_tracks: Number of items in the playlist.
        last_modified: Latest track add time, ZERO_TIME for an empty playlist.
        subscribed: True when the user follows rather than owns it.
        snapshot_id: Snapshot token at summary time.
    """
    spotify_id: str
    name: str
    user: str
    owner: str
    images: tuple[Image, ...]
    description: str
    number_of_tracks: int
    last_modified: datetime
    subscribed: bool
    snapshot_id: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.spotify_id,
            "name": self.name,
            "user": {"id": self.user},
            "owner": {"id": self.owner},
            "images": [image.to_dict() for image in self.images],
            "description": self.description,
            "numberOfTracks": self.number_of_tracks,
            "lastModified": format_timestamp(self.last_modified),
            "subscribed": self.subscribed,
            "snapshot": self.snapshot_id,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PlaylistSummary":
        return cls(
            spotify_id=data["id"],
            name=data.get("name", ""),
            user=(data.get("user") or {}).get("id", ""),
            owner=(data.get("owner") or {}).get("id", ""),
            images=tuple(Image.from_dict(i) for i in data.get("images") or []),
            description=data.get("description", ""),
            number_of_tracks=data.get("numberOfTracks", 0),
            last_modified=parse_timestamp(data.get("lastModified", format_timestamp(ZERO_TIME))),
            subscribed=data.get("subscribed", False),
            snapshot_id=data.get("snapshot", "")
        )


@dataclass
class PlaylistSummaries:
    """The batch of summaries stored in playlists.json."""
    playlists: list[PlaylistSummary] = field(default_factory=list)

    def find(self, playlist_id: str) -> PlaylistSummary | None:
        for summary in self.playlists:
            if summary.spotify_id == playlist_id:
                return summary
        return None

    def __len__(self) -> int:
        return len(self.playlists)

    def to_dict(self) -> dict[str, Any]:
        return {"playlists": [summary.to_dict() for summary in self.playlists]}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PlaylistSummaries":
        return cls([PlaylistSummary.from_dict(p) for p in data.get("playlists") or []])


def summarize(playlist: Playlist, tracks: list[dict[str, Any]]) -> PlaylistSummary:
    """
    Summarize one playlist from its track items.

    Args:
        playlist: Playlist metadata from the user's listing.
        tracks: Playlist items, each with an 'added_at' timestamp.

    Raises:
        SummaryError: If any item's added_at is missing or malformed.
    """
    last_modified = ZERO_TIME
    for item in tracks:
        added_at = parse_added_at((item or {}).get("added_at"))
        if added_at > last_modified:
            last_modified = added_at

    return PlaylistSummary(
        spotify_id=playlist.spotify_id,
        name=playlist.name,
        user=playlist.user,
        owner=playlist.owner,
        images=playlist.images,
        description=playlist.description,
        number_of_tracks=len(tracks),
        last_modified=last_modified,
        subscribed=playlist.owner != playlist.user,
        snapshot_id=playlist.snapshot_id
    )


class SummaryStore:
    """
    Reads and writes the summaries file.

    Attributes:
        path: Location of playlists.json.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    @classmethod
    def in_directory(cls, cache_dir: Path) -> "SummaryStore":
        return cls(cache_dir / SUMMARIES_FILENAME)

    def load(self) -> PlaylistSummaries | None:
        """
        Returns:
            The stored summaries, or None if no file has been written yet.

        Raises:
            CacheError: If the file is malformed.
        """
        data = read_json(self.path)
        if data is None:
            return None
        try:
            return PlaylistSummaries.from_dict(data)
        except (AttributeError, KeyError, TypeError, ValueError) as e:
            raise CacheError(
                f"Malformed summaries file: {e}",
                details={"path": str(self.path), "original_error": str(e)}
            ) from e

    def save(self, summaries: PlaylistSummaries) -> None:
        write_json_atomic(self.path, summaries.to_dict())


class SummaryGenerator:
    """
    Summarizes a user's playlists, invalidating track lists that drifted.

    Example:
        generator = SummaryGenerator(cacher, SummaryStore.in_directory(cache_dir))
        summaries = generator.generate("jlewalle", playlists)
    """

    def __init__(
        self,
        cacher: SpotifyCacher,
        store: SummaryStore,
        show_progress: bool = True
    ) -> None:
        self.cacher = cacher
        self.store = store
        self.show_progress = show_progress

    def generate(self, user: str, playlists: PlaylistSet) -> PlaylistSummaries:
        """
        Summarize every playlist and replace the summaries file.

        Args:
            user: User the playlists were listed for.
            playlists: The user's playlist listing.

        Returns:
            The new summaries, in listing order.

        Raises:
            SummaryError: If a playlist has a malformed track timestamp.
            CacheError: If the previous summaries file is malformed.
            SpotifyError: If fetching a track list fails.
        """
        previous = self.store.load()
        if previous is None:
            logger.debug("No previous summaries, skipping drift detection")

        summaries = PlaylistSummaries()

        iterator = playlists
        if self.show_progress:
            iterator = tqdm(
                playlists,
                total=len(playlists),
                desc=f"Summarizing {user}",
                unit="playlist",
                leave=False
            )

        for playlist in iterator:
            if previous is not None:
                old = previous.find(playlist.spotify_id)
                if old is not None and old.snapshot_id != playlist.snapshot_id:
                    logger.info(
                        f"Playlist changed, invalidating: {playlist.name} "
                        f"({old.snapshot_id} != {playlist.snapshot_id})"
                    )
                    self.cacher.invalidate_playlist(playlist.spotify_id)

            tracks = self.cacher.get_playlist_tracks(playlist.spotify_id)
            summary = summarize(playlist, tracks)
            logger.debug(
                f"Playlist: {playlist.spotify_id} {playlist.name} "
                f"({len(tracks)} tracks) {format_timestamp(summary.last_modified)}"
            )
            summaries.playlists.append(summary)

        self.store.save(summaries)
        logger.info(f"Summarized {len(summaries)} playlists for {user}")
        return summaries
