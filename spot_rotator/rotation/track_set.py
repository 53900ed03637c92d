"""
Set of Spotify track IDs.

TrackSet keeps insertion order (it is backed by a dict) so that iterating a
set, and therefore sampling it with a seeded random.Random, gives the same
result on every run regardless of string hash randomization.
"""

import random
from typing import Any, Iterable, Iterator

from spot_rotator.core.exceptions import InsufficientTracksError
from spot_rotator.spotify.models import item_track_id


class TrackSet:
    """
    Unordered, duplicate-free collection of track IDs.

    Example:
        everything = TrackSet()
        for playlist in monthly:
            everything.merge(cacher.get_playlist_tracks(playlist.spotify_id))
        candidates = everything.difference(existing)
        selected = candidates.sample(30, random.Random(42))
    """

    def __init__(self, track_ids: Iterable[str] = ()) -> None:
        self._ids: dict[str, None] = dict.fromkeys(track_ids)

    @classmethod
    def from_ids(cls, track_ids: Iterable[str]) -> "TrackSet":
        return cls(track_ids)

    @classmethod
    def from_items(cls, items: Iterable[dict[str, Any] | None]) -> "TrackSet":
        """Build a set from playlist track items."""
        return cls().merge(items)

    def merge(self, items: Iterable[dict[str, Any] | None]) -> "TrackSet":
        """
        Add the track IDs of playlist items to this set, in place.

        Items whose track was removed from Spotify, and local files, carry no
        track ID and are skipped.

        Returns:
            self, so calls can be chained.
        """
        for item in items:
            track_id = item_track_id(item)
            if track_id is not None:
                self._ids.setdefault(track_id, None)
        return self

    def difference(self, other: "TrackSet") -> "TrackSet":
        """Return a new set of the IDs in self that are not in other."""
        return TrackSet(track_id for track_id in self._ids if track_id not in other)

    def to_ordered_sequence(self) -> list[str]:
        """IDs in insertion order."""
        return list(self._ids)

    def sample(self, n: int, rng: random.Random) -> "TrackSet":
        """
        Pick n distinct IDs uniformly at random, without replacement.

        Args:
            n: Number of IDs to pick.
            rng: Random source; seed it for reproducible picks.

        Raises:
            ValueError: If n is negative.
            InsufficientTracksError: If n is larger than the set.
        """
        if n < 0:
            raise ValueError(f"Sample size must not be negative: {n}")
        if n > len(self._ids):
            raise InsufficientTracksError(requested=n, available=len(self._ids))
        return TrackSet(rng.sample(self.to_ordered_sequence(), n))

    def __len__(self) -> int:
        return len(self._ids)

    def __contains__(self, track_id: object) -> bool:
        return track_id in self._ids

    def __iter__(self) -> Iterator[str]:
        return iter(self._ids)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TrackSet):
            return NotImplemented
        return self._ids.keys() == other._ids.keys()

    def __repr__(self) -> str:
        return f"TrackSet({len(self._ids)} tracks)"
