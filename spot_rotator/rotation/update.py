"""
Before/after plan for rewriting a playlist's tracks.
"""

from typing import Iterable

from spot_rotator.rotation.track_set import TrackSet


class PlaylistUpdate:
    """
    Diff between a playlist's current tracks and the tracks it should hold.

    Tracks present both before and after are left alone, so a track that is
    re-selected keeps its original add date.

    Example:
        update = PlaylistUpdate(existing)
        update.add_all(selected)
        reconciler.remove_all(target_id, update.ids_to_remove)
        reconciler.add_all(target_id, update.ids_to_add)
    """

    def __init__(self, before: TrackSet, after: Iterable[str] = ()) -> None:
        self.before = before
        self._after: dict[str, None] = {}
        self.add_all(after)

    def add(self, track_id: str) -> None:
        self._after.setdefault(track_id, None)

    def add_all(self, track_ids: Iterable[str]) -> None:
        for track_id in track_ids:
            self.add(track_id)

    @property
    def after(self) -> list[str]:
        return list(self._after)

    @property
    def ids_to_remove(self) -> list[str]:
        """IDs in before but not after, in before's order."""
        return [track_id for track_id in self.before if track_id not in self._after]

    @property
    def ids_to_add(self) -> list[str]:
        """IDs in after but not before, in the order they were added."""
        return [track_id for track_id in self._after if track_id not in self.before]

    def is_empty(self) -> bool:
        return not self.ids_to_remove and not self.ids_to_add

    def __repr__(self) -> str:
        return (
            f"PlaylistUpdate(remove={len(self.ids_to_remove)}, "
            f"add={len(self.ids_to_add)})"
        )
