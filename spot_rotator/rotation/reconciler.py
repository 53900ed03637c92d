"""
Batched track removal and addition against a remote playlist.
"""

from typing import Callable

from spot_rotator.core.exceptions import ReconcileError, SpotifyError
from spot_rotator.core.logger import get_logger
from spot_rotator.spotify.client import SpotifyClient

logger = get_logger(__name__)


BATCH_SIZE = 50


def chunk(ids: list[str], size: int = BATCH_SIZE) -> list[list[str]]:
    return [ids[i:i + size] for i in range(0, len(ids), size)]


class Reconciler:
    """
    Applies a PlaylistUpdate to Spotify, one request per batch.

    Batches are sent in order and the first failure stops the operation.
    Batches sent before it are not rolled back.
    """

    def __init__(self, client: SpotifyClient, batch_size: int = BATCH_SIZE) -> None:
        self.client = client
        self.batch_size = batch_size

    def remove_all(self, playlist_id: str, track_ids: list[str]) -> int:
        """
        Remove tracks from a playlist.

        Returns:
            Number of batches sent.

        Raises:
            ReconcileError: If a batch fails.
        """
        return self._apply("remove", self.client.remove_items, playlist_id, track_ids)

    def add_all(self, playlist_id: str, track_ids: list[str]) -> int:
        """
        Append tracks to a playlist.

        Returns:
            Number of batches sent.

        Raises:
            ReconcileError: If a batch fails.
        """
        return self._apply("add", self.client.add_items, playlist_id, track_ids)

    def _apply(
        self,
        action: str,
        send: Callable[[str, list[str]], object],
        playlist_id: str,
        track_ids: list[str]
    ) -> int:
        batches = chunk(track_ids, self.batch_size)
        applied = 0

        for batch in batches:
            logger.info(f"Playlist {playlist_id}: {action} {len(batch)} tracks")
            try:
                send(playlist_id, batch)
            except SpotifyError as e:
                raise ReconcileError(
                    f"Failed to {action} tracks after {applied} of {len(batches)} batches: "
                    f"{e.message}",
                    applied_batches=applied,
                    details={
                        "playlist_id": playlist_id,
                        "action": action,
                        "total_batches": len(batches),
                        "original_error": str(e),
                    }
                ) from e
            applied += 1

        return applied
