"""
Rotation run: rebuild the target playlist from monthly playlists.

A run goes through these stages, in order, and stops at the first error:

    1. Resolve the target playlist by name among the acting user's
       playlists, creating it (public) if it doesn't exist
    2. Invalidate and fetch the target's current tracks
    3. Invalidate and fetch the source user's playlist listing
    4. Summarize every source playlist (drift detection, playlists.json)
    5. Merge the tracks of every monthly playlist ("2023 march")
    6. Drop the tracks the target already holds
    7. Sample the requested number of tracks from what is left
    8. Remove the target's old tracks and add the sampled ones
       (dry runs only log the plan)

Nothing is retried and nothing is rolled back: a failed run leaves the
cache and the target playlist in whatever state the completed stages
produced, and the next run starts again from stage 1.

Usage:
    context = RotationContext.create(client, cache_dir, force_refresh=False, seed=42)
    result = RotationGenerator(context).run(
        RotationOptions(self_user="me", user="me", name="discovery monthly", size=30)
    )
"""

import logging
import random
from dataclasses import dataclass, field
from pathlib import Path

from spot_rotator.cache.cacher import SpotifyCacher
from spot_rotator.cache.store import EntityCache
from spot_rotator.core.exceptions import SpotifyError
from spot_rotator.core.logger import get_logger
from spot_rotator.rotation.reconciler import Reconciler
from spot_rotator.rotation.summary import SummaryGenerator, SummaryStore
from spot_rotator.rotation.track_set import TrackSet
from spot_rotator.rotation.update import PlaylistUpdate
from spot_rotator.spotify.client import SpotifyClient
from spot_rotator.spotify.models import Playlist, describe_track


@dataclass(frozen=True)
class RotationOptions:
    """
    Attributes:
        self_user: User that owns the target playlist.
        user: User whose monthly playlists are sampled.
        name: Target playlist name, matched case-insensitively.
        size: Number of tracks the target should hold after the run.
        dry_run: Compute and log the plan without touching the target.
    """
    self_user: str
    user: str
    name: str
    size: int
    dry_run: bool = False


@dataclass
class RotationContext:
    """
    Everything a run talks to, built once per run and passed explicitly.
    """
    client: SpotifyClient
    cacher: SpotifyCacher
    summarizer: SummaryGenerator
    reconciler: Reconciler
    rng: random.Random
    logger: logging.Logger = field(default_factory=lambda: get_logger(__name__))

    @classmethod
    def create(
        cls,
        client: SpotifyClient,
        cache_dir: Path,
        force_refresh: bool = False,
        seed: int | None = None,
        show_progress: bool = True
    ) -> "RotationContext":
        """
        Wire up the default collaborators around a client and a cache directory.

        Args:
            seed: Seed for the sampler. None draws from system entropy.
        """
        cacher = SpotifyCacher(client, EntityCache(cache_dir), force_refresh=force_refresh)
        return cls(
            client=client,
            cacher=cacher,
            summarizer=SummaryGenerator(
                cacher, SummaryStore.in_directory(cache_dir), show_progress=show_progress
            ),
            reconciler=Reconciler(client),
            rng=random.Random(seed)
        )


@dataclass
class RotationResult:
    """Outcome of a run, for the CLI to report."""
    target_id: str
    target_name: str
    created: bool
    existing_count: int
    total_count: int
    sampling_count: int
    selected_ids: list[str]
    removed_count: int
    added_count: int
    dry_run: bool


class RotationGenerator:
    """Runs the rotation stages against one RotationContext."""

    def __init__(self, context: RotationContext) -> None:
        self.context = context

    def run(self, options: RotationOptions) -> RotationResult:
        """
        Rebuild the target playlist.

        Raises:
            SpotifyError: If a catalog call fails or the target playlist
                          cannot be resolved after creating it.
            CacheError: If a cache file is malformed or unwritable.
            SummaryError: If a source playlist has a malformed timestamp.
            InsufficientTracksError: If fewer than options.size tracks are
                                     available to sample.
            ReconcileError: If updating the target playlist fails part way.
        """
        ctx = self.context
        log = ctx.logger

        log.info(
            f"Getting playlists for {options.user}, "
            f"rotating '{options.name}' for {options.self_user}"
        )

        target, created = self.resolve_target(options.self_user, options.name)

        ctx.cacher.invalidate_playlist(target.spotify_id)
        existing_items = ctx.cacher.get_playlist_tracks(target.spotify_id)
        existing = TrackSet.from_items(existing_items)
        log.info(f"Target: {target.name} ({target.spotify_id}, {len(existing_items)} tracks)")

        ctx.cacher.invalidate_user(options.user)
        playlists = ctx.cacher.get_playlists(options.user)

        ctx.summarizer.generate(options.user, playlists)

        all_tracks = TrackSet()
        for playlist in playlists.monthly():
            tracks = ctx.cacher.get_playlist_tracks(playlist.spotify_id)
            log.info(f"Monthly: {playlist.name} ({len(tracks)} tracks)")
            all_tracks.merge(tracks)

        log.info(f"Total tracks: {len(all_tracks)}")

        sampling = all_tracks.difference(existing)
        log.info(f"Sampling tracks: {len(sampling)}")

        selected = sampling.sample(options.size, ctx.rng)

        update = PlaylistUpdate(existing, selected.to_ordered_sequence())
        to_remove = update.ids_to_remove
        to_add = update.ids_to_add

        if options.dry_run:
            log.info(f"Dry run: would remove {len(to_remove)} and add {len(to_add)} tracks")
            for track in ctx.cacher.get_tracks(to_add):
                log.info(f"  + {describe_track(track)}")
        else:
            log.info(f"Removing old tracks: {len(to_remove)}")
            ctx.reconciler.remove_all(target.spotify_id, to_remove)

            log.info(f"Adding new tracks: {len(to_add)}")
            ctx.reconciler.add_all(target.spotify_id, to_add)

            # The target's cached track list no longer matches Spotify
            ctx.cacher.invalidate_playlist(target.spotify_id)

        return RotationResult(
            target_id=target.spotify_id,
            target_name=target.name,
            created=created,
            existing_count=len(existing),
            total_count=len(all_tracks),
            sampling_count=len(sampling),
            selected_ids=selected.to_ordered_sequence(),
            removed_count=len(to_remove),
            added_count=len(to_add),
            dry_run=options.dry_run
        )

    def resolve_target(self, self_user: str, name: str) -> tuple[Playlist, bool]:
        """
        Find the target playlist, creating it if needed.

        Returns:
            (playlist, created)

        Raises:
            SpotifyError: If the playlist is still missing after creation.
        """
        client = self.context.client

        item = client.find_user_playlist(self_user, name)
        if item is not None:
            return Playlist.from_spotify_api(item, self_user), False

        self.context.logger.info(f"Creating playlist '{name}' for {self_user}")
        client.create_playlist(self_user, name, public=True)

        item = client.find_user_playlist(self_user, name)
        if item is None:
            raise SpotifyError(
                f"Playlist '{name}' not found after creating it",
                details={"user": self_user, "name": name}
            )
        return Playlist.from_spotify_api(item, self_user), True
