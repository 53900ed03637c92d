"""
Rotation engine.

    - track_set: TrackSet, set algebra and sampling over track IDs
    - update: PlaylistUpdate, the before/after diff
    - summary: playlist summaries and snapshot drift detection
    - reconciler: batched remove/add against Spotify
    - generator: RotationGenerator, the staged rotation run
"""

from spot_rotator.rotation.generator import (
    RotationContext,
    RotationGenerator,
    RotationOptions,
    RotationResult,
)
from spot_rotator.rotation.reconciler import BATCH_SIZE, Reconciler
from spot_rotator.rotation.summary import (
    PlaylistSummaries,
    PlaylistSummary,
    SummaryGenerator,
    SummaryStore,
    summarize,
)
from spot_rotator.rotation.track_set import TrackSet
from spot_rotator.rotation.update import PlaylistUpdate

__all__ = [
    "TrackSet",
    "PlaylistUpdate",
    "PlaylistSummary",
    "PlaylistSummaries",
    "SummaryGenerator",
    "SummaryStore",
    "summarize",
    "BATCH_SIZE",
    "Reconciler",
    "RotationContext",
    "RotationGenerator",
    "RotationOptions",
    "RotationResult",
]
