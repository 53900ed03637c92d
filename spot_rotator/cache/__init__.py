"""
Local JSON cache of Spotify entities.

    - store: EntityKind and the generic on-disk EntityCache
    - cacher: SpotifyCacher, typed accessors with the refresh policy
"""

from spot_rotator.cache.cacher import SpotifyCacher
from spot_rotator.cache.store import EntityCache, EntityKind

__all__ = ["EntityCache", "EntityKind", "SpotifyCacher"]
