"""
Read-only HTTP query server over the playlist cache.
"""

from spot_rotator.server.app import create_app
from spot_rotator.server.library import CachedLibrary

__all__ = ["CachedLibrary", "create_app"]
