"""
spot-rotator: Rotate a Spotify playlist with tracks from monthly playlists.

Each run rebuilds a target playlist ("discovery monthly" by default) from a
random sample of the tracks in a user's monthly playlists ("2023 march",
"2023 april", ...) that the target does not already hold.

Architecture:
    Catalog data flows through a local JSON cache:

    spotify/    - spotipy client and playlist models
    cache/      - on-disk entity cache and the typed SpotifyCacher
    rotation/   - track sets, summaries, reconciliation and the run itself
    server/     - read-only Flask query server over the cache
    core/       - configuration, logging, exceptions
    cli.py      - command-line interface

Usage:
    Command Line:
        spot-rotator --user jlewalle --size 30
        spot-rotator --dry --seed 42
        spot-rotator --serve

    Python API:
        from spot_rotator.core import load_config, setup_logging
        from spot_rotator.spotify import SpotifyClient
        from spot_rotator.rotation import (
            RotationContext, RotationGenerator, RotationOptions
        )

        config = load_config()
        setup_logging(config.logging.directory)
        client = SpotifyClient.from_config(config.spotify, config.cache.directory)

        context = RotationContext.create(client, config.cache.directory, seed=42)
        result = RotationGenerator(context).run(
            RotationOptions(self_user="jlewalle", user="jlewalle",
                            name="discovery monthly", size=30)
        )
"""

__version__ = "0.1.0"
