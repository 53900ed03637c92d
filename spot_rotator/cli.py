"""
Command-line interface for spot-rotator.

This module implements the CLI using Click; rich-click is used for the
help formatting and output colors.

Modes:
    spot-rotator                          Rotate the target playlist
    spot-rotator --dry                    Compute and log the rotation only
    spot-rotator --serve                  Run the read-only query server
    spot-rotator --album <id>             Print a cached album with its tracks
    spot-rotator --artist <id>            Print an artist's cached albums

Usage:
    # Rotate 30 tracks from jlewalle's monthly playlists into "discovery monthly"
    spot-rotator --user jlewalle --self jlewalle --size 30

    # Same thing, refetching playlist listings instead of trusting the cache
    spot-rotator --refresh

    # Reproducible dry run
    spot-rotator --dry --seed 42

    # Drop every cached track and album before running
    spot-rotator --purge track --purge album

Configuration:
    Reads config.yaml from the current directory (or --config). Spotify
    credentials can come from the environment instead; see core/config.py.

Exit codes:
    0    success
    1    configuration error or unexpected failure
    2    cache error
    3    Spotify error
    4    other rotation error (summary, reconcile)
    5    not enough tracks to sample
    130  interrupted
"""

import json
import sys
from pathlib import Path
from typing import Optional

import rich_click as click

# Configure rich-click for better help formatting
click.rich_click.USE_RICH_MARKUP = True
click.rich_click.STYLE_ERRORS_SUGGESTION = "magenta italic"
click.rich_click.ERRORS_SUGGESTION = ""
click.rich_click.MAX_WIDTH = 100
click.rich_click.OPTION_GROUPS = {
    "spot-rotator": [
        {
            "name": "Rotation",
            "options": ["--self", "--user", "--name", "--size", "--seed", "--dry"],
        },
        {
            "name": "Cache",
            "options": ["--refresh", "--purge"],
        },
        {
            "name": "Lookups",
            "options": ["--album", "--artist"],
        },
        {
            "name": "Query Server",
            "options": ["--serve", "--host", "--port"],
        },
        {
            "name": "Info",
            "options": ["--config", "--verbose", "--version", "--help"],
        },
    ],
}

from spot_rotator import __version__
from spot_rotator.cache import EntityCache, EntityKind, SpotifyCacher
from spot_rotator.core import (
    CacheError,
    Config,
    ConfigError,
    InsufficientTracksError,
    RotatorError,
    SpotifyError,
    get_logger,
    load_config,
    setup_logging,
    shutdown_logging,
)
from spot_rotator.rotation import (
    RotationContext,
    RotationGenerator,
    RotationOptions,
    RotationResult,
)
from spot_rotator.spotify import SpotifyClient

logger = get_logger(__name__)


PURGE_CHOICES = [kind.value for kind in EntityKind]


def _parse_purge(ctx: click.Context, param: click.Parameter, values: tuple[str, ...]) -> list[EntityKind]:
    kinds = []
    for value in values:
        try:
            kinds.append(EntityKind.from_cli_name(value))
        except ValueError as e:
            raise click.BadParameter(f"{e}. Choose from: {', '.join(PURGE_CHOICES)}") from e
    return kinds


@click.command(name="spot-rotator")
@click.option("--dry", is_flag=True, help="Log the rotation plan without changing the playlist")
@click.option("--refresh", is_flag=True, help="Refetch playlist listings and track lists")
@click.option("--self", "self_user", type=str, default=None, metavar="<user>",
              help="User that owns the target playlist")
@click.option("--user", type=str, default=None, metavar="<user>",
              help="User whose monthly playlists are sampled")
@click.option("--name", type=str, default=None, metavar="<name>",
              help="Target playlist name")
@click.option("--size", type=click.IntRange(min=0), default=None, metavar="<n>",
              help="Number of tracks to rotate in")
@click.option("--seed", type=int, default=None, metavar="<n>",
              help="Seed the sampler for a reproducible selection")
@click.option("--serve", is_flag=True, help="Run the read-only query server")
@click.option("--host", type=str, default=None, help="Query server bind address")
@click.option("--port", type=click.IntRange(1, 65535), default=None, help="Query server port")
@click.option("--purge", multiple=True, callback=_parse_purge, metavar="<kind>",
              help=f"Drop every cached entity of a kind first ({', '.join(PURGE_CHOICES)})")
@click.option("--album", "album_id", type=str, default=None, metavar="<id>",
              help="Print a cached album with its tracks as JSON")
@click.option("--artist", "artist_id", type=str, default=None, metavar="<id>",
              help="Print an artist's cached albums as JSON")
@click.option("--config", "config_path", type=click.Path(dir_okay=False, path_type=Path),
              default=None, help="Path to config.yaml")
@click.option("-v", "--verbose", is_flag=True, help="Show debug output")
@click.option("--version", is_flag=True, help="Show version and exit.")
def cli(
    dry: bool,
    refresh: bool,
    self_user: Optional[str],
    user: Optional[str],
    name: Optional[str],
    size: Optional[int],
    seed: Optional[int],
    serve: bool,
    host: Optional[str],
    port: Optional[int],
    purge: list[EntityKind],
    album_id: Optional[str],
    artist_id: Optional[str],
    config_path: Optional[Path],
    verbose: bool,
    version: bool
) -> None:
    """
    spot-rotator: Rotate a Spotify playlist with tracks from monthly playlists.

    Each run replaces the tracks of the target playlist with a random sample
    of tracks from the user's "<year> <month>" playlists that the target
    does not already hold.

    \b
    EXAMPLES:
        spot-rotator --user jlewalle --self jlewalle
        spot-rotator --dry --seed 42 --size 10
        spot-rotator --serve --port 8080
    """
    if version:
        click.echo(f"spot-rotator {__version__}")
        return

    if album_id and artist_id:
        raise click.UsageError("Cannot use both --album and --artist")
    if serve and (album_id or artist_id):
        raise click.UsageError("--serve cannot be combined with --album or --artist")

    config: Config | None = None

    try:
        config = load_config(config_path, require_spotify=not serve)
        log_path = setup_logging(config.logging.directory, verbose=verbose)
        logger.debug(f"Logging to {log_path}")

        store = EntityCache(config.cache.directory)
        for kind in purge:
            store.invalidate_all(kind)

        if serve:
            _run_server(config, host, port)
            return

        client = SpotifyClient.from_config(config.spotify, config.cache.directory)

        if album_id or artist_id:
            cacher = SpotifyCacher(client, store, force_refresh=refresh)
            _print_lookup(cacher, album_id, artist_id)
            return

        options = _rotation_options(config, dry, self_user, user, name, size)
        context = RotationContext.create(
            client, config.cache.directory, force_refresh=refresh, seed=seed
        )
        result = RotationGenerator(context).run(options)
        _print_result(result)

    except ConfigError as e:
        click.echo(f"Configuration error: {e.message}", err=True)
        sys.exit(1)

    except CacheError as e:
        click.echo(f"Cache error: {e.message}", err=True)
        logger.error(f"Cache error: {e.message}", exc_info=True)
        sys.exit(2)

    except SpotifyError as e:
        click.echo(f"Spotify error: {e.message}", err=True)
        if e.is_auth_error:
            click.echo("Check your client_id, client_secret and redirect_uri", err=True)
        elif e.is_rate_limit:
            click.echo("Spotify is rate limiting requests, try again later", err=True)
        logger.error(f"Spotify error: {e.message}", exc_info=True)
        sys.exit(3)

    except InsufficientTracksError as e:
        click.echo(f"Error: {e.message}", err=True)
        logger.error(e.message)
        sys.exit(5)

    except RotatorError as e:
        click.echo(f"Error: {e.message}", err=True)
        logger.error(f"Error: {e.message}", exc_info=True)
        if e.details:
            logger.debug(f"Details: {e.details}")
        sys.exit(4)

    except KeyboardInterrupt:
        click.echo("\nInterrupted by user", err=True)
        logger.info("Interrupted by user")
        sys.exit(130)

    except Exception as e:
        click.echo(f"Unexpected error: {e}", err=True)
        logger.exception("Unexpected error")
        sys.exit(1)

    finally:
        if config is not None:
            shutdown_logging()


def _rotation_options(
    config: Config,
    dry: bool,
    self_user: Optional[str],
    user: Optional[str],
    name: Optional[str],
    size: Optional[int]
) -> RotationOptions:
    """
    Merge CLI flags over the configured rotation defaults.

    When only one of self/user is known it is used for both.

    Raises:
        ConfigError: If neither --self nor --user is given or configured.
    """
    self_user = self_user or config.rotation.self_user
    user = user or config.rotation.user
    self_user = self_user or user
    user = user or self_user

    if not self_user or not user:
        raise ConfigError(
            "No user configured: pass --user/--self or set rotation.user in config.yaml",
            details={"field": "rotation.user"}
        )

    return RotationOptions(
        self_user=self_user,
        user=user,
        name=name or config.rotation.name,
        size=config.rotation.size if size is None else size,
        dry_run=dry
    )


def _run_server(config: Config, host: Optional[str], port: Optional[int]) -> None:
    from spot_rotator.server import create_app

    host = host or config.server.host
    port = port or config.server.port

    app = create_app(config.cache.directory)
    logger.info(f"Serving {config.cache.directory} on http://{host}:{port}")
    app.run(host=host, port=port)


def _print_lookup(cacher: SpotifyCacher, album_id: Optional[str], artist_id: Optional[str]) -> None:
    if album_id:
        payload = {
            "album": cacher.get_album(album_id),
            "tracks": cacher.get_album_tracks(album_id),
        }
    else:
        payload = {"artist": artist_id, "albums": cacher.get_artist_albums(artist_id)}
    click.echo(json.dumps(payload, indent=2))


def _print_result(result: RotationResult) -> None:
    logger.info("=" * 60)
    logger.info(f"Target playlist:  {result.target_name} ({result.target_id})"
                + (" [created]" if result.created else ""))
    logger.info(f"Monthly tracks:   {result.total_count}")
    logger.info(f"Sampling from:    {result.sampling_count}")
    if result.dry_run:
        logger.info(f"Would remove:     {result.removed_count}")
        logger.info(f"Would add:        {result.added_count}")
        logger.info("Dry run, playlist unchanged")
    else:
        logger.info(f"Removed:          {result.removed_count}")
        logger.info(f"Added:            {result.added_count}")
    logger.info("=" * 60)


def main() -> None:
    """Entry point for the spot-rotator console script."""
    cli()


if __name__ == "__main__":
    main()
