"""
Configuration management for spot-rotator.

This module handles loading, validating, and providing access to the
application configuration stored in config.yaml.

The configuration file contains:
    - Spotify API credentials and OAuth redirect URI
    - Cache directory holding the JSON entity cache and playlist summaries
    - Log directory
    - Rotation defaults (acting user, source user, target name, sample size)
    - Query server bind address

Credentials may be left out of config.yaml and supplied through the
environment instead (SPOTIPY_CLIENT_ID, SPOTIPY_CLIENT_SECRET,
SPOTIPY_REDIRECT_URI). A .env file in the working directory is loaded first.

Example config.yaml:
    spotify:
      client_id: "your_client_id_here"
      client_secret: "your_client_secret_here"
      redirect_uri: "http://127.0.0.1:8888/callback"

    cache:
      directory: "~/.cache/spot-rotator"

    logging:
      directory: "~/.cache/spot-rotator/logs"

    rotation:
      self: "jlewalle"
      user: "jlewalle"
      name: "discovery monthly"
      size: 30

    server:
      host: "127.0.0.1"
      port: 8080
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from spot_rotator.core.exceptions import ConfigError


# Default configuration file name (looked up in the current working directory)
CONFIG_FILENAME = "config.yaml"

DEFAULT_REDIRECT_URI = "http://127.0.0.1:8888/callback"
DEFAULT_CACHE_DIRECTORY = ".cache"
DEFAULT_PLAYLIST_NAME = "discovery monthly"
DEFAULT_SAMPLE_SIZE = 30
DEFAULT_SERVER_HOST = "127.0.0.1"
DEFAULT_SERVER_PORT = 8080


@dataclass(frozen=True)
class SpotifyConfig:
    """
    Spotify API credentials configuration.

    These credentials are obtained from the Spotify Developer Dashboard:
    https://developer.spotify.com/dashboard

    Attributes:
        client_id: The Spotify application client ID.
        client_secret: The Spotify application client secret.
        redirect_uri: OAuth redirect URI registered for the application.
                      Editing playlists needs user authorization, so the
                      client credentials flow is not enough.
    """
    client_id: str
    client_secret: str
    redirect_uri: str


@dataclass(frozen=True)
class CacheConfig:
    """
    Attributes:
        directory: Absolute path of the entity cache directory.
    """
    directory: Path


@dataclass(frozen=True)
class LoggingConfig:
    """
    Attributes:
        directory: Absolute path where per-run log files are written.
                   Defaults to {cache.directory}/logs.
    """
    directory: Path


@dataclass(frozen=True)
class RotationConfig:
    """
    Defaults for a rotation run. Every field can be overridden on the CLI.

    Attributes:
        self_user: User that owns (or will own) the target playlist.
        user: User whose monthly playlists are the track sources.
        name: Target playlist name, matched case-insensitively.
        size: Number of tracks to sample into the target.
    """
    self_user: str | None
    user: str | None
    name: str
    size: int


@dataclass(frozen=True)
class ServerConfig:
    host: str
    port: int


@dataclass(frozen=True)
class Config:
    """
    Complete application configuration.

    Created by load_config() and treated as immutable.

    Example:
        config = load_config()
        print(f"Caching to: {config.cache.directory}")
        print(f"Rotating {config.rotation.size} tracks into {config.rotation.name}")
    """
    spotify: SpotifyConfig | None
    cache: CacheConfig
    logging: LoggingConfig
    rotation: RotationConfig
    server: ServerConfig


def load_config(
    config_path: Path | None = None,
    require_spotify: bool = True
) -> Config:
    """
    Load and validate configuration from config.yaml.

    Args:
        config_path: Optional explicit path to config file.
                     If None, looks for config.yaml in current working directory.
        require_spotify: Validate the Spotify credentials. Modes that never
                         call Spotify (the query server) pass False, and
                         Config.spotify is then None.

    Returns:
        Config: A frozen dataclass containing all configuration values.

    Raises:
        ConfigError: If the config file is not found, has invalid YAML syntax,
                     or contains invalid values.

    Behavior:
        1. Load .env from the working directory (if present)
        2. Locate config file (explicit path or CWD/config.yaml)
        3. Read and parse YAML content
        4. Parse each section, applying defaults and environment fallbacks
        5. Create and return frozen Config object
    """
    load_dotenv()

    if config_path is None:
        config_path = Path.cwd() / CONFIG_FILENAME

    if not config_path.exists():
        raise ConfigError(
            f"Configuration file not found: {config_path}",
            details={"file_path": str(config_path)}
        )

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            content = f.read()
    except IOError as e:
        raise ConfigError(
            f"Failed to read configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    try:
        raw_config = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ConfigError(
            f"Invalid YAML syntax in configuration file: {e}",
            details={"file_path": str(config_path), "original_error": str(e)}
        ) from e

    # An empty file parses to None; every section is optional
    if raw_config is None:
        raw_config = {}

    if not isinstance(raw_config, dict):
        raise ConfigError(
            "Configuration file must contain a YAML dictionary",
            details={"file_path": str(config_path)}
        )

    spotify_section = _section(raw_config, "spotify")
    spotify_config = _parse_spotify_config(spotify_section) if require_spotify else None
    cache_config = _parse_cache_config(_section(raw_config, "cache"))
    logging_config = _parse_logging_config(_section(raw_config, "logging"), cache_config)
    rotation_config = _parse_rotation_config(_section(raw_config, "rotation"))
    server_config = _parse_server_config(_section(raw_config, "server"))

    return Config(
        spotify=spotify_config,
        cache=cache_config,
        logging=logging_config,
        rotation=rotation_config,
        server=server_config
    )


def _section(raw_config: dict[str, Any], name: str) -> dict[str, Any]:
    """Return a (possibly empty) section, rejecting non-dictionary values."""
    section = raw_config.get(name)
    if section is None:
        return {}
    if not isinstance(section, dict):
        raise ConfigError(
            f"Section '{name}' must be a dictionary",
            details={"section": name}
        )
    return section


def _parse_spotify_config(spotify_section: dict[str, Any]) -> SpotifyConfig:
    """
    Parse the Spotify section, falling back to SPOTIPY_* environment variables.

    Raises:
        ConfigError: If client_id or client_secret is missing in both places.
    """
    client_id = spotify_section.get("client_id") or os.environ.get("SPOTIPY_CLIENT_ID", "")
    client_secret = (
        spotify_section.get("client_secret") or os.environ.get("SPOTIPY_CLIENT_SECRET", "")
    )
    redirect_uri = (
        spotify_section.get("redirect_uri")
        or os.environ.get("SPOTIPY_REDIRECT_URI")
        or DEFAULT_REDIRECT_URI
    )

    if not isinstance(client_id, str) or not client_id.strip():
        raise ConfigError(
            "'spotify.client_id' must be a non-empty string "
            "(or set SPOTIPY_CLIENT_ID)",
            details={"field": "spotify.client_id"}
        )

    if not isinstance(client_secret, str) or not client_secret.strip():
        raise ConfigError(
            "'spotify.client_secret' must be a non-empty string "
            "(or set SPOTIPY_CLIENT_SECRET)",
            details={"field": "spotify.client_secret"}
        )

    if not isinstance(redirect_uri, str):
        raise ConfigError(
            "'spotify.redirect_uri' must be a string",
            details={"field": "spotify.redirect_uri"}
        )

    return SpotifyConfig(
        client_id=client_id.strip(),
        client_secret=client_secret.strip(),
        redirect_uri=redirect_uri.strip()
    )


def _parse_directory(value: Any, field: str, default: str) -> Path:
    """Expand ~ and make a configured directory absolute."""
    if value is None:
        value = default
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(
            f"'{field}' must be a non-empty string",
            details={"field": field}
        )
    return Path(value.strip()).expanduser().resolve()


def _parse_cache_config(cache_section: dict[str, Any]) -> CacheConfig:
    directory = _parse_directory(
        cache_section.get("directory"), "cache.directory", DEFAULT_CACHE_DIRECTORY
    )
    return CacheConfig(directory=directory)


def _parse_logging_config(
    logging_section: dict[str, Any],
    cache_config: CacheConfig
) -> LoggingConfig:
    raw_directory = logging_section.get("directory")
    if raw_directory is None:
        # Default: cache_directory/logs
        return LoggingConfig(directory=cache_config.directory / "logs")
    return LoggingConfig(
        directory=_parse_directory(raw_directory, "logging.directory", "")
    )


def _parse_optional_name(value: Any, field: str) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str) or not value.strip():
        raise ConfigError(
            f"'{field}' must be a non-empty string",
            details={"field": field}
        )
    return value.strip()


def _parse_rotation_config(rotation_section: dict[str, Any]) -> RotationConfig:
    """
    Parse rotation defaults.

    Raises:
        ConfigError: If size is not a non-negative integer or a name is blank.
    """
    self_user = _parse_optional_name(rotation_section.get("self"), "rotation.self")
    user = _parse_optional_name(rotation_section.get("user"), "rotation.user")
    name = _parse_optional_name(rotation_section.get("name"), "rotation.name")

    size = rotation_section.get("size", DEFAULT_SAMPLE_SIZE)
    # bool is a subclass of int
    if not isinstance(size, int) or isinstance(size, bool) or size < 0:
        raise ConfigError(
            "'rotation.size' must be a non-negative integer",
            details={"field": "rotation.size", "value": size}
        )

    return RotationConfig(
        self_user=self_user,
        user=user,
        name=name or DEFAULT_PLAYLIST_NAME,
        size=size
    )


def _parse_server_config(server_section: dict[str, Any]) -> ServerConfig:
    host = server_section.get("host", DEFAULT_SERVER_HOST)
    port = server_section.get("port", DEFAULT_SERVER_PORT)

    if not isinstance(host, str) or not host.strip():
        raise ConfigError(
            "'server.host' must be a non-empty string",
            details={"field": "server.host"}
        )

    if not isinstance(port, int) or isinstance(port, bool) or not 0 < port < 65536:
        raise ConfigError(
            "'server.port' must be an integer between 1 and 65535",
            details={"field": "server.port", "value": port}
        )

    return ServerConfig(host=host.strip(), port=port)
