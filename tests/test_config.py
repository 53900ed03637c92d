"""Test configuration loading"""

from pathlib import Path

import pytest

from spot_rotator.core.config import (
    DEFAULT_PLAYLIST_NAME,
    DEFAULT_REDIRECT_URI,
    DEFAULT_SAMPLE_SIZE,
    load_config,
)
from spot_rotator.core.exceptions import ConfigError


CREDENTIALS = """
spotify:
  client_id: "abc"
  client_secret: "xyz"
"""


def _write(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(content, encoding="utf-8")
    return path


class TestLoadConfig:
    """Test load_config()"""

    def test_minimal_config_defaults(self, tmp_path, spotify_env):
        spotify_env.chdir(tmp_path)

        config = load_config(_write(tmp_path, CREDENTIALS))

        assert config.spotify.client_id == "abc"
        assert config.spotify.redirect_uri == DEFAULT_REDIRECT_URI
        assert config.cache.directory == (tmp_path / ".cache").resolve()
        assert config.logging.directory == config.cache.directory / "logs"
        assert config.rotation.name == DEFAULT_PLAYLIST_NAME
        assert config.rotation.size == DEFAULT_SAMPLE_SIZE
        assert config.rotation.user is None
        assert config.server.port == 8080

    def test_full_config(self, tmp_path, spotify_env):
        path = _write(tmp_path, CREDENTIALS + f"""
cache:
  directory: "{tmp_path / 'c'}"
logging:
  directory: "{tmp_path / 'logs'}"
rotation:
  self: "me"
  user: "friend"
  name: "weekly"
  size: 12
server:
  host: "0.0.0.0"
  port: 9000
""")

        config = load_config(path)

        assert config.cache.directory == (tmp_path / "c").resolve()
        assert config.logging.directory == (tmp_path / "logs").resolve()
        assert config.rotation.self_user == "me"
        assert config.rotation.user == "friend"
        assert config.rotation.name == "weekly"
        assert config.rotation.size == 12
        assert (config.server.host, config.server.port) == ("0.0.0.0", 9000)

    def test_credentials_from_environment(self, tmp_path, spotify_env):
        spotify_env.setenv("SPOTIPY_CLIENT_ID", "env-id")
        spotify_env.setenv("SPOTIPY_CLIENT_SECRET", "env-secret")
        spotify_env.setenv("SPOTIPY_REDIRECT_URI", "http://localhost:9999/cb")

        config = load_config(_write(tmp_path, ""))

        assert config.spotify.client_id == "env-id"
        assert config.spotify.client_secret == "env-secret"
        assert config.spotify.redirect_uri == "http://localhost:9999/cb"

    def test_missing_credentials(self, tmp_path, spotify_env):
        with pytest.raises(ConfigError) as exc_info:
            load_config(_write(tmp_path, "rotation:\n  size: 3\n"))

        assert exc_info.value.details["field"] == "spotify.client_id"

    def test_credentials_optional_when_not_required(self, tmp_path, spotify_env):
        config = load_config(
            _write(tmp_path, "cache:\n  directory: cache\n"), require_spotify=False
        )

        assert config.spotify is None
        assert config.cache.directory.name == "cache"

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(_write(tmp_path, "spotify: [unclosed"))

    def test_not_a_dictionary(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(_write(tmp_path, "- a\n- b\n"))

    @pytest.mark.parametrize("rotation", [
        "size: -1",
        "size: many",
        "size: true",
        "name: ''",
        "user: 42",
    ])
    def test_invalid_rotation(self, tmp_path, spotify_env, rotation):
        path = _write(tmp_path, CREDENTIALS + f"rotation:\n  {rotation}\n")

        with pytest.raises(ConfigError):
            load_config(path)

    @pytest.mark.parametrize("port", ["0", "70000", "http"])
    def test_invalid_port(self, tmp_path, spotify_env, port):
        with pytest.raises(ConfigError):
            load_config(_write(tmp_path, CREDENTIALS + f"server:\n  port: {port}\n"))

    def test_section_must_be_dictionary(self, tmp_path, spotify_env):
        with pytest.raises(ConfigError):
            load_config(_write(tmp_path, CREDENTIALS + "cache: /tmp\n"))
