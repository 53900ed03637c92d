"""Test the spotipy wrapper"""

from unittest.mock import Mock, patch

import pytest
import requests
import spotipy

from spot_rotator.core.config import SpotifyConfig
from spot_rotator.core.exceptions import SpotifyError
from spot_rotator.spotify.client import (
    OAUTH_SCOPE,
    PLAYLIST_LOOKUP_PAGE_SIZE,
    SpotifyClient,
    paginate,
)


def _page(count, start=0, prefix="p"):
    return {"items": [{"id": f"{prefix}{start + i}", "name": f"Playlist {start + i}"} for i in range(count)]}


class TestPagination:
    """Test offset pagination"""

    def test_stops_on_short_page(self):
        pages = {0: _page(2), 2: _page(2, 2), 4: _page(1, 4)}
        fetch = Mock(side_effect=lambda limit, offset: pages[offset])

        items = paginate(fetch, 2)

        assert [i["id"] for i in items] == ["p0", "p1", "p2", "p3", "p4"]
        assert fetch.call_count == 3

    def test_exact_multiple_needs_one_empty_page(self):
        pages = {0: _page(2), 2: {"items": []}}
        fetch = Mock(side_effect=lambda limit, offset: pages[offset])

        assert len(paginate(fetch, 2)) == 2
        assert fetch.call_count == 2

    def test_all_user_playlists(self):
        spotify = Mock()
        spotify.user_playlists.side_effect = [_page(50), _page(50, 50), _page(3, 100)]

        items = SpotifyClient(spotify).all_user_playlists("alice")

        assert len(items) == 103
        offsets = [c.kwargs["offset"] for c in spotify.user_playlists.call_args_list]
        assert offsets == [0, 50, 100]

    def test_playlist_all_items(self):
        spotify = Mock()
        spotify.playlist_items.side_effect = [_page(100, prefix="t"), _page(7, 100, prefix="t")]

        items = SpotifyClient(spotify).playlist_all_items("p1")

        assert len(items) == 107
        assert spotify.playlist_items.call_args_list[1].kwargs["offset"] == 100


class TestFindUserPlaylist:
    """Test lookup by name"""

    def test_case_insensitive_and_stops_early(self):
        spotify = Mock()
        first = _page(PLAYLIST_LOOKUP_PAGE_SIZE)
        first["items"][5]["name"] = "Discovery Monthly"
        spotify.user_playlists.side_effect = [first, _page(3, 20)]

        found = SpotifyClient(spotify).find_user_playlist("alice", "discovery monthly")

        assert found["id"] == "p5"
        assert spotify.user_playlists.call_count == 1

    def test_not_found(self):
        spotify = Mock()
        spotify.user_playlists.side_effect = [_page(PLAYLIST_LOOKUP_PAGE_SIZE), _page(3, 20)]

        assert SpotifyClient(spotify).find_user_playlist("alice", "nothing") is None
        assert spotify.user_playlists.call_count == 2


class TestTracks:
    """Test batched track lookups"""

    def test_batches_of_fifty(self):
        spotify = Mock()
        spotify.tracks.side_effect = lambda ids: {"tracks": [{"id": i} for i in ids]}
        ids = [f"t{i}" for i in range(120)]

        tracks = SpotifyClient(spotify).tracks(ids)

        assert [t["id"] for t in tracks] == ids
        assert [len(c.args[0]) for c in spotify.tracks.call_args_list] == [50, 50, 20]

    def test_unknown_tracks_are_none(self):
        spotify = Mock()
        spotify.tracks.return_value = {"tracks": [{"id": "a"}, None]}

        assert SpotifyClient(spotify).tracks(["a", "zzz"]) == [{"id": "a"}, None]


class TestErrorTranslation:
    """Test spotipy and transport errors become SpotifyError"""

    @pytest.mark.parametrize("status,auth,rate_limit", [
        (401, True, False),
        (403, True, False),
        (429, False, True),
        (500, False, False),
        (404, False, False),
    ])
    def test_http_errors(self, status, auth, rate_limit):
        spotify = Mock()
        spotify.playlist_items.side_effect = spotipy.SpotifyException(status, -1, "nope")

        with pytest.raises(SpotifyError) as exc_info:
            SpotifyClient(spotify).playlist_items("p1")

        assert exc_info.value.is_auth_error is auth
        assert exc_info.value.is_rate_limit is rate_limit
        assert exc_info.value.details["playlist_id"] == "p1"

    def test_transport_error(self):
        spotify = Mock()
        spotify.playlist_add_items.side_effect = requests.exceptions.ConnectionError("reset")

        with pytest.raises(SpotifyError) as exc_info:
            SpotifyClient(spotify).add_items("p1", ["a"])

        assert "Network error" in exc_info.value.message

    def test_missing_album(self):
        spotify = Mock()
        spotify.album.return_value = None

        with pytest.raises(SpotifyError):
            SpotifyClient(spotify).album("al1")


class TestFromConfig:
    """Test client construction"""

    @patch("spot_rotator.spotify.client.spotipy.Spotify")
    @patch("spot_rotator.spotify.client.SpotifyOAuth")
    def test_uses_oauth_with_playlist_scopes(self, mock_oauth, mock_spotify, tmp_path):
        mock_spotify.return_value.current_user.return_value = {"id": "alice"}
        config = SpotifyConfig("id", "secret", "http://127.0.0.1:8888/callback")

        client = SpotifyClient.from_config(config, tmp_path / "cache")

        kwargs = mock_oauth.call_args.kwargs
        assert kwargs["scope"] == OAUTH_SCOPE
        assert kwargs["client_id"] == "id"
        assert kwargs["cache_path"] == str(tmp_path / "cache" / ".spotify-token")
        assert client._spotify is mock_spotify.return_value

    @patch("spot_rotator.spotify.client.spotipy.Spotify")
    @patch("spot_rotator.spotify.client.SpotifyOAuth")
    def test_auth_failure(self, mock_oauth, mock_spotify, tmp_path):
        mock_spotify.return_value.current_user.side_effect = spotipy.SpotifyException(
            401, -1, "invalid client"
        )
        config = SpotifyConfig("id", "bad", "http://127.0.0.1:8888/callback")

        with pytest.raises(SpotifyError) as exc_info:
            SpotifyClient.from_config(config, tmp_path)

        assert exc_info.value.is_auth_error
