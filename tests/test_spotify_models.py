"""Test Spotify data models"""

from spot_rotator.spotify.models import (
    Playlist,
    PlaylistSet,
    describe_track,
    item_track_id,
)


class TestPlaylistModels:
    """Test Playlist and PlaylistSet"""

    def test_playlist_from_api(self):
        data = {
            "id": "p1",
            "name": "2023 March",
            "owner": {"id": "bob"},
            "images": [{"url": "https://img", "width": None, "height": None}],
            "snapshot_id": "snap",
            "description": None,
        }

        playlist = Playlist.from_spotify_api(data, user="alice")

        assert playlist.spotify_id == "p1"
        assert playlist.user == "alice"
        assert playlist.owner == "bob"
        assert playlist.images[0].dx == 0
        assert playlist.description == ""

    def test_playlist_dict_round_trip(self):
        playlist = Playlist("p1", "alice", "alice", "2023 march", snapshot_id="s")
        assert Playlist.from_dict(playlist.to_dict()) == playlist

    def test_playlist_set_skips_null_items(self):
        items = [{"id": "p1", "name": "a", "owner": {"id": "x"}}, None]
        assert len(PlaylistSet.from_spotify_api(items, user="x")) == 1

    def test_monthly_filter(self):
        playlists = PlaylistSet([
            Playlist("1", "u", "u", "2023 march"),
            Playlist("2", "u", "u", "Road trip"),
            Playlist("3", "u", "u", "2022 DECEMBER"),
        ])

        assert [p.spotify_id for p in playlists.monthly()] == ["1", "3"]

    def test_find_by_name(self):
        playlists = PlaylistSet([
            Playlist("1", "u", "u", "Discovery Monthly"),
            Playlist("2", "u", "u", "discovery monthly"),
        ])

        assert playlists.find_by_name("DISCOVERY MONTHLY").spotify_id == "1"
        assert playlists.find_by_name("nope") is None


class TestTrackHelpers:
    """Test playlist item helpers"""

    def test_item_track_id(self, item_factory):
        assert item_track_id(item_factory("A")) == "A"
        assert item_track_id({"track": None}) is None
        assert item_track_id({"track": {"id": None, "name": "local.mp3"}}) is None
        assert item_track_id(None) is None

    def test_describe_track(self, track_factory):
        track = track_factory("A", name="Heroes", artists=("David Bowie", "Brian Eno"))
        assert describe_track(track) == "David Bowie, Brian Eno - Heroes"
        assert describe_track({}) == "Unknown Artist - Unknown Track"
