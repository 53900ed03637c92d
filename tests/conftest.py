"""Test configuration and fixtures"""

import copy
from collections import Counter
from pathlib import Path

import pytest

from spot_rotator.core.exceptions import SpotifyError


def make_track(track_id, name=None, artists=("Test Artist",), album="Test Album"):
    """Full track object as returned by Spotify"""
    return {
        "id": track_id,
        "name": name or f"Song {track_id}",
        "artists": [
            {"id": f"artist-{a.lower().replace(' ', '-')}", "name": a} for a in artists
        ],
        "album": {"id": f"album-{album.lower().replace(' ', '-')}", "name": album},
        "duration_ms": 210000,
    }


def make_item(track_id, added_at="2023-03-01T10:00:00Z", **track_fields):
    """Playlist track item (added_at + track)"""
    return {"added_at": added_at, "track": make_track(track_id, **track_fields)}


def make_playlist(playlist_id, name, owner="me", snapshot="snap-1"):
    """Simplified playlist object from a user playlists page"""
    return {
        "id": playlist_id,
        "name": name,
        "owner": {"id": owner},
        "images": [{"url": f"https://i.scdn.co/image/{playlist_id}", "width": 640, "height": 640}],
        "snapshot_id": snapshot,
        "description": "",
    }


class FakeSpotifyClient:
    """In-memory stand-in for SpotifyClient"""

    def __init__(self):
        self.playlists = {}
        self.items = {}
        self.catalog = {}
        self.albums = {}
        self.album_tracks = {}
        self.artist_albums = {}
        self.calls = Counter()
        self.track_requests = []
        self.added = []
        self.removed = []
        self.fail_add_on_batch = None
        self._created = 0

    def add_playlist(self, user, playlist_id, name, track_ids=(), owner=None, snapshot="snap-1"):
        self.playlists.setdefault(user, []).append(
            make_playlist(playlist_id, name, owner=owner or user, snapshot=snapshot)
        )
        self.items[playlist_id] = [make_item(t) for t in track_ids]
        for track_id in track_ids:
            self.catalog.setdefault(track_id, make_track(track_id))

    def track_ids(self, playlist_id):
        return [item["track"]["id"] for item in self.items.get(playlist_id, [])]

    def all_user_playlists(self, user):
        self.calls["all_user_playlists"] += 1
        return copy.deepcopy(self.playlists.get(user, []))

    def find_user_playlist(self, user, name):
        self.calls["find_user_playlist"] += 1
        for playlist in self.playlists.get(user, []):
            if playlist["name"].casefold() == name.casefold():
                return copy.deepcopy(playlist)
        return None

    def create_playlist(self, user, name, public=True):
        self.calls["create_playlist"] += 1
        self._created += 1
        playlist_id = f"created-{self._created}"
        self.add_playlist(user, playlist_id, name)
        return {"id": playlist_id, "name": name}

    def playlist_all_items(self, playlist_id):
        self.calls["playlist_all_items"] += 1
        return copy.deepcopy(self.items.get(playlist_id, []))

    def add_items(self, playlist_id, track_ids):
        if self.fail_add_on_batch is not None and len(self.added) == self.fail_add_on_batch:
            raise SpotifyError("Failed to add tracks to playlist: boom")
        self.added.append((playlist_id, list(track_ids)))
        self.items.setdefault(playlist_id, []).extend(
            make_item(t, added_at="2024-01-01T00:00:00Z") for t in track_ids
        )
        return {"snapshot_id": "snap-after-add"}

    def remove_items(self, playlist_id, track_ids):
        self.removed.append((playlist_id, list(track_ids)))
        self.items[playlist_id] = [
            item for item in self.items.get(playlist_id, [])
            if item["track"]["id"] not in track_ids
        ]
        return {"snapshot_id": "snap-after-remove"}

    def tracks(self, track_ids):
        self.calls["tracks"] += 1
        self.track_requests.append(list(track_ids))
        return [copy.deepcopy(self.catalog.get(t)) for t in track_ids]

    def album(self, album_id):
        self.calls["album"] += 1
        return copy.deepcopy(self.albums[album_id])

    def album_all_tracks(self, album_id):
        self.calls["album_all_tracks"] += 1
        return copy.deepcopy(self.album_tracks.get(album_id, []))

    def artist_all_albums(self, artist_id):
        self.calls["artist_all_albums"] += 1
        return copy.deepcopy(self.artist_albums.get(artist_id, []))


@pytest.fixture
def fake_client():
    """Empty fake catalog"""
    return FakeSpotifyClient()


@pytest.fixture
def cache_dir(tmp_path) -> Path:
    """Cache directory for a test (not created yet)"""
    return tmp_path / "cache"


@pytest.fixture
def item_factory():
    """make_item(track_id, added_at=..., name=..., artists=..., album=...)"""
    return make_item


@pytest.fixture
def track_factory():
    """make_track(track_id, name=..., artists=..., album=...)"""
    return make_track


@pytest.fixture
def spotify_env(monkeypatch):
    """Isolate tests from SPOTIPY_* variables in the environment"""
    for name in ("SPOTIPY_CLIENT_ID", "SPOTIPY_CLIENT_SECRET", "SPOTIPY_REDIRECT_URI"):
        monkeypatch.delenv(name, raising=False)
    return monkeypatch
