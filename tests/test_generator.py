"""Test the rotation run end to end against a fake catalog"""

import json

import pytest

from spot_rotator.core.exceptions import (
    CacheError,
    InsufficientTracksError,
    ReconcileError,
)
from spot_rotator.rotation.generator import (
    RotationContext,
    RotationGenerator,
    RotationOptions,
)
from spot_rotator.spotify.models import is_monthly_name


def _run(fake_client, cache_dir, size, dry_run=False, seed=7, name="discovery monthly"):
    context = RotationContext.create(fake_client, cache_dir, seed=seed, show_progress=False)
    options = RotationOptions(
        self_user="me", user="me", name=name, size=size, dry_run=dry_run
    )
    return RotationGenerator(context).run(options)


@pytest.fixture
def library(fake_client):
    """Target holds A, B; monthly playlists hold A..E; one non-monthly playlist"""
    fake_client.add_playlist("me", "target", "Discovery Monthly", ["A", "B"])
    fake_client.add_playlist("me", "m1", "2023 March", ["A", "B", "C"])
    fake_client.add_playlist("me", "m2", "2023 april", ["C", "D", "E"])
    fake_client.add_playlist("me", "other", "Road trip", ["X", "Y"])
    return fake_client


class TestMonthlyFilter:
    """Test monthly playlist name detection"""

    @pytest.mark.parametrize("name,expected", [
        ("2023 march", True),
        ("2023 March", True),
        ("1999 DECEMBER", True),
        ("march 2023", False),
        ("2023 marchx", False),
        ("2023  march", False),
        ("23 march", False),
        ("2023 mar", False),
        ("discovery monthly", False),
    ])
    def test_is_monthly_name(self, name, expected):
        assert is_monthly_name(name) is expected


class TestRotation:
    """Test RotationGenerator.run"""

    def test_end_to_end(self, library, cache_dir):
        result = _run(library, cache_dir, size=3)

        assert set(result.selected_ids) == {"C", "D", "E"}
        assert result.existing_count == 2
        assert result.total_count == 5
        assert result.sampling_count == 3
        assert result.removed_count == 2
        assert result.added_count == 3
        assert library.removed == [("target", ["A", "B"])]
        assert sorted(library.track_ids("target")) == ["C", "D", "E"]

    def test_sample_two_issues_one_remove_and_one_add(self, library, cache_dir):
        result = _run(library, cache_dir, size=2)

        assert library.removed == [("target", ["A", "B"])]
        assert len(library.added) == 1
        target, added_ids = library.added[0]
        assert target == "target"
        assert len(added_ids) == 2
        assert set(added_ids) <= {"C", "D", "E"}
        assert added_ids == result.selected_ids

    def test_removes_before_adding(self, library, cache_dir):
        order = []
        original_add, original_remove = library.add_items, library.remove_items
        library.add_items = lambda p, ids: order.append("add") or original_add(p, ids)
        library.remove_items = lambda p, ids: order.append("remove") or original_remove(p, ids)

        _run(library, cache_dir, size=2)

        assert order == ["remove", "add"]

    def test_selection_excludes_non_monthly_and_existing(self, library, cache_dir):
        result = _run(library, cache_dir, size=2)

        assert set(result.selected_ids) <= {"C", "D", "E"}
        assert len(result.selected_ids) == 2

    def test_same_seed_same_selection(self, library, cache_dir):
        first = _run(library, cache_dir, size=2, dry_run=True, seed=123)
        second = _run(library, cache_dir, size=2, dry_run=True, seed=123)

        assert first.selected_ids == second.selected_ids

    def test_dry_run_does_not_mutate(self, library, cache_dir):
        result = _run(library, cache_dir, size=3, dry_run=True)

        assert result.dry_run is True
        assert library.added == []
        assert library.removed == []
        assert library.track_ids("target") == ["A", "B"]
        # Selected tracks were resolved (and cached) for the log
        assert sorted(sum(library.track_requests, [])) == ["C", "D", "E"]
        assert (cache_dir / "track-C.json").exists()

    def test_insufficient_tracks(self, library, cache_dir):
        with pytest.raises(InsufficientTracksError) as exc_info:
            _run(library, cache_dir, size=4)

        assert exc_info.value.available == 3
        assert library.added == []
        assert library.removed == []

    def test_creates_missing_target(self, fake_client, cache_dir):
        fake_client.add_playlist("me", "m1", "2023 march", ["A", "B"])

        result = _run(fake_client, cache_dir, size=1)

        assert result.created is True
        assert fake_client.calls["create_playlist"] == 1
        assert result.target_name == "discovery monthly"
        assert len(fake_client.track_ids(result.target_id)) == 1

    def test_no_monthly_playlists(self, fake_client, cache_dir):
        fake_client.add_playlist("me", "target", "discovery monthly", ["A"])
        fake_client.add_playlist("me", "other", "Road trip", ["X"])

        result = _run(fake_client, cache_dir, size=0)
        assert result.selected_ids == []
        assert fake_client.track_ids("target") == []

        with pytest.raises(InsufficientTracksError):
            _run(fake_client, cache_dir, size=1)

    def test_writes_summaries(self, library, cache_dir):
        _run(library, cache_dir, size=1)

        data = json.loads((cache_dir / "playlists.json").read_text(encoding="utf-8"))
        assert {p["id"] for p in data["playlists"]} == {"target", "m1", "m2", "other"}

    def test_target_tracks_always_refetched(self, library, cache_dir):
        _run(library, cache_dir, size=1, dry_run=True)
        library.items["target"] = []

        result = _run(library, cache_dir, size=1, dry_run=True)

        assert result.existing_count == 0
        assert result.sampling_count == 5

    def test_reconcile_failure_propagates(self, library, cache_dir):
        library.fail_add_on_batch = 0

        with pytest.raises(ReconcileError) as exc_info:
            _run(library, cache_dir, size=3)

        assert exc_info.value.applied_batches == 0
        assert library.track_ids("target") == []

    def test_wrongly_shaped_cached_tracks_raise_cache_error(self, library, cache_dir):
        cache_dir.mkdir()
        (cache_dir / "playlist-m1.json").write_text('{"items": []}', encoding="utf-8")

        with pytest.raises(CacheError) as exc_info:
            _run(library, cache_dir, size=2)

        assert exc_info.value.details["path"].endswith("playlist-m1.json")
        assert library.removed == []
