"""Test batched playlist reconciliation"""

import pytest

from spot_rotator.core.exceptions import ReconcileError
from spot_rotator.rotation.reconciler import BATCH_SIZE, Reconciler, chunk


class TestReconciler:
    """Test batching and failure handling"""

    def test_chunk(self):
        assert chunk(["a", "b", "c"], 2) == [["a", "b"], ["c"]]
        assert chunk([], 2) == []

    def test_add_all_batches_in_order(self, fake_client):
        ids = [f"t{i}" for i in range(120)]

        sent = Reconciler(fake_client).add_all("target", ids)

        assert sent == 3
        assert [len(batch) for _, batch in fake_client.added] == [BATCH_SIZE, BATCH_SIZE, 20]
        assert [t for _, batch in fake_client.added for t in batch] == ids

    def test_remove_all_batches(self, fake_client):
        ids = [f"t{i}" for i in range(50)]

        sent = Reconciler(fake_client).remove_all("target", ids)

        assert sent == 1
        assert fake_client.removed == [("target", ids)]

    def test_empty_sends_nothing(self, fake_client):
        reconciler = Reconciler(fake_client)

        assert reconciler.add_all("target", []) == 0
        assert reconciler.remove_all("target", []) == 0
        assert fake_client.added == []
        assert fake_client.removed == []

    def test_stops_at_first_failure(self, fake_client):
        fake_client.fail_add_on_batch = 1
        ids = [f"t{i}" for i in range(150)]

        with pytest.raises(ReconcileError) as exc_info:
            Reconciler(fake_client).add_all("target", ids)

        assert exc_info.value.applied_batches == 1
        assert exc_info.value.details["total_batches"] == 3
        assert len(fake_client.added) == 1
        assert fake_client.added[0][1] == ids[:BATCH_SIZE]
