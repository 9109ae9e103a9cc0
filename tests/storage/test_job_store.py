"""
Tests for queue item storage backends.
"""

import json
import threading

import pytest
from unittest.mock import MagicMock

from sliceflow.storage.job_store import InMemoryJobStore, JsonFileJobStore, RestJobStore
from sliceflow.storage.rest_client import RestClient


@pytest.fixture(params=["memory", "file"])
def store(request, tmp_path):
    record = {"id": "job-1", "status": "queued", "image_url": "https://x/a.png"}
    if request.param == "memory":
        return InMemoryJobStore([record])
    file_store = JsonFileJobStore(str(tmp_path / "queue"))
    (tmp_path / "queue" / "job-1.json").write_text(json.dumps(record))
    return file_store


class TestLocalJobStores:
    """
    Behaviour shared by the in-memory and JSON file stores.
    """

    def test_get(self, store):
        item = store.get("job-1")

        assert item.id == "job-1"
        assert item.image_url == "https://x/a.png"
        assert store.get("missing") is None

    def test_update_merges_fields(self, store):
        store.update("job-1", {"processing_step": "fetching_image", "processing_percent": 5})
        store.update("job-1", {"processing_percent": 10})

        item = store.get("job-1")
        assert item.processing_step == "fetching_image"
        assert item.processing_percent == 10
        assert item.image_url == "https://x/a.png"
        assert item.updated_at is not None

    def test_claim_once(self, store):
        assert store.claim("job-1") is True
        assert store.get("job-1").status == "processing"
        assert store.claim("job-1") is False

    def test_claim_failed_job_again(self, store):
        store.update("job-1", {"status": "failed"})

        assert store.claim("job-1") is True

    def test_claim_missing_job(self, store):
        assert store.claim("missing") is False


class TestInMemoryJobStore:

    def test_history_records_updates_in_order(self):
        store = InMemoryJobStore([{"id": "job-1"}])
        store.update("job-1", {"processing_percent": 5})
        store.update("job-1", {"processing_percent": 10})

        assert [h["processing_percent"] for h in store.history] == [5, 10]

    def test_concurrent_claims_have_one_winner(self):
        store = InMemoryJobStore([{"id": "job-1", "status": "queued"}])
        results = []

        threads = [threading.Thread(target=lambda: results.append(store.claim("job-1"))) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert results.count(True) == 1


class TestRestJobStore:

    def setup_method(self):
        self.client = MagicMock(spec=RestClient)
        self.store = RestJobStore(self.client, table="campaign_queue")

    def test_get(self):
        self.client.select.return_value = [{"id": "job-1", "image_url": "https://x/a.png"}]

        item = self.store.get("job-1")

        assert item.image_url == "https://x/a.png"
        self.client.select.assert_called_once_with("campaign_queue", {"id": "eq.job-1"}, limit=1)

    def test_get_missing(self):
        self.client.select.return_value = []

        assert self.store.get("job-1") is None

    def test_claim_uses_conditional_filter(self):
        self.client.update.return_value = [{"id": "job-1", "status": "processing"}]

        assert self.store.claim("job-1") is True

        table, filters, fields = self.client.update.call_args.args
        assert table == "campaign_queue"
        assert filters == {"id": "eq.job-1", "status": "neq.processing"}
        assert fields["status"] == "processing"

    def test_claim_rejected(self):
        self.client.update.return_value = []

        assert self.store.claim("job-1") is False
