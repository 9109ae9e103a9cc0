"""
Tests for the early result stores.
"""

from unittest.mock import MagicMock

from sliceflow.core.models import EarlyGenerationSession
from sliceflow.storage.early_result_store import InMemoryEarlyResultStore, RestEarlyResultStore
from sliceflow.storage.rest_client import RestClient


class TestInMemoryEarlyResultStore:

    def test_absent_until_written(self):
        store = InMemoryEarlyResultStore()

        assert store.get("session-1") is None

        store.put("session-1", EarlyGenerationSession("session-1", subject_lines=["A"]))

        assert store.get("session-1").subject_lines == ["A"]

    def test_write_once(self):
        store = InMemoryEarlyResultStore()
        store.put("session-1", EarlyGenerationSession("session-1", subject_lines=["first"]))
        store.put("session-1", EarlyGenerationSession("session-1", subject_lines=["second"]))

        assert store.get("session-1").subject_lines == ["first"]

    def test_discard(self):
        store = InMemoryEarlyResultStore()
        store.put("session-1", EarlyGenerationSession("session-1"))
        store.discard("session-1")

        assert store.get("session-1") is None


class TestRestEarlyResultStore:

    def setup_method(self):
        self.client = MagicMock(spec=RestClient)

    def test_put_keeps_only_table_columns(self):
        store = RestEarlyResultStore(self.client, "early_spelling_check", columns=["spelling_errors"])

        store.put("session-1", EarlyGenerationSession("session-1", spelling_errors=[{"text": "teh"}]))

        self.client.upsert.assert_called_once_with(
            "early_spelling_check",
            {"spelling_errors": [{"text": "teh"}], "session_key": "session-1"},
            on_conflict="session_key",
            ignore_duplicates=True
        )

    def test_get(self):
        store = RestEarlyResultStore(self.client, "early_generated_copy")
        self.client.select.return_value = [{"session_key": "session-1", "subject_lines": ["A"], "preview_texts": None}]

        session = store.get("session-1")

        assert session.subject_lines == ["A"]
        assert session.preview_texts == []
        self.client.select.assert_called_once_with(
            "early_generated_copy", {"session_key": "eq.session-1"}, limit=1
        )

    def test_get_absent(self):
        store = RestEarlyResultStore(self.client, "early_generated_copy")
        self.client.select.return_value = []

        assert store.get("session-1") is None
