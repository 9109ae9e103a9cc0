"""
Tests for the early copy and spelling dispatcher.
"""

from concurrent.futures import Future, ThreadPoolExecutor
from unittest.mock import MagicMock, patch

import pytest

from sliceflow.core.error_handler import APIError
from sliceflow.core.models import Brand
from sliceflow.pipeline.early_dispatcher import EarlyTaskDispatcher, brand_context_for
from sliceflow.services.base import CopyGenerationService, SpellingCheckService
from sliceflow.storage.early_result_store import EarlyResultStore, InMemoryEarlyResultStore


class InlineExecutor:
    """Runs submitted tasks on the calling thread, keeping their errors on the future."""

    def submit(self, fn, *args):
        future = Future()
        try:
            future.set_result(fn(*args))
        except Exception as e:
            future.set_exception(e)
        return future


@pytest.fixture
def executor():
    pool = ThreadPoolExecutor(max_workers=2)
    yield pool
    pool.shutdown(wait=True)


class TestEarlyTaskDispatcher:

    def setup_method(self):
        self.copy_service = MagicMock(spec=CopyGenerationService)
        self.spelling_service = MagicMock(spec=SpellingCheckService)
        self.copy_store = InMemoryEarlyResultStore()
        self.spelling_store = InMemoryEarlyResultStore()
        self.brand = Brand(id="acme", name="Acme", domain="acme.com")

    def make_dispatcher(self, executor):
        return EarlyTaskDispatcher(
            self.copy_service,
            self.spelling_service,
            self.copy_store,
            self.spelling_store,
            executor=executor,
            pair_count=10
        )

    def test_results_written_under_session_key(self, executor, imagekit_url):
        self.copy_service.generate.return_value = {
            "subjectLines": ["Spring is here"],
            "previewTexts": ["Shop new arrivals"],
            "spellingErrors": [{"text": "Sprng", "correction": "Spring"}],
        }
        self.spelling_service.check.return_value = {"hasErrors": False, "errors": []}

        handle = self.make_dispatcher(executor).dispatch(imagekit_url, self.brand, None, job_id="job-7")
        handle.copy_future.result(timeout=5)
        handle.spelling_future.result(timeout=5)

        assert handle.session_key.startswith("job-7-")
        copy = self.copy_store.get(handle.session_key)
        assert copy.subject_lines == ["Spring is here"]
        assert copy.spelling_errors[0]["text"] == "Sprng"
        assert self.spelling_store.get(handle.session_key).spelling_errors == []

    def test_copy_sent_resized_view_and_brand_context(self, executor, imagekit_url):
        self.copy_service.generate.return_value = {"subjectLines": [], "previewTexts": []}
        self.spelling_service.check.return_value = {"errors": []}

        handle = self.make_dispatcher(executor).dispatch(imagekit_url, self.brand, {"subject": ["Hi"]})
        handle.copy_future.result(timeout=5)

        slices, brand_context, pair_count, examples, view = self.copy_service.generate.call_args.args
        assert slices == []
        assert brand_context["name"] == "Acme"
        assert pair_count == 10
        assert examples == {"subject": ["Hi"]}
        assert view == "https://ik.imagekit.io/acme/tr:w-600,h-7900,c-at_max/campaigns/spring.png"

    def test_failures_leave_stores_empty(self, executor, imagekit_url):
        self.copy_service.generate.side_effect = APIError("copy down")
        self.spelling_service.check.side_effect = APIError("spelling down")

        handle = self.make_dispatcher(executor).dispatch(imagekit_url, None, None)

        assert handle.copy_future.result(timeout=5) is None
        assert handle.spelling_future.result(timeout=5) is None
        assert self.copy_store.get(handle.session_key) is None
        assert self.spelling_store.get(handle.session_key) is None

    @patch("sliceflow.pipeline.early_dispatcher.logger")
    def test_store_failure_is_logged(self, mock_logger, imagekit_url):
        self.copy_service.generate.return_value = {"subjectLines": ["Spring is here"], "previewTexts": []}
        self.spelling_service.check.return_value = {"errors": []}
        self.copy_store = MagicMock(spec=EarlyResultStore)
        self.copy_store.put.side_effect = APIError("REST POST early_generated_copy failed", status_code=500)

        handle = self.make_dispatcher(InlineExecutor()).dispatch(imagekit_url, self.brand, None)

        assert isinstance(handle.copy_future.exception(), APIError)
        warnings = [c.args[0] for c in mock_logger.warning.call_args_list]
        assert any("REST POST early_generated_copy failed" in w for w in warnings)

    def test_brand_context_placeholder(self):
        assert brand_context_for(None) == {"name": "Unknown", "domain": None}
