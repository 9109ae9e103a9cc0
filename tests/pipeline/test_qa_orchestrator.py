"""
Tests for spelling QA.
"""

from unittest.mock import MagicMock

from sliceflow.core.error_handler import APIError
from sliceflow.core.models import EarlyGenerationSession
from sliceflow.pipeline.early_dispatcher import EarlyTaskHandle
from sliceflow.pipeline.polling import Poller
from sliceflow.pipeline.qa_orchestrator import QAOrchestrator, dedupe_spelling_errors
from sliceflow.services.base import SpellingCheckService
from sliceflow.storage.early_result_store import InMemoryEarlyResultStore

IMAGE = "https://ik.imagekit.io/acme/campaigns/spring.png"


class TestDedupe:

    def test_same_text_and_location_collapse(self):
        errors = [
            {"text": "Sprng", "location": "hero", "correction": None},
            {"text": "Sprng", "location": "hero", "correction": "Spring"},
            {"text": "Sprng", "location": "footer"},
            {"text": "Teh", "location": "hero", "correction": "The"},
        ]

        result = dedupe_spelling_errors(errors)

        assert result == [
            {"text": "Sprng", "location": "hero", "correction": "Spring"},
            {"text": "Sprng", "location": "footer"},
            {"text": "Teh", "location": "hero", "correction": "The"},
        ]

    def test_input_not_mutated(self):
        first = {"text": "Teh", "location": None, "correction": ""}
        dedupe_spelling_errors([first, {"text": "Teh", "location": None, "correction": "The"}])

        assert first["correction"] == ""


class TestQAOrchestrator:

    def setup_method(self):
        self.service = MagicMock(spec=SpellingCheckService)
        self.store = InMemoryEarlyResultStore()
        self.handle = EarlyTaskHandle("job-1-abc")

    def make_orchestrator(self, fake_clock):
        return QAOrchestrator(
            self.service,
            self.store,
            poller=Poller(interval=2.0, sleep=fake_clock.sleep, clock=fake_clock),
            timeout=8.0
        )

    def test_uses_early_result(self, fake_clock):
        self.store.put(self.handle.session_key, EarlyGenerationSession(
            self.handle.session_key, spelling_errors=[{"text": "Sprng", "location": "hero"}]
        ))

        outcome = self.make_orchestrator(fake_clock).run(self.handle, IMAGE)

        self.service.check.assert_not_called()
        assert outcome.qa_flags == {"spelling": True}
        assert outcome.to_fields()["spelling_errors"] == [{"text": "Sprng", "location": "hero"}]

    def test_empty_early_result_is_used(self, fake_clock):
        self.store.put(self.handle.session_key, EarlyGenerationSession(self.handle.session_key))

        outcome = self.make_orchestrator(fake_clock).run(self.handle, IMAGE)

        self.service.check.assert_not_called()
        assert outcome.qa_flags == {"spelling": False}

    def test_fallback_check_on_timeout(self, fake_clock):
        self.service.check.return_value = {"hasErrors": True, "errors": [{"text": "Teh", "location": "body"}]}

        outcome = self.make_orchestrator(fake_clock).run(
            self.handle, IMAGE, extra_errors=[{"text": "Teh", "location": "body", "correction": "The"}]
        )

        self.service.check.assert_called_once_with(
            "https://ik.imagekit.io/acme/tr:w-600,h-7900,c-at_max/campaigns/spring.png"
        )
        assert outcome.spelling_errors == [{"text": "Teh", "location": "body", "correction": "The"}]

    def test_fallback_failure_degrades(self, fake_clock):
        self.service.check.side_effect = APIError("spelling down")

        outcome = self.make_orchestrator(fake_clock).run(self.handle, IMAGE)

        assert outcome.spelling_errors == []
        assert outcome.qa_flags == {"spelling": False}

    def test_add_errors_dedupes_and_sets_flag(self, fake_clock):
        self.store.put(self.handle.session_key, EarlyGenerationSession(self.handle.session_key))
        outcome = self.make_orchestrator(fake_clock).run(self.handle, IMAGE)

        outcome.add_errors([
            {"text": "Sprng", "location": "hero"},
            {"text": "Sprng", "location": "hero", "correction": "Spring"},
        ])

        assert outcome.spelling_errors == [{"text": "Sprng", "location": "hero", "correction": "Spring"}]
        assert outcome.to_fields()["qa_flags"] == {"spelling": True}
