"""
Tests for copy candidate collection and selection.
"""

import pytest
from unittest.mock import MagicMock

from sliceflow.core.error_handler import APIError
from sliceflow.core.models import Brand, EarlyGenerationSession, QueueItem
from sliceflow.pipeline.copy_orchestrator import CopyOrchestrator, merge_candidates, select_copy
from sliceflow.pipeline.early_dispatcher import EarlyTaskHandle
from sliceflow.pipeline.polling import Poller
from sliceflow.services.base import CopyGenerationService, CopySearchService
from sliceflow.storage.early_result_store import InMemoryEarlyResultStore

IMAGE = "https://ik.imagekit.io/acme/campaigns/spring.png"


class TestSelection:

    def test_tracked_beats_provided_and_ai(self):
        assert select_copy("Tracked", "Provided", ["AI"]) == ("Tracked", "clickup")

    def test_provided_beats_ai(self):
        assert select_copy(None, "Provided", ["AI"]) == ("Provided", "figma")

    def test_first_ai_candidate(self):
        assert select_copy(None, "", ["First", "Second"]) == ("First", "ai")

    def test_nothing_available(self):
        assert select_copy(None, None, []) == (None, None)

    @pytest.mark.parametrize("early,late,expected", [
        (["a", "b"], ["c"], ["a", "b"]),
        (["a"], ["c", "d"], ["c", "d"]),
        ([], ["c"], ["c"]),
        (["a"], [], ["a"]),
        (None, None, []),
    ])
    def test_merge_keeps_longer_list(self, early, late, expected):
        assert merge_candidates(early, late) == expected


class TestCopyOrchestrator:

    def setup_method(self):
        self.copy_service = MagicMock(spec=CopyGenerationService)
        self.search_service = MagicMock(spec=CopySearchService)
        self.store = InMemoryEarlyResultStore()
        self.handle = EarlyTaskHandle("job-1-abc")
        self.brand = Brand(id="acme", name="Acme", domain="acme.com", clickup_list_id="list-9")
        self.item = QueueItem(id="job-1", image_url=IMAGE, source_url="https://figma.com/file/abc")

    def make_orchestrator(self, fake_clock, search_service=None):
        return CopyOrchestrator(
            self.copy_service,
            self.store,
            search_service=search_service,
            poller=Poller(interval=2.0, sleep=fake_clock.sleep, clock=fake_clock),
            timeout=12.0,
            pair_count=10
        )

    def test_uses_early_result(self, fake_clock):
        self.store.put(self.handle.session_key, EarlyGenerationSession(
            self.handle.session_key,
            subject_lines=["S1", "S2"],
            preview_texts=["P1"],
            spelling_errors=[{"text": "Sprng"}],
        ))

        outcome = self.make_orchestrator(fake_clock).run(self.handle, self.item, [], self.brand, IMAGE)

        assert outcome.used_early
        assert outcome.subject_lines == ["S1", "S2"]
        assert outcome.selected_subject_line == "S1"
        assert outcome.selected_preview_text == "P1"
        assert outcome.copy_source == "ai"
        assert outcome.spelling_errors == [{"text": "Sprng"}]
        self.copy_service.generate.assert_not_called()

    def test_timeout_generates_exactly_once(self, fake_clock):
        self.copy_service.generate.return_value = {"subjectLines": ["Sync"], "previewTexts": ["SyncP"]}

        outcome = self.make_orchestrator(fake_clock).run(self.handle, self.item, [], self.brand, IMAGE)

        self.copy_service.generate.assert_called_once()
        assert sum(fake_clock.sleeps) == pytest.approx(12.0)
        assert outcome.selected_subject_line == "Sync"
        assert not outcome.used_early

    def test_empty_early_result_is_not_accepted(self, fake_clock):
        self.store.put(self.handle.session_key, EarlyGenerationSession(self.handle.session_key))
        self.copy_service.generate.return_value = {"subjectLines": ["Sync"], "previewTexts": []}

        outcome = self.make_orchestrator(fake_clock).run(self.handle, self.item, [], self.brand, IMAGE)

        assert outcome.subject_lines == ["Sync"]

    def test_generation_failure_degrades(self, fake_clock):
        self.copy_service.generate.side_effect = APIError("copy down")

        outcome = self.make_orchestrator(fake_clock).run(self.handle, self.item, [], None, IMAGE)

        assert outcome.subject_lines == []
        assert outcome.selected_subject_line is None
        assert outcome.to_fields()["copy_source"] == "ai"

    def test_provided_copy_wins_over_ai(self, fake_clock):
        self.item.provided_subject_line = "From the design"
        self.copy_service.generate.return_value = {"subjectLines": ["AI"], "previewTexts": ["AI P"]}

        outcome = self.make_orchestrator(fake_clock).run(self.handle, self.item, [], self.brand, IMAGE)
        fields = outcome.to_fields()

        assert fields["selected_subject_line"] == "From the design"
        assert fields["selected_preview_text"] == "AI P"
        assert fields["copy_source"] == "figma"
        assert fields["generated_subject_lines"] == ["AI"]

    def test_tracked_copy_wins(self, fake_clock):
        self.item.provided_subject_line = "From the design"
        self.search_service.search.return_value = {
            "found": True,
            "subjectLine": "From the tracker",
            "previewText": "Tracker preview",
            "taskId": "task-1",
            "taskUrl": "https://app.clickup.com/t/task-1",
        }
        self.copy_service.generate.return_value = {"subjectLines": ["AI"], "previewTexts": ["AI P"]}

        outcome = self.make_orchestrator(fake_clock, self.search_service).run(
            self.handle, self.item, [], self.brand, IMAGE
        )
        fields = outcome.to_fields()

        self.search_service.search.assert_called_once_with("https://figma.com/file/abc", "acme", "list-9")
        assert fields["selected_subject_line"] == "From the tracker"
        assert fields["provided_subject_line"] == "From the tracker"
        assert fields["copy_source"] == "clickup"
        assert fields["clickup_task_id"] == "task-1"

    def test_search_skipped_without_list(self, fake_clock):
        self.brand.clickup_list_id = None
        self.copy_service.generate.return_value = {"subjectLines": [], "previewTexts": []}

        self.make_orchestrator(fake_clock, self.search_service).run(self.handle, self.item, [], self.brand, IMAGE)

        self.search_service.search.assert_not_called()

    def test_late_result_merged(self, fake_clock):
        self.copy_service.generate.return_value = {"subjectLines": ["Sync"], "previewTexts": ["SyncP"]}
        orchestrator = self.make_orchestrator(fake_clock)
        outcome = orchestrator.run(self.handle, self.item, [], self.brand, IMAGE)

        self.store.put(self.handle.session_key, EarlyGenerationSession(
            self.handle.session_key,
            subject_lines=["E1", "E2", "E3"],
            preview_texts=[],
        ))
        orchestrator.merge_late_result(self.handle, outcome)

        assert outcome.subject_lines == ["E1", "E2", "E3"]
        assert outcome.preview_texts == ["SyncP"]
        assert outcome.selected_subject_line == "E1"

    def test_late_result_spelling_errors_kept(self, fake_clock):
        self.copy_service.generate.return_value = {"subjectLines": ["Sync"], "previewTexts": ["SyncP"]}
        orchestrator = self.make_orchestrator(fake_clock)
        outcome = orchestrator.run(self.handle, self.item, [], self.brand, IMAGE)

        self.store.put(self.handle.session_key, EarlyGenerationSession(
            self.handle.session_key,
            subject_lines=["E1"],
            spelling_errors=[{"text": "Sprng", "location": "hero"}],
        ))
        orchestrator.merge_late_result(self.handle, outcome)

        assert outcome.late_spelling_errors == [{"text": "Sprng", "location": "hero"}]
        assert outcome.spelling_errors == []

    def test_late_merge_skipped_when_early_used(self, fake_clock):
        self.store.put(self.handle.session_key, EarlyGenerationSession(
            self.handle.session_key, subject_lines=["E1"]
        ))
        orchestrator = self.make_orchestrator(fake_clock)
        outcome = orchestrator.run(self.handle, self.item, [], self.brand, IMAGE)
        outcome.subject_lines = ["edited"]

        orchestrator.merge_late_result(self.handle, outcome)

        assert outcome.subject_lines == ["edited"]
