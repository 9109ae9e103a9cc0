"""
Subject line and preview text selection.

Copy can come from three places: the external task tracker (tracked copy),
the design source (provided copy), and AI generation. AI candidates come
from the early background task when it finishes within the poll window,
otherwise from one synchronous generation call.
"""

from typing import Dict, Any, List, Optional, Tuple

from sliceflow.core.config import get_config_value
from sliceflow.core.constants import (
    COPY_SOURCE_AI,
    COPY_SOURCE_CLICKUP,
    COPY_SOURCE_FIGMA,
    DEFAULT_AI_MAX_WIDTH,
    DEFAULT_AI_MAX_HEIGHT,
    DEFAULT_COPY_POLL_TIMEOUT,
    DEFAULT_PAIR_COUNT,
    DEFAULT_POLL_INTERVAL,
    STEP_GENERATING_COPY,
)
from sliceflow.core.error_handler import APIError, ValidationError, CopyGenerationFailure
from sliceflow.core.logging_config import get_logger
from sliceflow.core.models import Brand, QueueItem, Slice
from sliceflow.imaging.image_views import ImageViewBuilder
from sliceflow.pipeline.early_dispatcher import EarlyTaskHandle, brand_context_for
from sliceflow.pipeline.polling import Poller
from sliceflow.services.base import CopyGenerationService, CopySearchService
from sliceflow.storage.early_result_store import EarlyResultStore

logger = get_logger(__name__)


def merge_candidates(early: Optional[List[str]], late: Optional[List[str]]) -> List[str]:
    """
    Pick between early and late candidate lists.

    The longer list wins; a non-empty list is never replaced by an empty one.
    """
    early = list(early or [])
    late = list(late or [])
    if len(early) > len(late):
        return early
    if late:
        return late
    return early


def select_copy(
    tracked: Optional[str],
    provided: Optional[str],
    ai_candidates: Optional[List[str]]
) -> Tuple[Optional[str], Optional[str]]:
    """
    Choose one value by source priority: tracked, then provided, then the first AI candidate.

    Returns:
        Tuple[Optional[str], Optional[str]]: (value, copy source)
    """
    if tracked:
        return tracked, COPY_SOURCE_CLICKUP
    if provided:
        return provided, COPY_SOURCE_FIGMA
    if ai_candidates:
        return ai_candidates[0], COPY_SOURCE_AI
    return None, None


class CopyOutcome:
    """
    Copy fields to persist on the queue item.
    """

    def __init__(self):
        self.subject_lines: List[str] = []
        self.preview_texts: List[str] = []
        self.tracked_subject_line: Optional[str] = None
        self.tracked_preview_text: Optional[str] = None
        self.provided_subject_line: Optional[str] = None
        self.provided_preview_text: Optional[str] = None
        self.selected_subject_line: Optional[str] = None
        self.selected_preview_text: Optional[str] = None
        self.copy_source: str = COPY_SOURCE_AI
        self.clickup_task_id: Optional[str] = None
        self.clickup_task_url: Optional[str] = None
        self.spelling_errors: List[Dict[str, Any]] = []
        self.late_spelling_errors: List[Dict[str, Any]] = []
        self.used_early = False

    def select(self) -> None:
        """Recompute selected values and copy_source from the current candidates."""
        self.selected_subject_line, _ = select_copy(
            self.tracked_subject_line, self.provided_subject_line, self.subject_lines
        )
        self.selected_preview_text, _ = select_copy(
            self.tracked_preview_text, self.provided_preview_text, self.preview_texts
        )
        if self.tracked_subject_line or self.tracked_preview_text:
            self.copy_source = COPY_SOURCE_CLICKUP
        elif self.provided_subject_line or self.provided_preview_text:
            self.copy_source = COPY_SOURCE_FIGMA
        else:
            self.copy_source = COPY_SOURCE_AI

    def to_fields(self) -> Dict[str, Any]:
        fields = {
            "generated_subject_lines": self.subject_lines,
            "generated_preview_texts": self.preview_texts,
            "selected_subject_line": self.selected_subject_line,
            "selected_preview_text": self.selected_preview_text,
            "provided_subject_line": self.tracked_subject_line or self.provided_subject_line,
            "provided_preview_text": self.tracked_preview_text or self.provided_preview_text,
            "copy_source": self.copy_source,
        }
        if self.clickup_task_id:
            fields["clickup_task_id"] = self.clickup_task_id
            fields["clickup_task_url"] = self.clickup_task_url
        return fields


class CopyOrchestrator:
    """
    Collects copy candidates and selects the values to show.
    """

    def __init__(
        self,
        copy_service: CopyGenerationService,
        copy_store: EarlyResultStore,
        search_service: Optional[CopySearchService] = None,
        poller: Optional[Poller] = None,
        timeout: Optional[float] = None,
        pair_count: Optional[int] = None,
        view_builder: Optional[ImageViewBuilder] = None
    ):
        self.copy_service = copy_service
        self.copy_store = copy_store
        self.search_service = search_service
        self.poller = poller or Poller(get_config_value("pipeline.poll_interval", DEFAULT_POLL_INTERVAL))
        self.timeout = timeout if timeout is not None else get_config_value(
            "pipeline.copy_poll_timeout", DEFAULT_COPY_POLL_TIMEOUT
        )
        self.pair_count = pair_count or get_config_value("pipeline.pair_count", DEFAULT_PAIR_COUNT)
        self.view_builder = view_builder or ImageViewBuilder()

    def run(
        self,
        handle: EarlyTaskHandle,
        item: QueueItem,
        slices: List[Slice],
        brand: Optional[Brand],
        image_ref: str
    ) -> CopyOutcome:
        """
        Gather candidates from every source and select the final values.

        Args:
            handle (EarlyTaskHandle): Handle of the early tasks
            item (QueueItem): Queue item with provided copy and source URL
            slices (List[Slice]): Annotated slices
            brand (Brand, optional): Brand of the campaign
            image_ref (str): Full image reference

        Returns:
            CopyOutcome: Candidates and selected values
        """
        outcome = CopyOutcome()
        outcome.provided_subject_line = item.provided_subject_line
        outcome.provided_preview_text = item.provided_preview_text

        self._search_tracked_copy(outcome, item, brand)

        early = self.poller.poll(
            lambda: self.copy_store.get(handle.session_key),
            accept=lambda session: len(session.subject_lines) > 0,
            timeout=self.timeout
        )

        if early is not None:
            logger.info(f"Using early copy: {len(early.subject_lines)} subject lines")
            outcome.subject_lines = list(early.subject_lines)
            outcome.preview_texts = list(early.preview_texts)
            outcome.spelling_errors = list(early.spelling_errors)
            outcome.used_early = True
        else:
            logger.info("Early copy not ready, generating synchronously")
            try:
                result = self.generate(slices, brand, image_ref)
                outcome.subject_lines = list(result.get("subjectLines") or [])
                outcome.preview_texts = list(result.get("previewTexts") or [])
            except CopyGenerationFailure as e:
                logger.warning(f"Copy generation degraded: {e}")

        outcome.select()
        logger.info(
            f"Copy source {outcome.copy_source}: {len(outcome.subject_lines)} subject lines, "
            f"{len(outcome.preview_texts)} preview texts"
        )
        return outcome

    def generate(self, slices: List[Slice], brand: Optional[Brand], image_ref: str) -> Dict[str, Any]:
        """
        Generate copy synchronously.

        Raises:
            CopyGenerationFailure: If the copy service fails
        """
        view = self.view_builder.resize(
            image_ref,
            get_config_value("image_views.ai_max_width", DEFAULT_AI_MAX_WIDTH),
            get_config_value("image_views.ai_max_height", DEFAULT_AI_MAX_HEIGHT)
        )
        try:
            return self.copy_service.generate(
                [s.to_dict() for s in slices],
                brand_context_for(brand),
                self.pair_count,
                brand.copy_examples if brand is not None else None,
                view
            )
        except (APIError, ValidationError) as e:
            raise CopyGenerationFailure(f"Copy generation failed: {e}", step=STEP_GENERATING_COPY)

    def merge_late_result(self, handle: EarlyTaskHandle, outcome: CopyOutcome) -> CopyOutcome:
        """
        Fold in an early result that arrived after the poll window closed.

        Its spelling findings go to late_spelling_errors for the caller to
        add to the QA outcome.

        Args:
            handle (EarlyTaskHandle): Handle of the early tasks
            outcome (CopyOutcome): Outcome of run()

        Returns:
            CopyOutcome: The updated outcome
        """
        if outcome.used_early:
            return outcome

        late_early = self.copy_store.get(handle.session_key)
        if late_early is None:
            return outcome

        logger.info(f"Early copy arrived late with {len(late_early.subject_lines)} subject lines, merging")
        outcome.subject_lines = merge_candidates(late_early.subject_lines, outcome.subject_lines)
        outcome.preview_texts = merge_candidates(late_early.preview_texts, outcome.preview_texts)
        outcome.late_spelling_errors = list(late_early.spelling_errors)
        outcome.select()
        return outcome

    def _search_tracked_copy(self, outcome: CopyOutcome, item: QueueItem, brand: Optional[Brand]) -> None:
        if self.search_service is None or not item.source_url or brand is None or not brand.clickup_list_id:
            return

        try:
            result = self.search_service.search(item.source_url, brand.id, brand.clickup_list_id)
        except (APIError, ValidationError) as e:
            logger.warning(f"Tracked copy search failed: {e}")
            return

        if not result.get("found"):
            logger.info("No tracked copy found")
            return

        outcome.tracked_subject_line = result.get("subjectLine")
        outcome.tracked_preview_text = result.get("previewText")
        outcome.clickup_task_id = result.get("taskId")
        outcome.clickup_task_url = result.get("taskUrl")
        logger.info(f"Found tracked copy in task {outcome.clickup_task_id}")
