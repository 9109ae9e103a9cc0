"""
Spelling QA over the full campaign image.
"""

from typing import Dict, Any, List, Optional

from sliceflow.core.config import get_config_value
from sliceflow.core.constants import (
    DEFAULT_AI_MAX_WIDTH,
    DEFAULT_AI_MAX_HEIGHT,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_QA_POLL_TIMEOUT,
    STEP_QA_CHECK,
)
from sliceflow.core.error_handler import APIError, ValidationError, QAFailure
from sliceflow.core.logging_config import get_logger
from sliceflow.imaging.image_views import ImageViewBuilder
from sliceflow.pipeline.early_dispatcher import EarlyTaskHandle
from sliceflow.pipeline.polling import Poller
from sliceflow.services.base import SpellingCheckService
from sliceflow.storage.early_result_store import EarlyResultStore

logger = get_logger(__name__)


def dedupe_spelling_errors(errors: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Collapse errors with the same (text, location).

    The first occurrence keeps its position; fields it lacks are taken from
    later duplicates.
    """
    merged: Dict[tuple, Dict[str, Any]] = {}
    for error in errors:
        key = (error.get("text"), error.get("location"))
        if key not in merged:
            merged[key] = dict(error)
            continue
        existing = merged[key]
        for field, value in error.items():
            if existing.get(field) in (None, "") and value not in (None, ""):
                existing[field] = value
    return list(merged.values())


class QAOutcome:

    def __init__(self, spelling_errors: List[Dict[str, Any]]):
        self.spelling_errors = spelling_errors
        self.qa_flags = {"spelling": bool(spelling_errors)}

    def add_errors(self, errors: List[Dict[str, Any]]) -> None:
        """Merge further errors into the deduplicated list and refresh the flags."""
        self.spelling_errors = dedupe_spelling_errors(self.spelling_errors + list(errors))
        self.qa_flags = {"spelling": bool(self.spelling_errors)}

    def to_fields(self) -> Dict[str, Any]:
        return {"spelling_errors": self.spelling_errors, "qa_flags": self.qa_flags}


class QAOrchestrator:
    """
    Uses the early spelling check when it is ready, otherwise checks synchronously.
    """

    def __init__(
        self,
        spelling_service: SpellingCheckService,
        spelling_store: EarlyResultStore,
        poller: Optional[Poller] = None,
        timeout: Optional[float] = None,
        view_builder: Optional[ImageViewBuilder] = None
    ):
        self.spelling_service = spelling_service
        self.spelling_store = spelling_store
        self.poller = poller or Poller(get_config_value("pipeline.poll_interval", DEFAULT_POLL_INTERVAL))
        self.timeout = timeout if timeout is not None else get_config_value(
            "pipeline.qa_poll_timeout", DEFAULT_QA_POLL_TIMEOUT
        )
        self.view_builder = view_builder or ImageViewBuilder()

    def run(
        self,
        handle: EarlyTaskHandle,
        image_ref: str,
        extra_errors: Optional[List[Dict[str, Any]]] = None
    ) -> QAOutcome:
        """
        Collect spelling errors from the early check or a fallback check.

        Args:
            handle (EarlyTaskHandle): Handle of the early tasks
            image_ref (str): Full image reference
            extra_errors (List[Dict[str, Any]], optional): Errors reported by early copy generation

        Returns:
            QAOutcome: Deduplicated errors and QA flags
        """
        errors: List[Dict[str, Any]] = []

        early = self.poller.poll(lambda: self.spelling_store.get(handle.session_key), timeout=self.timeout)
        if early is not None:
            logger.info(f"Using early spelling check: {len(early.spelling_errors)} errors")
            errors.extend(early.spelling_errors)
        else:
            logger.info("Early spelling check not ready, checking synchronously")
            try:
                errors.extend(self.check(image_ref))
            except QAFailure as e:
                logger.warning(f"Spelling check degraded: {e}")

        errors.extend(extra_errors or [])
        deduped = dedupe_spelling_errors(errors)
        logger.info(f"QA found {len(deduped)} spelling errors ({len(errors)} before dedup)")
        return QAOutcome(deduped)

    def check(self, image_ref: str) -> List[Dict[str, Any]]:
        """
        Raises:
            QAFailure: If the spelling service fails
        """
        view = self.view_builder.resize(
            image_ref,
            get_config_value("image_views.ai_max_width", DEFAULT_AI_MAX_WIDTH),
            get_config_value("image_views.ai_max_height", DEFAULT_AI_MAX_HEIGHT)
        )
        try:
            result = self.spelling_service.check(view)
        except (APIError, ValidationError) as e:
            raise QAFailure(f"Spelling check failed: {e}", step=STEP_QA_CHECK)
        return list(result.get("errors") or [])
