"""
Background copy generation and spelling checks started at job start.

Both tasks run on a thread pool and write their results to session-keyed
stores. The caller gets a handle immediately and later polls the stores;
it never blocks on the futures.
"""

from concurrent.futures import Future, ThreadPoolExecutor
from typing import Dict, Any, Optional

from sliceflow.core.config import get_config_value
from sliceflow.core.constants import (
    DEFAULT_AI_MAX_WIDTH,
    DEFAULT_AI_MAX_HEIGHT,
    DEFAULT_PAIR_COUNT,
)
from sliceflow.core.error_handler import APIError, ValidationError
from sliceflow.core.logging_config import get_logger
from sliceflow.core.models import Brand, EarlyGenerationSession
from sliceflow.core.utils import generate_session_key
from sliceflow.imaging.image_views import ImageViewBuilder
from sliceflow.services.base import CopyGenerationService, SpellingCheckService
from sliceflow.storage.early_result_store import EarlyResultStore

logger = get_logger(__name__)


def brand_context_for(brand: Optional[Brand]) -> Dict[str, Any]:
    """Brand context sent to copy generation; a placeholder when no brand is set."""
    if brand is None:
        return {"name": "Unknown", "domain": None}
    return brand.context


class EarlyTaskHandle:
    """
    Reference to the background tasks of one processing run.

    Attributes:
        session_key: Key the results are stored under.
        copy_future: Future of the copy generation task.
        spelling_future: Future of the spelling check task.
    """

    def __init__(self, session_key: str, copy_future: Optional[Future] = None, spelling_future: Optional[Future] = None):
        self.session_key = session_key
        self.copy_future = copy_future
        self.spelling_future = spelling_future

    def __repr__(self) -> str:
        return f"EarlyTaskHandle(session_key={self.session_key!r})"


def _log_task_failure(future) -> None:
    if future.cancelled():
        return
    error = future.exception()
    if error is not None:
        logger.warning(f"Early task failed: {error}")


class EarlyTaskDispatcher:
    """
    Fires the early copy and spelling tasks for a job.
    """

    def __init__(
        self,
        copy_service: CopyGenerationService,
        spelling_service: SpellingCheckService,
        copy_store: EarlyResultStore,
        spelling_store: EarlyResultStore,
        view_builder: Optional[ImageViewBuilder] = None,
        executor: Optional[ThreadPoolExecutor] = None,
        pair_count: Optional[int] = None
    ):
        self.copy_service = copy_service
        self.spelling_service = spelling_service
        self.copy_store = copy_store
        self.spelling_store = spelling_store
        self.view_builder = view_builder or ImageViewBuilder()
        self.executor = executor or ThreadPoolExecutor(max_workers=2, thread_name_prefix="early-task")
        self.pair_count = pair_count or get_config_value("pipeline.pair_count", DEFAULT_PAIR_COUNT)

    def dispatch(
        self,
        image_ref: str,
        brand: Optional[Brand],
        copy_examples: Optional[Dict[str, Any]],
        job_id: str = "job"
    ) -> EarlyTaskHandle:
        """
        Start both background tasks and return without waiting.

        Args:
            image_ref (str): Full image reference
            brand (Brand, optional): Brand of the campaign
            copy_examples (Dict[str, Any], optional): Brand copy examples
            job_id (str): Queue item id, used as the session key prefix

        Returns:
            EarlyTaskHandle: Handle carrying the session key
        """
        session_key = generate_session_key(job_id)
        view = self.view_builder.resize(
            image_ref,
            get_config_value("image_views.ai_max_width", DEFAULT_AI_MAX_WIDTH),
            get_config_value("image_views.ai_max_height", DEFAULT_AI_MAX_HEIGHT)
        )

        logger.info(f"Dispatching early copy and spelling tasks for session {session_key}")

        copy_future = self.executor.submit(
            self._run_copy, session_key, view, brand_context_for(brand), copy_examples
        )
        spelling_future = self.executor.submit(self._run_spelling, session_key, view)
        copy_future.add_done_callback(_log_task_failure)
        spelling_future.add_done_callback(_log_task_failure)

        return EarlyTaskHandle(session_key, copy_future, spelling_future)

    def _run_copy(
        self,
        session_key: str,
        image_ref: str,
        brand_context: Dict[str, Any],
        copy_examples: Optional[Dict[str, Any]]
    ) -> Optional[EarlyGenerationSession]:
        try:
            result = self.copy_service.generate([], brand_context, self.pair_count, copy_examples, image_ref)
        except (APIError, ValidationError) as e:
            logger.warning(f"Early copy generation failed for session {session_key}: {e}")
            return None

        session = EarlyGenerationSession(
            session_key,
            subject_lines=result.get("subjectLines"),
            preview_texts=result.get("previewTexts"),
            spelling_errors=result.get("spellingErrors"),
        )
        self.copy_store.put(session_key, session)
        logger.info(f"Early copy stored for session {session_key}: {len(session.subject_lines)} subject lines")
        return session

    def _run_spelling(self, session_key: str, image_ref: str) -> Optional[EarlyGenerationSession]:
        try:
            result = self.spelling_service.check(image_ref)
        except (APIError, ValidationError) as e:
            logger.warning(f"Early spelling check failed for session {session_key}: {e}")
            return None

        session = EarlyGenerationSession(session_key, spelling_errors=result.get("errors"))
        self.spelling_store.put(session_key, session)
        logger.info(f"Early spelling check stored for session {session_key}: {len(session.spelling_errors)} errors")
        return session

    def shutdown(self, wait: bool = False) -> None:
        """Stop accepting tasks. Running tasks finish in the background unless wait is set."""
        self.executor.shutdown(wait=wait)
