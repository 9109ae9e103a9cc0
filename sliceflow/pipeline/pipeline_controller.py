"""
Pipeline controller module.

This module drives one campaign queue item through every processing step,
persisting progress before each step and applying the failure policy:
fatal failures mark the job failed, non-fatal ones degrade to defaults.
"""

import time
from typing import Dict, Any, Callable, Optional

import jsonschema

from sliceflow.core.constants import (
    STATUS_FAILED,
    STATUS_PROCESSING,
    STATUS_READY_FOR_REVIEW,
    STEP_ANALYZING_IMAGE,
    STEP_COMPLETE,
    STEP_FETCHING_IMAGE,
    STEP_FINALIZING,
    STEP_GENERATING_COPY,
    STEP_GENERATING_SLICE_URLS,
    STEP_QA_CHECK,
    STEP_SLICE_ANALYSIS,
)
from sliceflow.core.error_handler import PipelineError, FetchFailure
from sliceflow.core.logging_config import get_logger, log_execution_context
from sliceflow.imaging.image_resolver import ImageResolver
from sliceflow.imaging.image_views import ImageViewBuilder
from sliceflow.pipeline.copy_orchestrator import CopyOrchestrator, CopyOutcome
from sliceflow.pipeline.early_dispatcher import EarlyTaskDispatcher
from sliceflow.pipeline.link_annotator import LinkAnnotator
from sliceflow.pipeline.progress import ProgressTracker
from sliceflow.pipeline.qa_orchestrator import QAOrchestrator, QAOutcome
from sliceflow.pipeline.slicer import Slicer, attach_slice_views
from sliceflow.schemas import validate_response
from sliceflow.storage.brand_store import BrandStore
from sliceflow.storage.job_store import JobStore

logger = get_logger(__name__)


class PipelineController:
    """
    Runs the processing steps for a queue item.

    One process() call handles one job. No state is shared between calls
    apart from the injected collaborators.
    """

    def __init__(
        self,
        job_store: JobStore,
        brand_store: BrandStore,
        image_resolver: ImageResolver,
        dispatcher: EarlyTaskDispatcher,
        slicer: Slicer,
        link_annotator: LinkAnnotator,
        copy_orchestrator: CopyOrchestrator,
        qa_orchestrator: QAOrchestrator,
        view_builder: Optional[ImageViewBuilder] = None,
        clock: Callable[[], float] = time.monotonic
    ):
        """
        Initialize the PipelineController.

        Args:
            job_store: Queue item storage.
            brand_store: Brand storage.
            image_resolver: Source image resolver.
            dispatcher: Early task dispatcher.
            slicer: Segmentation and rescaling.
            link_annotator: Link assignment and validation.
            copy_orchestrator: Copy collection and selection.
            qa_orchestrator: Spelling QA.
            view_builder: Image view builder for slice crops.
            clock: Monotonic clock used for processing time.
        """
        self.job_store = job_store
        self.brand_store = brand_store
        self.image_resolver = image_resolver
        self.dispatcher = dispatcher
        self.slicer = slicer
        self.link_annotator = link_annotator
        self.copy_orchestrator = copy_orchestrator
        self.qa_orchestrator = qa_orchestrator
        self.view_builder = view_builder or ImageViewBuilder()
        self.clock = clock

    def process(self, job_id: str) -> Dict[str, Any]:
        """
        Process a queue item from claim to ready_for_review.

        Never raises: failures are persisted on the job and reported in the
        returned dictionary.

        Args:
            job_id: Queue item id.

        Returns:
            {"success": True, "jobId", "processingTimeMs"} or
            {"success": False, "jobId", "error", "step"}
        """
        started = self.clock()

        # Guard against concurrent runs of the same job
        try:
            claimed = self.job_store.claim(job_id)
            if not claimed:
                item = self.job_store.get(job_id)
        except Exception as e:
            logger.exception(f"Could not claim job {job_id}")
            return self._error_response(job_id, str(e), None)

        if not claimed:
            if item is None:
                logger.error(f"Queue item {job_id} not found")
                return self._error_response(job_id, "Queue item not found", None)
            logger.warning(f"Queue item {job_id} is already processing, skipping")
            return self._error_response(job_id, "Queue item is already processing", item.processing_step)

        tracker = ProgressTracker()
        step = STEP_FETCHING_IMAGE

        try:
            item = self.job_store.get(job_id)
            log_execution_context(logger, {"job_id": job_id, "brand_id": item.brand_id})

            # Step 1: resolve the image and fire the early tasks
            self._enter(job_id, tracker, step)
            try:
                validate_response(item.to_dict(), "queue_item")
            except jsonschema.exceptions.ValidationError as e:
                raise FetchFailure(f"Invalid queue item: {e.message}", step=step)

            image = self.image_resolver.resolve(item)
            brand = self.brand_store.get_brand(item.brand_id) if item.brand_id else None
            handle = self.dispatcher.dispatch(
                image.url,
                brand,
                brand.copy_examples if brand is not None else None,
                job_id=job_id
            )
            fields = {}
            if image.corrected:
                fields = {"image_width": image.width, "image_height": image.height}
            self._leave(job_id, tracker, step, fields)

            # Step 2: segmentation
            step = STEP_ANALYZING_IMAGE
            self._enter(job_id, tracker, step)
            result = self.slicer.slice(image, brand)
            self._leave(job_id, tracker, step, {"footer_start_percent": result.footer_start_percent})

            # Step 3: crop views
            step = STEP_GENERATING_SLICE_URLS
            self._enter(job_id, tracker, step)
            slices = attach_slice_views(result.slices, image.url, self.view_builder)
            self._leave(job_id, tracker, step, {"slices": [s.to_dict() for s in slices]})

            # Step 4: links and alt text
            step = STEP_SLICE_ANALYSIS
            self._enter(job_id, tracker, step)
            slices = self._degradable(
                step, lambda: self.link_annotator.annotate(slices, brand, image.url), slices
            )
            self._leave(job_id, tracker, step, {"slices": [s.to_dict() for s in slices]})

            # Step 5: copy
            step = STEP_GENERATING_COPY
            self._enter(job_id, tracker, step)
            copy_outcome = self._degradable(
                step, lambda: self.copy_orchestrator.run(handle, item, slices, brand, image.url), CopyOutcome()
            )
            self._leave(job_id, tracker, step)

            # Step 6: spelling QA
            step = STEP_QA_CHECK
            self._enter(job_id, tracker, step)
            qa_outcome = self._degradable(
                step,
                lambda: self.qa_orchestrator.run(handle, image.url, copy_outcome.spelling_errors),
                QAOutcome(list(copy_outcome.spelling_errors))
            )
            self._leave(job_id, tracker, step)

            # Step 7: persist everything
            step = STEP_FINALIZING
            self._enter(job_id, tracker, step)
            copy_outcome = self.copy_orchestrator.merge_late_result(handle, copy_outcome)
            if copy_outcome.late_spelling_errors:
                qa_outcome.add_errors(copy_outcome.late_spelling_errors)
            fields = {
                "slices": [s.to_dict() for s in slices],
                "footer_start_percent": result.footer_start_percent,
                "image_width": image.width,
                "image_height": image.height,
            }
            fields.update(copy_outcome.to_fields())
            fields.update(qa_outcome.to_fields())
            self._leave(job_id, tracker, step, fields)

            self.job_store.update(job_id, {
                "status": STATUS_READY_FOR_REVIEW,
                "processing_step": STEP_COMPLETE,
                "processing_percent": tracker.finish(),
                "error_message": None,
            })

        except PipelineError as e:
            failed_step = e.step or step
            logger.error(f"Job {job_id} failed at {failed_step}: {e.message}")
            self._fail(job_id, failed_step, e.message)
            return self._error_response(job_id, e.message, failed_step)

        except Exception as e:
            logger.exception(f"Unexpected error processing job {job_id} at {step}")
            self._fail(job_id, step, str(e))
            return self._error_response(job_id, str(e), step)

        processing_time_ms = int((self.clock() - started) * 1000)
        logger.info(f"Job {job_id} ready for review in {processing_time_ms}ms ({len(slices)} slices)")
        return {"success": True, "jobId": job_id, "processingTimeMs": processing_time_ms}

    @staticmethod
    def _degradable(step: str, func: Callable[[], Any], default: Any) -> Any:
        """
        Run a step body, substituting a default for non-fatal failures.

        Raises:
            PipelineError: If the failure is fatal
        """
        try:
            return func()
        except PipelineError as e:
            if e.fatal:
                raise
            logger.warning(f"{step} degraded: {e.message}")
            return default

    def _enter(self, job_id: str, tracker: ProgressTracker, step: str) -> None:
        percent = tracker.start(step)
        logger.info(f"Job {job_id}: {step} ({percent}%)")
        self.job_store.update(job_id, {
            "status": STATUS_PROCESSING,
            "processing_step": step,
            "processing_percent": percent,
        })

    def _leave(
        self,
        job_id: str,
        tracker: ProgressTracker,
        step: str,
        fields: Optional[Dict[str, Any]] = None
    ) -> None:
        update = dict(fields or {})
        update["processing_percent"] = tracker.complete(step)
        self.job_store.update(job_id, update)

    def _fail(self, job_id: str, step: str, message: str) -> None:
        try:
            self.job_store.update(job_id, {
                "status": STATUS_FAILED,
                "processing_step": step,
                "error_message": f"{step}: {message}",
            })
        except Exception:
            logger.exception(f"Could not record failure for job {job_id}")

    @staticmethod
    def _error_response(job_id: str, error: str, step: Optional[str]) -> Dict[str, Any]:
        return {"success": False, "jobId": job_id, "error": error, "step": step}
