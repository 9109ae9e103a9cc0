"""
Campaign processing pipeline.
"""

from sliceflow.pipeline.pipeline_controller import PipelineController
from sliceflow.pipeline.progress import ProgressTracker
from sliceflow.pipeline.polling import Poller
from sliceflow.pipeline.early_dispatcher import EarlyTaskDispatcher, EarlyTaskHandle
from sliceflow.pipeline.slicer import Slicer, SliceResult
from sliceflow.pipeline.link_annotator import LinkAnnotator
from sliceflow.pipeline.copy_orchestrator import CopyOrchestrator, CopyOutcome
from sliceflow.pipeline.qa_orchestrator import QAOrchestrator, QAOutcome
