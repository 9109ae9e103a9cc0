"""
Sliceflow - Campaign processing pipeline

Turns an uploaded email design image into a review-ready campaign: sliced
image blocks with links and alt text, subject line and preview text
candidates, and spelling QA.
"""

__version__ = "0.1.0"
__author__ = "Sliceflow Team"

# Import main components for easier access
from sliceflow.pipeline.pipeline_controller import PipelineController
from sliceflow.imaging.image_resolver import ImageResolver
from sliceflow.pipeline.slicer import Slicer
from sliceflow.pipeline.link_annotator import LinkAnnotator
from sliceflow.pipeline.copy_orchestrator import CopyOrchestrator
from sliceflow.pipeline.qa_orchestrator import QAOrchestrator
