"""
Collaborator services used by the pipeline.
"""

from sliceflow.services.base import (
    SegmentationService,
    SliceAnnotationService,
    LinkResolutionService,
    CopyGenerationService,
    SpellingCheckService,
    CopySearchService,
)
from sliceflow.services.http_services import (
    HttpServiceClient,
    HttpSegmentationService,
    HttpSliceAnnotationService,
    HttpLinkResolutionService,
    HttpCopyGenerationService,
    HttpSpellingCheckService,
    HttpCopySearchService,
)
