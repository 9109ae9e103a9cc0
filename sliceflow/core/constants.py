"""
Constants for the Sliceflow package.

This module provides constants used throughout the Sliceflow package.
These constants can be easily changed in one place.
"""

# Collaborator endpoints
DEFAULT_SERVICES_BASE_URL = "http://localhost:54321/functions/v1"
DEFAULT_SERVICE_TIMEOUT = 60
DEFAULT_SERVICE_MAX_RETRIES = 3
DEFAULT_SERVICE_ENDPOINTS = {
    "segment": "auto-slice-v2",
    "annotate_slices": "analyze-slices",
    "resolve_links": "resolve-slice-links",
    "generate_copy": "generate-email-copy",
    "check_spelling": "qa-spelling-check",
    "search_copy": "search-clickup-for-copy",
}

# Storage
DEFAULT_QUEUE_TABLE = "campaign_queue"
DEFAULT_EARLY_COPY_TABLE = "early_generated_copy"
DEFAULT_EARLY_SPELLING_TABLE = "early_spelling_check"

# Queue item statuses
STATUS_QUEUED = "queued"
STATUS_PROCESSING = "processing"
STATUS_READY_FOR_REVIEW = "ready_for_review"
STATUS_FAILED = "failed"
TERMINAL_STATUSES = (STATUS_READY_FOR_REVIEW, STATUS_FAILED)

# Image fetching
DEFAULT_HEADER_RANGE_BYTES = 65536
DEFAULT_IMAGE_FETCH_TIMEOUT = 30

# Image views (email width, AI payload height limits)
DEFAULT_SEGMENTATION_MAX_WIDTH = 600
DEFAULT_SEGMENTATION_MAX_HEIGHT = 5000
DEFAULT_AI_MAX_WIDTH = 600
DEFAULT_AI_MAX_HEIGHT = 7900
DEFAULT_CROP_QUALITY = 90

# Pipeline steps, in order, with their share of processing_percent
STEP_FETCHING_IMAGE = "fetching_image"
STEP_ANALYZING_IMAGE = "analyzing_image"
STEP_GENERATING_SLICE_URLS = "generating_slice_urls"
STEP_SLICE_ANALYSIS = "slice_analysis"
STEP_GENERATING_COPY = "generating_copy"
STEP_QA_CHECK = "qa_check"
STEP_FINALIZING = "finalizing"
STEP_COMPLETE = "complete"

PIPELINE_STEP_WEIGHTS = [
    (STEP_FETCHING_IMAGE, 10),
    (STEP_ANALYZING_IMAGE, 25),
    (STEP_GENERATING_SLICE_URLS, 10),
    (STEP_SLICE_ANALYSIS, 15),
    (STEP_GENERATING_COPY, 20),
    (STEP_QA_CHECK, 10),
    (STEP_FINALIZING, 10),
]
STEP_START_INCREMENT = 5

# Polling of early results
DEFAULT_POLL_INTERVAL = 2.0
DEFAULT_COPY_POLL_TIMEOUT = 12.0
DEFAULT_QA_POLL_TIMEOUT = 8.0

# Copy generation
DEFAULT_PAIR_COUNT = 10
COPY_SOURCE_AI = "ai"
COPY_SOURCE_FIGMA = "figma"
COPY_SOURCE_CLICKUP = "clickup"

# Links
DEFAULT_VERIFIED_CONFIDENCE_THRESHOLD = 0.8
LINK_SOURCE_AI = "ai"
LINK_SOURCE_MANUAL = "manual"
LINK_SOURCE_NEEDS_RESOLUTION = "needs_resolution"
LINK_SOURCE_RESOLVED_PREFIX = "resolved_"
LINK_SOURCE_DEFAULT_FALLBACK = "default_fallback"

# Slices
SLICE_TYPE_IMAGE = "image"
SLICE_TYPE_CTA = "cta"
DEFAULT_ALT_TEXT_TEMPLATE = "Email section {n}"
