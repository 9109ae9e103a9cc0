"""
Core utilities and configuration for the Sliceflow package.
"""

from sliceflow.core.config import get_config, get_config_value
from sliceflow.core.credentials import get_api_key
from sliceflow.core.logging_config import get_logger, configure_logging
from sliceflow.core.error_handler import (
    APIError,
    ValidationError,
    ConfigurationError,
    PipelineError,
)
