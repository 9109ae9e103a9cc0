"""
Common utility functions for the Sliceflow package.

This module provides utility functions used across the Sliceflow package:
- File and directory operations
- Identifier and timestamp generation
"""

import os
import json
import uuid
import datetime
from typing import Dict, Any


def ensure_dir(path: str) -> str:
    """
    Ensure a directory exists, creating it if necessary.

    Args:
        path (str): Directory path

    Returns:
        str: The directory path
    """
    os.makedirs(path, exist_ok=True)
    return path


def generate_session_key(job_id: str) -> str:
    """
    Generate a session key unique to one processing run of a job.

    Args:
        job_id (str): Queue item id

    Returns:
        str: Session key
    """
    return f"{job_id}-{uuid.uuid4().hex}"


def utc_now_iso() -> str:
    """Current UTC time as an ISO 8601 string."""
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


def load_json_file(file_path: str) -> Dict[str, Any]:
    """
    Load a JSON file.

    Args:
        file_path (str): Path to JSON file

    Returns:
        Dict[str, Any]: Loaded JSON data

    Raises:
        FileNotFoundError: If file does not exist
        json.JSONDecodeError: If file is not valid JSON
    """
    with open(file_path, 'r') as f:
        return json.load(f)


def save_json_file(data: Dict[str, Any], file_path: str, indent: int = 2) -> str:
    """
    Save data to a JSON file, writing through a temporary file.

    Args:
        data (Dict[str, Any]): Data to save
        file_path (str): Path to save to
        indent (int): JSON indentation

    Returns:
        str: Path to saved file
    """
    directory = os.path.dirname(file_path)
    if directory:
        ensure_dir(directory)

    tmp_path = f"{file_path}.tmp"
    with open(tmp_path, 'w') as f:
        json.dump(data, f, indent=indent)
    os.replace(tmp_path, file_path)

    return file_path
