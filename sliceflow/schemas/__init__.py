"""
JSON schemas for validating collaborator responses and stored records.

This package contains JSON schema definitions for:
- Segmentation, slice annotation and link resolution responses
- Copy generation and spelling check responses
- Campaign queue items
"""

import os
import json
from typing import Dict, Any

from jsonschema import validate


def get_schema_path(schema_name):
    """
    Get the absolute path to a schema file.

    Args:
        schema_name (str): Name of the schema file without extension

    Returns:
        str: Absolute path to the schema file
    """
    current_dir = os.path.dirname(os.path.abspath(__file__))
    return os.path.join(current_dir, f"{schema_name}.json")


def load_schema(schema_name):
    """
    Load a JSON schema from file.

    Args:
        schema_name (str): Name of the schema file without extension

    Returns:
        dict: The loaded schema as a dictionary
    """
    schema_path = get_schema_path(schema_name)
    with open(schema_path, 'r') as f:
        return json.load(f)


def validate_response(data: Dict[str, Any], schema_name: str) -> None:
    """
    Validate data against a named schema.

    Args:
        data: Data to validate
        schema_name: Name of the schema file without extension

    Raises:
        jsonschema.exceptions.ValidationError: If the data does not match
    """
    validate(instance=data, schema=load_schema(schema_name))
