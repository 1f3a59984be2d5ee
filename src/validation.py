"""
Spec Validation - JSON schema validation of GCSSource specs.

The schema mirrors the fields of the custom resource definition so that a
spec which slipped past the API server is rejected before any external
object is created for it.
"""

import logging
from typing import Any, Dict, Optional, Tuple

from jsonschema import Draft7Validator, ValidationError

from constants import PAYLOAD_FORMAT_JSON, PAYLOAD_FORMAT_NONE
from errors import InvalidSpecError
from models import GCSSourceSpec

logger = logging.getLogger(__name__)

GCS_SOURCE_SPEC_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["googleCloudProject", "bucket"],
    "properties": {
        "googleCloudProject": {"type": "string", "minLength": 1},
        "bucket": {"type": "string", "minLength": 1, "maxLength": 222},
        "objectNamePrefix": {"type": "string"},
        "eventTypes": {
            "type": "array",
            "items": {
                "type": "string",
                "enum": [
                    "OBJECT_FINALIZE",
                    "OBJECT_METADATA_UPDATE",
                    "OBJECT_DELETE",
                    "OBJECT_ARCHIVE",
                ],
            },
            "uniqueItems": True,
        },
        "customAttributes": {
            "type": "object",
            "additionalProperties": {"type": "string"},
        },
        "payloadFormat": {
            "type": "string",
            "enum": [PAYLOAD_FORMAT_JSON, PAYLOAD_FORMAT_NONE],
        },
        "serviceAccountName": {"type": "string"},
        "sink": {
            "type": "object",
            "properties": {
                "apiVersion": {"type": "string"},
                "kind": {"type": "string"},
                "name": {"type": "string"},
                "namespace": {"type": "string"},
                "uri": {"type": "string"},
            },
        },
    },
}


def validate_spec_against_schema(
    spec: Dict[str, Any], schema: Dict[str, Any]
) -> Tuple[bool, Optional[str]]:
    """
    Validate a resource spec against a JSON schema.

    Args:
        spec: The resource specification to validate
        schema: The JSON schema to validate against

    Returns:
        Tuple of (is_valid, error_message)
    """
    try:
        validator = Draft7Validator(schema)
        errors = sorted(validator.iter_errors(spec), key=lambda e: [str(p) for p in e.absolute_path])

        if not errors:
            return True, None

        # Collect all validation errors
        error_messages = []
        for error in errors:
            path = ".".join(str(p) for p in error.absolute_path) or "(root)"
            error_messages.append(f"{path}: {error.message}")

        return False, "; ".join(error_messages)

    except ValidationError as e:
        return False, f"Validation error: {str(e)}"


def validate_source_spec(spec: GCSSourceSpec) -> None:
    """
    Validate a GCSSource spec.

    Raises:
        InvalidSpecError: If the spec does not satisfy the schema
    """
    is_valid, error_message = validate_spec_against_schema(
        spec.to_dict(), GCS_SOURCE_SPEC_SCHEMA
    )
    if not is_valid:
        raise InvalidSpecError(f"Invalid GCSSource spec: {error_message}")
