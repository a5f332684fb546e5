"""Validation utilities for Excel Template Filler."""

import re
from typing import Any, Dict

from jsonschema import validate, ValidationError as JsonSchemaValidationError

from .exceptions import ConfigurationError, ValidationError

SETTINGS_SCHEMA = {
    "type": "object",
    "properties": {
        "version": {"type": "string"},
        "filler": {
            "type": "object",
            "properties": {
                "worksheet": {"type": ["string", "integer", "null"], "minimum": 1},
                "include_fill_log": {"type": "boolean"},
                "image": {
                    "type": "object",
                    "properties": {
                        "timeout_seconds": {"type": "number", "exclusiveMinimum": 0},
                        "user_agent": {"type": "string"},
                        "row_height": {"type": "number", "exclusiveMinimum": 0},
                        "column_width": {"type": "number", "exclusiveMinimum": 0},
                        "image_width": {"type": "integer", "minimum": 1},
                        "image_height": {"type": "integer", "minimum": 1},
                    },
                    "additionalProperties": False,
                },
            },
            "additionalProperties": False,
        },
    },
    "required": ["filler"],
}


def validate_settings_structure(settings: Dict[str, Any]) -> None:
    """Validate filler settings structure."""
    try:
        validate(instance=settings, schema=SETTINGS_SCHEMA)
    except JsonSchemaValidationError as e:
        raise ConfigurationError(f"Invalid settings: {e.message}")


def validate_fill_request(data: Any) -> None:
    """Check that the fill data of an API request is a JSON object."""
    if not isinstance(data, dict):
        raise ValidationError("Fill data must be a JSON object")


def sanitize_filename(filename: str) -> str:
    """Sanitize filename for safe file system usage."""
    if not filename:
        return "template.xlsx"

    # Remove or replace dangerous characters
    sanitized = re.sub(r'[<>:"/\\|?*]', "_", filename)

    # Remove control characters
    sanitized = re.sub(r"[\x00-\x1f\x7f-\x9f]", "", sanitized)

    return sanitized[:255] or "template.xlsx"


def parse_worksheet_selector(value: Any) -> Any:
    """Turn a request worksheet parameter into a sheet name or 1-based index."""
    if value is None or value == "":
        return None
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    text = str(value).strip()
    return int(text) if text.isdigit() else text


def parse_bool_param(value: Any, default: bool = False) -> bool:
    """Interpret form/JSON flag parameters."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).lower() in ("true", "1", "yes", "on")
