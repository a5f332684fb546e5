"""File handling utilities for Excel Template Filler."""

import json
import os
from pathlib import Path
from typing import Any, BinaryIO, Dict, List, Union
import logging
from werkzeug.datastructures import FileStorage

from .exceptions import FileProcessingError, ValidationError

logger = logging.getLogger(__name__)

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def validate_file_extension(filename: str, allowed_extensions: List[str]) -> bool:
    """Validate file extension against allowed list."""
    if not filename:
        return False

    extension = Path(filename).suffix.lower().lstrip(".")
    return extension in [ext.lower().lstrip(".") for ext in allowed_extensions]


def validate_file_size(
    file_obj: Union[BinaryIO, FileStorage], max_size_mb: int
) -> bool:
    """Validate file size against maximum allowed size."""
    try:
        if hasattr(file_obj, "seek") and hasattr(file_obj, "tell"):
            current_pos = file_obj.tell()
            file_obj.seek(0, 2)  # Seek to end
            file_size = file_obj.tell()
            file_obj.seek(current_pos)  # Restore position
        elif hasattr(file_obj, "content_length") and file_obj.content_length:
            file_size = file_obj.content_length
        else:
            return True  # Can't determine size, allow it

        max_size_bytes = max_size_mb * 1024 * 1024
        return file_size <= max_size_bytes
    except (OSError, ValueError) as e:
        logger.warning(f"Could not validate file size: {e}")
        return True


def read_uploaded_template(
    file_obj: Union[BinaryIO, FileStorage],
    allowed_extensions: List[str],
    max_size_mb: int,
) -> bytes:
    """Validate an uploaded template and return its bytes."""
    filename = getattr(file_obj, "filename", None) or "template.xlsx"

    if not validate_file_extension(filename, allowed_extensions):
        raise ValidationError(
            f"File extension not allowed. Allowed: {', '.join(allowed_extensions)}"
        )

    if not validate_file_size(file_obj, max_size_mb):
        raise ValidationError(
            f"File size exceeds maximum allowed size of {max_size_mb}MB"
        )

    try:
        file_obj.seek(0)
        content = file_obj.read()
    except (OSError, ValueError) as e:
        raise FileProcessingError(f"Failed to read uploaded template: {e}")

    if not content:
        raise ValidationError("Template file is empty")

    logger.info(f"Read uploaded template '{filename}' ({len(content)} bytes)")
    return content


def load_json_file(file_path: str) -> Dict[str, Any]:
    """Load fill data from a JSON file."""
    try:
        with open(file_path, "r", encoding="utf-8") as file:
            data = json.load(file)
    except json.JSONDecodeError as e:
        raise ValidationError(f"Invalid JSON in {file_path}: {e}")
    except OSError as e:
        raise FileProcessingError(f"Failed to read {file_path}: {e}")

    if not isinstance(data, dict):
        raise ValidationError(f"{file_path} must contain a JSON object")
    return data


def write_output_file(content: bytes, output_path: str) -> str:
    """Write generated workbook bytes, creating parent directories."""
    try:
        directory = os.path.dirname(os.path.abspath(output_path))
        os.makedirs(directory, exist_ok=True)
        with open(output_path, "wb") as file:
            file.write(content)
    except OSError as e:
        raise FileProcessingError(f"Failed to write {output_path}: {e}")

    logger.info(f"Saved filled workbook to: {output_path}")
    return output_path
