"""Placeholder syntax, matching and value formatting helpers.

Templates use two kinds of tokens:

* ``${key}`` resolves a top-level scalar field of the input data.
* ``${arrayName:field}`` resolves a field of each element of an array field and
  marks its row as a template row that is repeated once per element.
"""

import logging
import re
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Tuple

from .cell_values import read_cell_value, text_of

logger = logging.getLogger(__name__)

SCALAR_PLACEHOLDER_PATTERN = re.compile(r"\$\{(\w+)\}")
ARRAY_PLACEHOLDER_PATTERN = re.compile(r"\$\{(\w+):(\w+)\}")

IMAGE_URL_SCHEME_PATTERN = re.compile(r"^https?://", re.IGNORECASE)
SUPPORTED_IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif")

_SCALAR_TYPES = (str, int, float, bool, Decimal, date, datetime, time)


@dataclass(frozen=True)
class PlaceholderMatch:
    """A ``${key}`` occurrence inside a piece of text."""

    start: int
    end: int
    key: str

    @property
    def token(self) -> str:
        return "${%s}" % self.key


def find_placeholders(text: str) -> List[PlaceholderMatch]:
    """Return every scalar placeholder in ``text``, left to right.

    A new list is built on each call so callers can iterate it as often as
    they like.
    """
    if not isinstance(text, str):
        return []
    return [
        PlaceholderMatch(start=m.start(), end=m.end(), key=m.group(1))
        for m in SCALAR_PLACEHOLDER_PATTERN.finditer(text)
    ]


def exact_placeholder_key(text: Any) -> Optional[str]:
    """Return ``key`` when ``text`` is exactly ``${key}``, otherwise None."""
    if not isinstance(text, str):
        return None
    match = SCALAR_PLACEHOLDER_PATTERN.fullmatch(text)
    return match.group(1) if match else None


def find_array_placeholder(text: Any) -> Optional[Tuple[str, str]]:
    """Return ``(array_name, field)`` of the first array placeholder in ``text``."""
    if not isinstance(text, str):
        return None
    match = ARRAY_PLACEHOLDER_PATTERN.search(text)
    if not match:
        return None
    return match.group(1), match.group(2)


def array_field_token(array_name: str, field: str) -> str:
    return "${%s:%s}" % (array_name, field)


def is_scalar(value: Any) -> bool:
    """Check whether a data value can be substituted for a bare placeholder."""
    if value is None:
        return False
    return isinstance(value, _SCALAR_TYPES)


def is_blank(value: Any) -> bool:
    """Check whether an array field value should render as an empty string."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def format_value(value: Any) -> str:
    """Render a scalar the way it should appear inside a cell."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def resolve_scalar(data: Mapping[str, Any], key: str) -> Optional[str]:
    """Look up ``key`` in ``data`` and return its string form if it is a scalar."""
    if key not in data:
        return None
    value = data[key]
    if not is_scalar(value):
        logger.debug(f"Skipping placeholder '${{{key}}}': value is not a scalar")
        return None
    return format_value(value)


def is_image_url(url: Any) -> bool:
    """Check if a value is an http(s) link to a supported image type."""
    if not isinstance(url, str):
        return False
    if not IMAGE_URL_SCHEME_PATTERN.match(url):
        return False
    lower_url = url.lower()
    return any(ext in lower_url for ext in SUPPORTED_IMAGE_EXTENSIONS)


def image_format_from_url(url: str) -> str:
    """Pick the embedded image format from the URL text, defaulting to png."""
    lower_url = url.lower()
    if ".png" in lower_url:
        return "png"
    if ".jpg" in lower_url or ".jpeg" in lower_url:
        return "jpeg"
    if ".gif" in lower_url:
        return "gif"
    return "png"


def list_template_placeholders(worksheet) -> Dict[str, Any]:
    """Collect the scalar keys and array fields referenced by a worksheet."""
    scalar_keys: List[str] = []
    array_fields: Dict[str, List[str]] = {}
    cells: List[Dict[str, Any]] = []

    for row in worksheet.iter_rows():
        for cell in row:
            text = _cell_text(cell.value)
            if not text:
                continue
            found = False
            for match in find_placeholders(text):
                found = True
                if match.key not in scalar_keys:
                    scalar_keys.append(match.key)
            for array_match in ARRAY_PLACEHOLDER_PATTERN.finditer(text):
                found = True
                fields = array_fields.setdefault(array_match.group(1), [])
                if array_match.group(2) not in fields:
                    fields.append(array_match.group(2))
            if found:
                cells.append({"cell": cell.coordinate, "text": text})

    return {
        "scalar_fields": scalar_keys,
        "array_fields": array_fields,
        "cells": cells,
    }


def _cell_text(value: Any) -> str:
    return text_of(read_cell_value(value)) or ""
