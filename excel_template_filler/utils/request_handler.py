"""Request handler utilities for dual-mode payload processing.

Fill requests can arrive either as multipart/form-data (template upload plus
a ``data`` JSON string) or as application/json with a base64 encoded
``template_file``.
"""

import base64
import binascii
import io
import json
import logging
from typing import Any, Dict, Optional, Union
from werkzeug.datastructures import FileStorage
from flask import Request

from .exceptions import ValidationError

logger = logging.getLogger(__name__)


def is_json_payload(request: Request) -> bool:
    """Tell JSON bodies from multipart uploads."""
    if request.is_json:
        return True
    if request.form or request.files or not request.data:
        return False

    # Some clients send JSON bodies with a text/plain Content-Type
    try:
        json.loads(request.data)
    except json.JSONDecodeError:
        return False
    logger.info(
        "Detected JSON payload despite Content-Type: %s",
        request.headers.get("Content-Type", "Not specified"),
    )
    return True


def log_request_info(request: Request) -> None:
    logger.info(
        "%s %s (Content-Type: %s, Content-Length: %s, files: %s)",
        request.method,
        request.path,
        request.headers.get("Content-Type", "Not specified"),
        request.headers.get("Content-Length", "Not specified"),
        list(request.files),
    )


class PayloadParser:
    """Reads template files and parameters from either payload mode."""

    def __init__(self, request: Request):
        self.request = request
        self.is_json_request = is_json_payload(request)
        self._json_data: Optional[Dict[str, Any]] = None

    def get_json_data(self) -> Dict[str, Any]:
        """Parsed JSON body, which must be a non-empty object."""
        if self._json_data is not None:
            return self._json_data

        try:
            if self.request.is_json:
                body = self.request.get_json()
            else:
                body = json.loads(self.request.data)
        except json.JSONDecodeError as e:
            raise ValidationError(f"Invalid JSON format: {e}")

        if not body:
            raise ValidationError("JSON payload is empty")
        if not isinstance(body, dict):
            raise ValidationError("JSON payload must be an object")

        self._json_data = body
        return body

    def get_file(self, field_name: str) -> Union[FileStorage, io.BytesIO]:
        """Uploaded file, or the base64 field decoded into a named buffer.

        Raises:
            ValidationError: If the file is missing or not valid base64
        """
        if not self.is_json_request:
            if field_name not in self.request.files:
                raise ValidationError(f"{field_name} is required")
            return self.request.files[field_name]

        json_data = self.get_json_data()
        file_b64 = json_data.get(field_name)
        if not file_b64:
            raise ValidationError(f"{field_name} (base64) is required in JSON mode")

        try:
            file_data = base64.b64decode(file_b64, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValidationError(f"Invalid base64 {field_name}: {e}")

        file_obj = io.BytesIO(file_data)
        file_obj.filename = json_data.get(f"{field_name}_name", f"{field_name}.xlsx")
        logger.info(f"Decoded {field_name} size: {len(file_data)} bytes")
        return file_obj

    def get_param(self, param_name: str, default: Any = None) -> Any:
        if self.is_json_request:
            return self.get_json_data().get(param_name, default)
        return self.request.form.get(param_name, default)

    def get_json_param(self, param_name: str) -> Any:
        """Required JSON value: a form field holding JSON text, or a JSON body member."""
        if self.is_json_request:
            value = self.get_json_data().get(param_name)
        else:
            value_str = self.request.form.get(param_name)
            if not value_str:
                raise ValidationError(f"{param_name} parameter is required")
            try:
                value = json.loads(value_str)
            except json.JSONDecodeError as e:
                raise ValidationError(f"Invalid JSON in {param_name} parameter: {e}")

        if value is None:
            raise ValidationError(f"{param_name} parameter is required")
        return value
