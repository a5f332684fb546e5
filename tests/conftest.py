"""Shared fixtures for Excel Template Filler tests."""

import io
from unittest.mock import Mock

import pytest
from openpyxl import Workbook, load_workbook
from PIL import Image as PILImage


@pytest.fixture
def png_bytes():
    """A tiny but valid PNG image."""
    buffer = io.BytesIO()
    PILImage.new("RGB", (4, 4), color="red").save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def image_response(png_bytes):
    """Successful ``requests.get`` response carrying a PNG body."""
    response = Mock()
    response.content = png_bytes
    response.status_code = 200
    response.raise_for_status.return_value = None
    return response


@pytest.fixture
def worksheet():
    """Active sheet of a fresh workbook."""
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "Report"
    yield sheet
    workbook.close()


@pytest.fixture
def reload_workbook():
    """Save a workbook to memory and load it back with rich text enabled."""

    def _reload(workbook):
        buffer = io.BytesIO()
        workbook.save(buffer)
        buffer.seek(0)
        return load_workbook(buffer, rich_text=True)

    return _reload
