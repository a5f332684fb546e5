"""Tests for the template filler orchestration."""

import io
import os
import tempfile
from unittest import TestCase
from unittest.mock import Mock, patch

import pytest
from openpyxl import Workbook, load_workbook
from openpyxl.cell.rich_text import CellRichText
from openpyxl.styles import Font

from excel_template_filler.fill_log import FILL_LOG_HEADERS, FILL_LOG_SHEET
from excel_template_filler.image_embedder import ImageEmbedder, ImageSettings
from excel_template_filler.template_filler import (
    ExcelTemplateFiller,
    FillerSettings,
    export_to_excel,
)
from excel_template_filler.utils.exceptions import (
    ExcelProcessingError,
    TemplateNotFoundError,
    WorksheetNotFoundError,
)


def build_template() -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "Quote"
    sheet["A1"] = "${client}"
    sheet["A2"] = "Prepared for ${client} on ${date}"
    sheet["A2"].font = Font(bold=True)
    sheet["A4"] = "${lines:item}"
    sheet["B4"] = "${lines:price}"
    sheet["A5"] = "Total: ${total}"

    other = workbook.create_sheet("Notes")
    other["A1"] = "${client}"

    buffer = io.BytesIO()
    workbook.save(buffer)
    workbook.close()
    return buffer.getvalue()


DATA = {
    "client": "Acme",
    "date": "2024-05-01",
    "total": 30,
    "lines": [{"item": "Bolt", "price": 10}, {"item": "Nut", "price": 20}],
}


class TestExcelTemplateFiller:
    """Test cases for ExcelTemplateFiller."""

    @pytest.fixture
    def filler(self):
        return ExcelTemplateFiller(image_embedder=Mock(spec=ImageEmbedder))

    def test_export_to_excel_returns_filled_workbook(self, filler):
        content = filler.export_to_excel(DATA, build_template())

        workbook = load_workbook(io.BytesIO(content), rich_text=True)
        sheet = workbook["Quote"]
        assert sheet["A1"].value == "Acme"
        assert isinstance(sheet["A2"].value, CellRichText)
        assert str(sheet["A2"].value) == "Prepared for Acme on 2024-05-01"
        assert sheet["A4"].value == "Bolt"
        assert sheet["B4"].value == "10"
        assert sheet["A5"].value == "Nut"
        assert sheet["B5"].value == "20"
        assert str(sheet["A6"].value) == "Total: 30"
        # only the selected sheet is filled
        assert workbook["Notes"]["A1"].value == "${client}"
        assert FILL_LOG_SHEET not in workbook.sheetnames

    def test_report(self, filler):
        filler.export_to_excel(DATA, build_template())
        report = filler.last_report

        assert report.worksheet == "Quote"
        assert report.scalars_filled == 1
        assert report.rich_text_cells == 2
        assert report.arrays_expanded == 1
        assert report.rows_inserted == 1
        assert report.images_embedded == 0
        assert report.to_dict()["warnings"] == 0

    def test_select_worksheet_by_name_and_index(self, filler):
        for selector in ("Notes", 2):
            content = filler.export_to_excel(DATA, build_template(), worksheet=selector)
            workbook = load_workbook(io.BytesIO(content))
            assert workbook["Notes"]["A1"].value == "Acme"
            assert workbook["Quote"]["A1"].value == "${client}"

    def test_worksheet_from_settings(self):
        filler = ExcelTemplateFiller(
            FillerSettings(worksheet="Notes"), image_embedder=Mock(spec=ImageEmbedder)
        )
        content = filler.export_to_excel(DATA, build_template())

        assert load_workbook(io.BytesIO(content))["Notes"]["A1"].value == "Acme"

    @pytest.mark.parametrize("selector", ["Missing", 0, 3])
    def test_unknown_worksheet(self, filler, selector):
        with pytest.raises(WorksheetNotFoundError) as exc_info:
            filler.export_to_excel(DATA, build_template(), worksheet=selector)
        assert exc_info.value.error_code == "WORKSHEET_NOT_FOUND"

    def test_missing_template_path(self, filler):
        with pytest.raises(TemplateNotFoundError) as exc_info:
            filler.export_to_excel(DATA, "/nonexistent/template.xlsx")
        assert exc_info.value.error_code == "TEMPLATE_NOT_FOUND"

    def test_invalid_template_bytes(self, filler):
        with pytest.raises(ExcelProcessingError):
            filler.export_to_excel(DATA, b"definitely not a zip file")

    def test_fill_log_sheet(self, filler):
        content = filler.export_to_excel(
            {"client": "Acme"}, build_template(), include_fill_log=True
        )

        workbook = load_workbook(io.BytesIO(content))
        log_sheet = workbook[FILL_LOG_SHEET]
        headers = [cell.value for cell in log_sheet[1]]
        assert headers == FILL_LOG_HEADERS
        statuses = {log_sheet.cell(row=r, column=4).value for r in range(2, log_sheet.max_row + 1)}
        assert {"INFO", "SUCCESS", "WARNING"} <= statuses

    def test_missing_data_leaves_literals(self, filler):
        content = filler.export_to_excel({}, build_template())

        sheet = load_workbook(io.BytesIO(content))["Quote"]
        assert sheet["A1"].value == "${client}"
        assert sheet["A4"].value == "${lines:item}"
        assert filler.last_report.warnings > 0

    def test_corrupt_image_does_not_abort_fill(self, image_response):
        workbook = Workbook()
        sheet = workbook.active
        sheet["A1"] = "${logo}"
        sheet["A2"] = "${name}"
        buffer = io.BytesIO()
        workbook.save(buffer)

        content = bytearray(image_response.content)
        content[content.index(b"IDAT") + 4] ^= 0xFF
        image_response.content = bytes(content)
        logo_url = "https://example.com/logo.png"

        filler = ExcelTemplateFiller()
        with patch(
            "excel_template_filler.image_embedder.requests.get",
            return_value=image_response,
        ):
            result = filler.export_to_excel(
                {"logo": logo_url, "name": "x"}, buffer.getvalue()
            )

        sheet = load_workbook(io.BytesIO(result)).active
        assert sheet["A1"].value == logo_url
        assert sheet["A1"].hyperlink.target == logo_url
        assert sheet["A2"].value == "x"
        assert filler.last_report.images_failed == 1

    def test_inspect_template(self, filler):
        result = filler.inspect_template(build_template())

        quote = result["sheets"]["Quote"]
        assert quote["scalar_fields"] == ["client", "date", "total"]
        assert quote["array_fields"] == {"lines": ["item", "price"]}
        assert result["sheets"]["Notes"]["scalar_fields"] == ["client"]

    def test_settings_from_config(self):
        settings = FillerSettings.from_config(
            {
                "worksheet": 2,
                "include_fill_log": True,
                "image": {"timeout_seconds": 5, "row_height": 60},
            }
        )

        assert settings.worksheet == 2
        assert settings.include_fill_log is True
        assert settings.image == ImageSettings(timeout_seconds=5, row_height=60)


class TestExportFromFile(TestCase):
    """Test filling a template stored on disk."""

    def setUp(self):
        """Set up test fixtures."""
        self.temp_file = tempfile.NamedTemporaryFile(delete=False, suffix=".xlsx")
        self.temp_file.write(build_template())
        self.temp_file.close()

    def tearDown(self):
        """Clean up test fixtures."""
        if os.path.exists(self.temp_file.name):
            os.unlink(self.temp_file.name)

    def test_module_level_export(self):
        """Test the module level shortcut with a template path."""
        content = export_to_excel({"client": "Acme"}, self.temp_file.name)

        workbook = load_workbook(io.BytesIO(content))
        self.assertEqual(workbook["Quote"]["A1"].value, "Acme")
        workbook.close()

    def test_template_file_is_not_modified(self):
        """Test that filling never writes back to the template."""
        with open(self.temp_file.name, "rb") as f:
            before = f.read()

        export_to_excel(DATA, self.temp_file.name)

        with open(self.temp_file.name, "rb") as f:
            self.assertEqual(f.read(), before)
