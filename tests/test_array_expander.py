"""Tests for array template row expansion."""

from unittest.mock import Mock

import pytest
from openpyxl.cell.rich_text import CellRichText, TextBlock
from openpyxl.cell.text import InlineFont
from openpyxl.styles import Border, Font, PatternFill, Side

from excel_template_filler.array_expander import (
    ArrayTemplate,
    ArrayTemplateExpander,
    find_array_templates,
)
from excel_template_filler.fill_log import FillLog
from excel_template_filler.image_embedder import (
    HYPERLINK_COLOR,
    ImageEmbedder,
    ImageEmbedSuccess,
    ImageFetchError,
)
from excel_template_filler.sheet_grid import SheetGrid

PHOTO_URL = "https://example.com/photo.png"


@pytest.fixture
def embedder():
    return Mock(spec=ImageEmbedder)


@pytest.fixture
def order_sheet(worksheet):
    """Header row, a styled template row and a footer row."""
    thin = Side(style="thin")
    worksheet["A1"] = "Name"
    worksheet["B1"] = "Qty"
    worksheet["C1"] = "Note"

    worksheet["A2"] = "${items:name}"
    worksheet["B2"] = "${items:qty} pcs"
    worksheet["C2"] = "fixed"
    for column in "ABC":
        cell = worksheet[f"{column}2"]
        cell.font = Font(bold=True, color="FF0000")
        cell.border = Border(bottom=thin)
        cell.fill = PatternFill(start_color="DDDDDD", end_color="DDDDDD", fill_type="solid")
    worksheet.row_dimensions[2].height = 22

    worksheet["A3"] = "Total"
    worksheet.row_dimensions[3].height = 35
    return worksheet


class TestFindArrayTemplates:
    """Test cases for template row discovery."""

    def test_first_placeholder_names_the_row(self, worksheet):
        worksheet["A2"] = "plain"
        worksheet["B2"] = "${items:name}"
        worksheet["C2"] = "${other:name}"
        worksheet["A5"] = "${lines:sku}"

        templates = find_array_templates(SheetGrid(worksheet))

        assert templates == [
            ArrayTemplate(row=2, array_name="items"),
            ArrayTemplate(row=5, array_name="lines"),
        ]

    def test_scalar_placeholders_are_not_templates(self, worksheet):
        worksheet["A1"] = "${client}"
        assert find_array_templates(SheetGrid(worksheet)) == []


class TestArrayTemplateExpander:
    """Test cases for ArrayTemplateExpander."""

    def test_expands_one_row_per_element(self, order_sheet, embedder):
        data = {
            "items": [
                {"name": "Bolt", "qty": 10},
                {"name": "Nut", "qty": 2.0},
                {"name": "Washer", "qty": 7},
            ]
        }

        results = ArrayTemplateExpander(embedder).expand_all(SheetGrid(order_sheet), data)

        assert len(results) == 1
        assert results[0].element_count == 3
        assert results[0].inserted_rows == 2

        assert [order_sheet.cell(row=r, column=1).value for r in (2, 3, 4)] == [
            "Bolt",
            "Nut",
            "Washer",
        ]
        assert [order_sheet.cell(row=r, column=2).value for r in (2, 3, 4)] == [
            "10 pcs",
            "2 pcs",
            "7 pcs",
        ]
        assert [order_sheet.cell(row=r, column=3).value for r in (2, 3, 4)] == ["fixed"] * 3

        # rows below the template move down
        assert order_sheet["A5"].value == "Total"
        assert order_sheet.row_dimensions[5].height == 35
        assert order_sheet["A1"].value == "Name"

    def test_inserted_rows_copy_template_styles(self, order_sheet, embedder):
        data = {"items": [{"name": "a", "qty": 1}, {"name": "b", "qty": 2}]}

        ArrayTemplateExpander(embedder).expand_all(SheetGrid(order_sheet), data)

        for column in "ABC":
            template_cell = order_sheet[f"{column}2"]
            inserted_cell = order_sheet[f"{column}3"]
            assert inserted_cell.font.bold is True
            assert inserted_cell.font.color.rgb == template_cell.font.color.rgb
            assert inserted_cell.border.bottom.style == "thin"
            assert inserted_cell.fill.fgColor.rgb == template_cell.fill.fgColor.rgb
        assert order_sheet.row_dimensions[3].height == 22

    @pytest.mark.parametrize("data", [{"items": []}, {}, {"items": "text"}, {"items": {"a": 1}}])
    def test_no_elements_leaves_template_row(self, order_sheet, embedder, data):
        fill_log = FillLog()

        results = ArrayTemplateExpander(embedder, fill_log).expand_all(
            SheetGrid(order_sheet), data
        )

        assert results == []
        assert order_sheet["A2"].value == "${items:name}"
        assert order_sheet["A3"].value == "Total"
        assert fill_log.count("WARNING") == 1

    def test_single_element_inserts_nothing(self, order_sheet, embedder):
        results = ArrayTemplateExpander(embedder).expand_all(
            SheetGrid(order_sheet), {"items": [{"name": "only", "qty": 1}]}
        )

        assert results[0].inserted_rows == 0
        assert order_sheet["A2"].value == "only"
        assert order_sheet["A3"].value == "Total"

    def test_blank_values_render_empty(self, order_sheet, embedder):
        data = {"items": [{"name": None, "qty": " "}, {"name": "", "qty": 0}]}

        ArrayTemplateExpander(embedder).expand_all(SheetGrid(order_sheet), data)

        assert order_sheet["A2"].value is None
        assert order_sheet["B2"].value == " pcs"
        assert order_sheet["A3"].value is None
        assert order_sheet["B3"].value == "0 pcs"

    def test_absent_fields_keep_placeholder(self, order_sheet, embedder):
        ArrayTemplateExpander(embedder).expand_all(
            SheetGrid(order_sheet), {"items": [{"name": "Bolt"}]}
        )

        assert order_sheet["A2"].value == "Bolt"
        assert order_sheet["B2"].value == "${items:qty} pcs"

    def test_non_mapping_element_keeps_template_text(self, order_sheet, embedder):
        fill_log = FillLog()

        ArrayTemplateExpander(embedder, fill_log).expand_all(
            SheetGrid(order_sheet), {"items": [{"name": "Bolt", "qty": 1}, "oops"]}
        )

        assert order_sheet["A2"].value == "Bolt"
        assert order_sheet["A3"].value == "${items:name}"
        assert fill_log.count("WARNING") == 1

    def test_templates_expand_bottom_up(self, worksheet, embedder):
        worksheet["A1"] = "${first:v}"
        worksheet["A2"] = "between"
        worksheet["A3"] = "${second:v}"
        worksheet["A4"] = "end"
        data = {
            "first": [{"v": "f1"}, {"v": "f2"}],
            "second": [{"v": "s1"}, {"v": "s2"}, {"v": "s3"}],
        }

        ArrayTemplateExpander(embedder).expand_all(SheetGrid(worksheet), data)

        assert [worksheet.cell(row=r, column=1).value for r in range(1, 9)] == [
            "f1",
            "f2",
            "between",
            "s1",
            "s2",
            "s3",
            "end",
            None,
        ]

    def test_columns_through_last_template_column(self, worksheet, embedder):
        worksheet["A2"] = "${rows:id}"
        worksheet["E2"] = "${rows:tail}"
        worksheet["D2"] = 99

        ArrayTemplateExpander(embedder).expand_all(
            SheetGrid(worksheet), {"rows": [{"id": 1, "tail": "x"}, {"id": 2, "tail": "y"}]}
        )

        assert worksheet["E2"].value == "x"
        assert worksheet["E3"].value == "y"
        assert worksheet["D3"].value == 99

    def test_template_row_merges_are_replicated(self, order_sheet, embedder):
        order_sheet.merge_cells("C2:D2")

        ArrayTemplateExpander(embedder).expand_all(
            SheetGrid(order_sheet),
            {"items": [{"name": "a", "qty": 1}, {"name": "b", "qty": 2}, {"name": "c", "qty": 3}]},
        )

        coords = sorted(r.coord for r in order_sheet.merged_cells.ranges)
        assert coords == ["C2:D2", "C3:D3", "C4:D4"]

    def test_image_field_is_embedded(self, worksheet, embedder):
        worksheet["B2"] = "${items:photo}"
        embedder.embed.side_effect = lambda ws, row, column, url: ImageEmbedSuccess(
            url, row, column, "png", 70, 105
        )

        results = ArrayTemplateExpander(embedder).expand_all(
            SheetGrid(worksheet), {"items": [{"photo": PHOTO_URL}, {"photo": PHOTO_URL}]}
        )

        assert [call.args[1:3] for call in embedder.embed.call_args_list] == [(2, 2), (3, 2)]
        assert worksheet["B2"].value is None
        assert worksheet["B3"].value is None
        assert results[0].images_embedded == 2

    def test_image_failure_shows_link(self, worksheet, embedder):
        worksheet["B2"] = "${items:photo}"
        worksheet["B2"].font = Font(name="Arial", bold=True)
        embedder.embed.return_value = ImageFetchError(PHOTO_URL, 2, 2, "404")

        results = ArrayTemplateExpander(embedder).expand_all(
            SheetGrid(worksheet), {"items": [{"photo": PHOTO_URL}]}
        )

        cell = worksheet["B2"]
        assert cell.value == PHOTO_URL
        assert cell.hyperlink.target == PHOTO_URL
        assert cell.font.color.rgb == HYPERLINK_COLOR
        assert cell.font.underline == "single"
        assert cell.font.name == "Arial"
        assert results[0].images_failed == 1

    def test_rich_text_template_keeps_runs(self, worksheet, embedder):
        worksheet["A2"] = CellRichText(
            TextBlock(InlineFont(b=True), "Item: "),
            TextBlock(InlineFont(b=True, i=True), "${items:name}"),
            TextBlock(InlineFont(u="single"), " (boxed)"),
        )

        ArrayTemplateExpander(embedder).expand_all(
            SheetGrid(worksheet), {"items": [{"name": "Bolt"}, {"name": "Nut"}]}
        )

        for row, name in ((2, "Bolt"), (3, "Nut")):
            value = worksheet.cell(row=row, column=1).value
            assert isinstance(value, CellRichText)
            assert str(value) == f"Item: {name} (boxed)"
            fonts = {block.text: block.font for block in value}
            assert fonts["Item: "].b
            assert fonts[name].i
            assert not fonts[name].b
            assert fonts[" (boxed)"].u == "single"

    def test_fallback_link_moves_with_later_expansion(self, worksheet, embedder, reload_workbook):
        worksheet["A1"] = "${up:v}"
        worksheet["A3"] = "${down:photo}"
        embedder.embed.return_value = ImageFetchError(PHOTO_URL, 3, 1, "404")

        ArrayTemplateExpander(embedder).expand_all(
            SheetGrid(worksheet),
            {"up": [{"v": 1}, {"v": 2}, {"v": 3}], "down": [{"photo": PHOTO_URL}]},
        )

        assert worksheet["A5"].value == PHOTO_URL
        assert worksheet["A5"].hyperlink.ref == "A5"

        sheet = reload_workbook(worksheet.parent).active
        assert sheet["A5"].hyperlink.target == PHOTO_URL
        assert sheet["A3"].hyperlink is None
