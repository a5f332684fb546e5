"""Expansion of ``${arrayName:field}`` template rows into one row per element."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

from openpyxl.cell.cell import MergedCell
from openpyxl.styles import Font

from .cell_values import RichText, read_cell_value, text_of, to_openpyxl_value
from .fill_log import FillLog
from .image_embedder import ImageEmbedder, hyperlink_font
from .placeholders import (
    ARRAY_PLACEHOLDER_PATTERN,
    array_field_token,
    find_array_placeholder,
    format_value,
    is_blank,
    is_image_url,
)
from .rich_text_filler import Replacement, substitute_rich_runs
from .sheet_grid import RowBlueprint, SheetGrid

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ArrayTemplate:
    """A template row and the array field that drives it."""

    row: int
    array_name: str


@dataclass
class ExpansionResult:
    template: ArrayTemplate
    element_count: int
    inserted_rows: int
    images_embedded: int = 0
    images_failed: int = 0


def find_array_templates(grid: SheetGrid) -> List[ArrayTemplate]:
    """Scan every row once and return its array template, top to bottom.

    The first array placeholder in a row (left to right) names the array
    bound to that row. Formatted cells are matched on their plain text.
    """
    templates: List[ArrayTemplate] = []
    for row in range(1, grid.row_count + 1):
        for cell in grid.iter_row_cells(row):
            found = find_array_placeholder(text_of(read_cell_value(cell.value)))
            if found:
                templates.append(ArrayTemplate(row=row, array_name=found[0]))
                break
    return templates


class ArrayTemplateExpander:
    """Repeats template rows for each element of their array field."""

    def __init__(
        self,
        image_embedder: Optional[ImageEmbedder] = None,
        fill_log: Optional[FillLog] = None,
    ) -> None:
        self.image_embedder = image_embedder or ImageEmbedder()
        self.fill_log = fill_log or FillLog()

    def expand_all(
        self, grid: SheetGrid, data: Mapping[str, Any]
    ) -> List[ExpansionResult]:
        """Plan every template first, then expand them bottom-up."""
        templates = find_array_templates(grid)
        self.fill_log.info(
            f"Found {len(templates)} array template row(s) in sheet '{grid.title}'"
        )

        results = []
        for template in sorted(templates, key=lambda t: t.row, reverse=True):
            result = self.expand(grid, template, data)
            if result is not None:
                results.append(result)
        return results

    def expand(
        self, grid: SheetGrid, template: ArrayTemplate, data: Mapping[str, Any]
    ) -> Optional[ExpansionResult]:
        """Expand a single template row. Returns None when there is nothing to do."""
        items = data.get(template.array_name)
        if not items or not isinstance(items, Sequence) or isinstance(items, str):
            self.fill_log.warning(
                f"No elements for array '{template.array_name}', "
                f"row {template.row} left unchanged",
                f"row {template.row}",
            )
            return None

        blueprint = grid.capture_row_blueprint(template.row)

        inserted_rows = len(items) - 1
        if inserted_rows > 0:
            grid.insert_rows(template.row + 1, inserted_rows)

        result = ExpansionResult(
            template=template,
            element_count=len(items),
            inserted_rows=inserted_rows,
        )

        for index, item in enumerate(items):
            target_row = template.row + index
            grid.apply_row_layout(target_row, blueprint)
            if not isinstance(item, Mapping):
                self.fill_log.warning(
                    f"Element {index} of '{template.array_name}' is not an object, "
                    f"row {target_row} keeps template text",
                    f"row {target_row}",
                )
                item = {}
            self._fill_row(grid, template, blueprint, target_row, item, result)

        self.fill_log.info(
            f"Expanded '{template.array_name}' at row {template.row} "
            f"into {len(items)} row(s)"
        )
        return result

    def _fill_row(
        self,
        grid: SheetGrid,
        template: ArrayTemplate,
        blueprint: RowBlueprint,
        target_row: int,
        item: Mapping[str, Any],
        result: ExpansionResult,
    ) -> None:
        for column in range(1, blueprint.last_column + 1):
            column_blueprint = blueprint.columns.get(column)
            if column_blueprint is None:
                continue

            cell = grid.cell(target_row, column)
            if isinstance(cell, MergedCell):
                continue

            fallback_url = None
            template_value = read_cell_value(column_blueprint.value)
            text = text_of(template_value)
            if text is not None:
                new_value, fallback_url, rendered = self._substitute(
                    grid, template, text, target_row, column, item, result
                )
                if new_value == text:
                    cell.value = column_blueprint.value
                elif new_value == "":
                    cell.value = None
                elif isinstance(template_value, RichText) and fallback_url is None:
                    cell.value = self._substitute_runs(
                        template_value, rendered, column_blueprint.font
                    )
                else:
                    cell.value = new_value
            else:
                cell.value = column_blueprint.value

            grid.apply_column_style(cell, column_blueprint)

            # Applied after the blueprint style so the link look survives
            if fallback_url is not None:
                cell.hyperlink = fallback_url
                cell.font = hyperlink_font(column_blueprint.font)

    def _substitute(
        self,
        grid: SheetGrid,
        template: ArrayTemplate,
        text: str,
        target_row: int,
        column: int,
        item: Mapping[str, Any],
        result: ExpansionResult,
    ):
        """Replace the element's fields in one blueprint cell text.

        Returns the new text, the URL of an image that could not be fetched
        and the rendered value of every substituted token.
        """
        new_value = text
        fallback_url = None
        rendered: Dict[str, str] = {}

        for key, raw_value in item.items():
            token = array_field_token(template.array_name, key)
            if token not in new_value:
                continue

            field_value = format_value(raw_value)
            if is_image_url(field_value):
                embed_result = self.image_embedder.embed(
                    grid.worksheet, target_row, column, field_value
                )
                if embed_result.ok:
                    result.images_embedded += 1
                    rendered[token] = ""
                else:
                    result.images_failed += 1
                    fallback_url = field_value
                    rendered[token] = field_value
            elif is_blank(raw_value):
                rendered[token] = ""
            else:
                rendered[token] = field_value
            new_value = new_value.replace(token, rendered[token])

            self.fill_log.success(
                f"Filled {token} in row {target_row}, column {column}",
                f"R{target_row}C{column}",
                text,
                new_value,
            )

        return new_value, fallback_url, rendered

    def _substitute_runs(
        self,
        template_value: RichText,
        rendered: Mapping[str, str],
        font: Optional[Font],
    ) -> Any:
        """Substitute rendered tokens inside the runs of a rich text template cell."""
        replacements = [
            Replacement(
                start=match.start(),
                end=match.end(),
                key=match.group(2),
                value=rendered[match.group(0)],
            )
            for match in ARRAY_PLACEHOLDER_PATTERN.finditer(template_value.text)
            if match.group(0) in rendered
        ]
        runs = substitute_rich_runs(template_value.runs, replacements, font)
        return to_openpyxl_value(RichText(runs=tuple(runs)))
