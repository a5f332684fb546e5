"""Worksheet access layer used by the fillers and the array expander."""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Tuple

from openpyxl.cell.cell import Cell, MergedCell
from openpyxl.drawing.spreadsheet_drawing import OneCellAnchor, TwoCellAnchor
from openpyxl.utils import get_column_letter
from openpyxl.utils.cell import coordinate_from_string
from openpyxl.worksheet.worksheet import Worksheet

from .cell_values import CellValue, read_cell_value, to_openpyxl_value

logger = logging.getLogger(__name__)


@dataclass
class ColumnBlueprint:
    """Value and style snapshot of one template row cell."""

    value: Any
    font: Any = None
    alignment: Any = None
    border: Any = None
    fill: Any = None
    number_format: Optional[str] = None


@dataclass
class RowBlueprint:
    """Snapshot of a template row, reused for every expanded row."""

    row: int
    columns: Dict[int, ColumnBlueprint] = field(default_factory=dict)
    height: Optional[float] = None
    merged_columns: List[Tuple[int, int]] = field(default_factory=list)

    @property
    def last_column(self) -> int:
        return max(self.columns) if self.columns else 0


class SheetGrid:
    """Row/column view over an openpyxl worksheet.

    All row insertion goes through :meth:`insert_rows` so that row heights,
    merged ranges and image anchors move together with the cells.
    """

    def __init__(self, worksheet: Worksheet) -> None:
        self.worksheet = worksheet

    @property
    def title(self) -> str:
        return self.worksheet.title

    @property
    def row_count(self) -> int:
        return self.worksheet.max_row

    @property
    def column_count(self) -> int:
        return self.worksheet.max_column

    def cell(self, row: int, column: int) -> Cell:
        return self.worksheet.cell(row=row, column=column)

    def iter_cells(self) -> Iterator[Cell]:
        """Yield every writable cell, top-to-bottom then left-to-right."""
        for row in self.worksheet.iter_rows(
            min_row=1,
            max_row=self.row_count,
            min_col=1,
            max_col=self.column_count,
        ):
            for cell in row:
                if isinstance(cell, MergedCell):
                    continue
                yield cell

    def iter_row_cells(self, row: int) -> Iterator[Cell]:
        for column in range(1, self.column_count + 1):
            cell = self.cell(row, column)
            if isinstance(cell, MergedCell):
                continue
            yield cell

    def get_value(self, row: int, column: int) -> CellValue:
        return read_cell_value(self.cell(row, column).value)

    def set_value(self, row: int, column: int, value: CellValue) -> None:
        self.cell(row, column).value = to_openpyxl_value(value)

    def capture_row_blueprint(self, row: int) -> RowBlueprint:
        """Capture values, styles, height and merges of a row before mutation."""
        blueprint = RowBlueprint(row=row)

        for cell in self.iter_row_cells(row):
            if cell.value is None and not cell.has_style:
                continue
            blueprint.columns[cell.column] = ColumnBlueprint(
                value=cell.value,
                font=copy.copy(cell.font) if cell.font else None,
                alignment=copy.copy(cell.alignment) if cell.alignment else None,
                border=copy.copy(cell.border) if cell.border else None,
                fill=copy.copy(cell.fill) if cell.fill else None,
                number_format=cell.number_format if cell.number_format else None,
            )

        blueprint.height = self.worksheet.row_dimensions[row].height

        for merged_range in self.worksheet.merged_cells.ranges:
            if merged_range.min_row == row and merged_range.max_row == row:
                blueprint.merged_columns.append(
                    (merged_range.min_col, merged_range.max_col)
                )

        return blueprint

    def apply_column_style(self, cell: Cell, column_blueprint: ColumnBlueprint) -> None:
        """Re-apply captured style attributes, skipping the ones that are absent."""
        if column_blueprint.font:
            cell.font = column_blueprint.font
        if column_blueprint.alignment:
            cell.alignment = column_blueprint.alignment
        if column_blueprint.border:
            cell.border = column_blueprint.border
        if column_blueprint.fill:
            cell.fill = column_blueprint.fill
        if column_blueprint.number_format:
            cell.number_format = column_blueprint.number_format

    def apply_row_layout(self, row: int, blueprint: RowBlueprint) -> None:
        """Give ``row`` the template row height and horizontal merges."""
        if blueprint.height is not None:
            self.worksheet.row_dimensions[row].height = blueprint.height

        if row == blueprint.row:
            return

        for min_col, max_col in blueprint.merged_columns:
            try:
                self.worksheet.merge_cells(
                    start_row=row,
                    start_column=min_col,
                    end_row=row,
                    end_column=max_col,
                )
            except ValueError as e:
                logger.warning(
                    f"Failed to merge {get_column_letter(min_col)}{row}:"
                    f"{get_column_letter(max_col)}{row}: {e}"
                )

    def insert_rows(self, position: int, count: int) -> None:
        """Insert ``count`` blank rows before ``position``.

        Everything at or below ``position`` moves down by ``count`` rows:
        cells, hyperlinks, row heights, merged ranges and anchored images.
        Merged ranges spanning ``position`` grow by ``count`` rows.
        """
        if count <= 0:
            return

        worksheet = self.worksheet
        moving_merges = [
            merged_range
            for merged_range in worksheet.merged_cells.ranges
            if merged_range.max_row >= position
        ]

        # ranges are hashed by their bounds, so take them out of the set while moving
        for merged_range in moving_merges:
            worksheet.merged_cells.remove(merged_range)

        worksheet.insert_rows(position, count)

        for merged_range in moving_merges:
            if merged_range.min_row >= position:
                merged_range.shift(row_shift=count)
            else:
                # spans the insertion point: grow it
                merged_range.expand(down=count)
            worksheet.merged_cells.add(merged_range)

        self._rebase_hyperlinks(position + count)
        self._shift_row_dimensions(position, count)
        self._shift_drawings(position, count)

        logger.debug(
            f"Inserted {count} row(s) at {position} in sheet '{worksheet.title}'"
        )

    def _rebase_hyperlinks(self, min_row: int) -> None:
        # moved cells keep the hyperlink ref of their old coordinate
        for cell in self.worksheet._cells.values():
            if cell.row >= min_row and cell.hyperlink is not None:
                cell.hyperlink.ref = cell.coordinate

    def _shift_row_dimensions(self, position: int, count: int) -> None:
        dimensions = self.worksheet.row_dimensions
        moving = sorted(
            (index for index in list(dimensions.keys()) if index >= position),
            reverse=True,
        )
        for index in moving:
            dimension = dimensions.pop(index)
            dimension.index = index + count
            dimensions[index + count] = dimension

    def _shift_drawings(self, position: int, count: int) -> None:
        drawings = list(getattr(self.worksheet, "_images", [])) + list(
            getattr(self.worksheet, "_charts", [])
        )
        for drawing in drawings:
            anchor = drawing.anchor
            if isinstance(anchor, str):
                col_letter, row = coordinate_from_string(anchor)
                if row >= position:
                    drawing.anchor = f"{col_letter}{row + count}"
            elif isinstance(anchor, (OneCellAnchor, TwoCellAnchor)):
                # anchor markers are zero based
                if anchor._from.row >= position - 1:
                    anchor._from.row += count
                    if isinstance(anchor, TwoCellAnchor):
                        anchor.to.row += count

