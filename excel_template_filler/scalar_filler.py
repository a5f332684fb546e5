"""Replacement of cells that consist of a single ``${key}`` placeholder."""

import logging
from typing import Any, Mapping, Optional

from openpyxl.cell.cell import Cell

from .fill_log import FillLog
from .image_embedder import ImageEmbedder, render_image_result
from .placeholders import exact_placeholder_key, is_image_url, resolve_scalar
from .sheet_grid import SheetGrid

logger = logging.getLogger(__name__)


class ScalarFiller:
    """Fills plain-text cells whose whole content is ``${key}``.

    Cells that only contain a placeholder among other text are left to
    :class:`~excel_template_filler.rich_text_filler.RichTextFiller`.
    """

    def __init__(
        self,
        image_embedder: Optional[ImageEmbedder] = None,
        fill_log: Optional[FillLog] = None,
    ) -> None:
        self.image_embedder = image_embedder or ImageEmbedder()
        self.fill_log = fill_log or FillLog()
        self.filled_count = 0
        self.images_embedded = 0
        self.images_failed = 0

    def fill_cell(self, grid: SheetGrid, cell: Cell, data: Mapping[str, Any]) -> bool:
        """Fill ``cell`` if it is an exact placeholder.

        Returns True when the cell was an exact placeholder, resolved or not.
        """
        key = exact_placeholder_key(cell.value)
        if key is None:
            return False

        original_value = cell.value
        value = resolve_scalar(data, key)
        if value is None:
            self.fill_log.warning(
                f"No scalar value for placeholder '{original_value}'", cell.coordinate
            )
            return True

        if is_image_url(value):
            result = self.image_embedder.embed(
                grid.worksheet, cell.row, cell.column, value
            )
            render_image_result(cell, result)
            if result.ok:
                self.images_embedded += 1
            else:
                self.images_failed += 1
            self.fill_log.success(
                f"Image placeholder {original_value} at {cell.coordinate} "
                f"({'embedded' if result.ok else 'fallback link'})",
                cell.coordinate,
                original_value,
                value,
            )
            return True

        cell.value = value
        self.filled_count += 1
        self.fill_log.success(
            f"Filled {cell.coordinate} with {key}", cell.coordinate, original_value, value
        )
        return True
