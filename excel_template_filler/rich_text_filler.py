"""Placeholder replacement inside formatted (multi-run) cell text.

Substituted text keeps the font of the run it replaces, except that bold is
switched off. Everything around the placeholder keeps its formatting.
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Sequence

from openpyxl.cell.cell import Cell
from openpyxl.styles import Font

from .cell_values import (
    PlainText,
    RichText,
    Run,
    inline_font_from_font,
    text_of,
    without_bold,
)
from .fill_log import FillLog
from .image_embedder import ImageEmbedder, render_image_result
from .placeholders import find_placeholders, is_image_url, resolve_scalar
from .sheet_grid import SheetGrid

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Replacement:
    """A placeholder span of the original text and its substituted value."""

    start: int
    end: int
    key: str
    value: str


def substitute_plain_text(
    text: str, replacements: Sequence[Replacement], cell_font: Optional[Font]
) -> List[Run]:
    """Turn a plain string into runs with the replacements spliced in."""
    base_font = inline_font_from_font(cell_font)
    runs: List[Run] = []
    position = 0

    for replacement in replacements:
        if replacement.start > position:
            runs.append(Run(text[position : replacement.start], base_font))
        runs.append(Run(replacement.value, without_bold(base_font)))
        position = replacement.end

    if position < len(text):
        runs.append(Run(text[position:], base_font))

    return runs


def substitute_rich_runs(
    runs: Sequence[Run], replacements: Sequence[Replacement], cell_font: Optional[Font]
) -> List[Run]:
    """Split existing runs around the replacements they fully contain.

    A placeholder that spans more than one run is left as literal text.
    """
    new_runs: List[Run] = []
    run_start = 0

    for run in runs:
        run_end = run_start + len(run.text)

        contained = [
            r for r in replacements if r.start >= run_start and r.end <= run_end
        ]
        if not contained:
            new_runs.append(run)
            run_start = run_end
            continue

        substituted_font = without_bold(
            run.font if run.font is not None else inline_font_from_font(cell_font)
        )
        remaining = run.text
        cursor = run_start

        for replacement in contained:
            relative_start = replacement.start - cursor
            relative_end = replacement.end - cursor
            if relative_start > 0:
                new_runs.append(Run(remaining[:relative_start], run.font))
            new_runs.append(Run(replacement.value, substituted_font))
            remaining = remaining[relative_end:]
            cursor = replacement.end

        if remaining:
            new_runs.append(Run(remaining, run.font))

        run_start = run_end

    return new_runs


class RichTextFiller:
    """Fills every ``${key}`` embedded in a cell's text."""

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

    def collect_replacements(
        self, text: str, data: Mapping[str, Any]
    ) -> List[Replacement]:
        replacements = []
        for match in find_placeholders(text):
            value = resolve_scalar(data, match.key)
            if value is None:
                continue
            replacements.append(
                Replacement(start=match.start, end=match.end, key=match.key, value=value)
            )
        return replacements

    def fill_cell(self, grid: SheetGrid, cell: Cell, data: Mapping[str, Any]) -> bool:
        """Substitute placeholders in ``cell``. Returns True if the cell changed."""
        cell_value = grid.get_value(cell.row, cell.column)
        text = text_of(cell_value)
        if not text:
            return False

        replacements = self.collect_replacements(text, data)
        if not replacements:
            if find_placeholders(text):
                self.fill_log.warning(
                    f"Unresolved placeholders left in {cell.coordinate}: {text}",
                    cell.coordinate,
                )
            return False

        # An image replaces the whole cell, so the first image link wins
        for replacement in replacements:
            if is_image_url(replacement.value):
                self._embed_image(grid, cell, replacement, text)
                return True

        if isinstance(cell_value, PlainText):
            runs = substitute_plain_text(text, replacements, cell.font)
        elif isinstance(cell_value, RichText):
            runs = substitute_rich_runs(cell_value.runs, replacements, cell.font)
        else:
            return False

        new_value = RichText(runs=tuple(runs))
        grid.set_value(cell.row, cell.column, new_value)
        self.filled_count += 1
        self.fill_log.success(
            f"Filled {len(replacements)} placeholder(s) in {cell.coordinate}",
            cell.coordinate,
            text,
            new_value.text,
        )
        return True

    def _embed_image(
        self, grid: SheetGrid, cell: Cell, replacement: Replacement, text: str
    ) -> None:
        result = self.image_embedder.embed(
            grid.worksheet, cell.row, cell.column, replacement.value
        )
        render_image_result(cell, result)
        if result.ok:
            self.images_embedded += 1
        else:
            self.images_failed += 1
        self.fill_log.success(
            f"Image placeholder ${{{replacement.key}}} at {cell.coordinate} "
            f"({'embedded' if result.ok else 'fallback link'})",
            cell.coordinate,
            text,
            replacement.value,
        )
