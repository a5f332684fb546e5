"""Excel template filling: load a template, fill it with data, return xlsx bytes."""

import io
import logging
import os
import zipfile
from dataclasses import asdict, dataclass, field
from typing import Any, BinaryIO, Dict, Mapping, Optional, Union

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.workbook.workbook import Workbook
from openpyxl.worksheet.worksheet import Worksheet

from .array_expander import ArrayTemplateExpander
from .fill_log import FillLog
from .image_embedder import ImageEmbedder, ImageSettings
from .placeholders import list_template_placeholders
from .rich_text_filler import RichTextFiller
from .scalar_filler import ScalarFiller
from .sheet_grid import SheetGrid
from .utils.exceptions import (
    ExcelProcessingError,
    TemplateNotFoundError,
    WorksheetNotFoundError,
)

logger = logging.getLogger(__name__)

TemplateSource = Union[str, os.PathLike, bytes, BinaryIO]
WorksheetSelector = Optional[Union[str, int]]


@dataclass(frozen=True)
class FillerSettings:
    """Settings for one filler instance.

    ``worksheet`` is a sheet name, a 1-based sheet position, or None for the
    first sheet.
    """

    worksheet: WorksheetSelector = None
    include_fill_log: bool = False
    image: ImageSettings = field(default_factory=ImageSettings)

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "FillerSettings":
        image_config = dict(config.get("image", {}))
        return cls(
            worksheet=config.get("worksheet") or None,
            include_fill_log=bool(config.get("include_fill_log", False)),
            image=ImageSettings(**image_config),
        )


@dataclass
class FillReport:
    """Summary of one fill run."""

    worksheet: str
    scalars_filled: int = 0
    rich_text_cells: int = 0
    arrays_expanded: int = 0
    rows_inserted: int = 0
    images_embedded: int = 0
    images_failed: int = 0
    warnings: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class ExcelTemplateFiller:
    """Fills ``${key}`` and ``${array:field}`` placeholders of an xlsx template."""

    def __init__(
        self,
        settings: Optional[FillerSettings] = None,
        image_embedder: Optional[ImageEmbedder] = None,
    ) -> None:
        self.settings = settings or FillerSettings()
        self.image_embedder = image_embedder or ImageEmbedder(self.settings.image)
        self.fill_log = FillLog()
        self.last_report: Optional[FillReport] = None

    def export_to_excel(
        self,
        data: Mapping[str, Any],
        template: TemplateSource,
        worksheet: WorksheetSelector = None,
        include_fill_log: Optional[bool] = None,
    ) -> bytes:
        """Fill ``template`` with ``data`` and return the resulting xlsx bytes.

        Args:
            data: Scalar fields and arrays of element mappings
            template: Path to the template, its raw bytes, or a binary file object
            worksheet: Sheet name or 1-based position, defaults to the settings
            include_fill_log: Whether to append the diagnostic fill_log sheet

        Returns:
            The filled workbook serialized as xlsx
        """
        workbook = self.load_template(template)
        try:
            self.fill_workbook(workbook, data, worksheet)

            if include_fill_log is None:
                include_fill_log = self.settings.include_fill_log
            if include_fill_log:
                self.fill_log.write_sheet(workbook)

            return self.save_to_bytes(workbook)
        finally:
            workbook.close()

    def load_template(self, template: TemplateSource) -> Workbook:
        """Load a template workbook keeping rich text runs intact."""
        if isinstance(template, (str, os.PathLike)):
            template_path = os.path.abspath(os.fspath(template))
            if not os.path.exists(template_path):
                raise TemplateNotFoundError(template_path)
            source: Any = template_path
        elif isinstance(template, (bytes, bytearray)):
            source = io.BytesIO(template)
        else:
            source = template

        try:
            workbook = load_workbook(source, rich_text=True)
        except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as e:
            raise ExcelProcessingError(f"Failed to load template workbook: {e}")

        logger.info(f"Loaded template with sheets: {workbook.sheetnames}")
        return workbook

    def resolve_worksheet(
        self, workbook: Workbook, worksheet: WorksheetSelector = None
    ) -> Worksheet:
        """Pick the worksheet to fill, raising if it does not exist."""
        if worksheet is None:
            worksheet = self.settings.worksheet

        if worksheet is None:
            if not workbook.worksheets:
                raise WorksheetNotFoundError()
            return workbook.worksheets[0]

        if isinstance(worksheet, int):
            if worksheet < 1 or worksheet > len(workbook.worksheets):
                raise WorksheetNotFoundError(
                    f"Worksheet {worksheet} not found in template "
                    f"({len(workbook.worksheets)} sheet(s))"
                )
            return workbook.worksheets[worksheet - 1]

        if worksheet not in workbook.sheetnames:
            raise WorksheetNotFoundError(f"Worksheet '{worksheet}' not found in template")
        return workbook[worksheet]

    def fill_workbook(
        self,
        workbook: Workbook,
        data: Mapping[str, Any],
        worksheet: WorksheetSelector = None,
    ) -> FillReport:
        """Fill one worksheet of an already loaded workbook in place."""
        sheet = self.resolve_worksheet(workbook, worksheet)
        return self.fill_worksheet(sheet, data)

    def fill_worksheet(self, worksheet: Worksheet, data: Mapping[str, Any]) -> FillReport:
        """Run scalar and rich-text filling, then array expansion, on a worksheet."""
        self.fill_log = FillLog()
        self.fill_log.info(f"Starting template fill of sheet '{worksheet.title}'")

        grid = SheetGrid(worksheet)
        report = FillReport(worksheet=worksheet.title)

        scalar_filler = ScalarFiller(self.image_embedder, self.fill_log)
        rich_text_filler = RichTextFiller(self.image_embedder, self.fill_log)

        for cell in grid.iter_cells():
            if scalar_filler.fill_cell(grid, cell, data):
                continue
            rich_text_filler.fill_cell(grid, cell, data)

        expander = ArrayTemplateExpander(self.image_embedder, self.fill_log)
        expansions = expander.expand_all(grid, data)

        report.scalars_filled = scalar_filler.filled_count
        report.rich_text_cells = rich_text_filler.filled_count
        report.arrays_expanded = len(expansions)
        report.rows_inserted = sum(e.inserted_rows for e in expansions)
        report.images_embedded = (
            scalar_filler.images_embedded
            + rich_text_filler.images_embedded
            + sum(e.images_embedded for e in expansions)
        )
        report.images_failed = (
            scalar_filler.images_failed
            + rich_text_filler.images_failed
            + sum(e.images_failed for e in expansions)
        )
        report.warnings = self.fill_log.count("WARNING")

        self.fill_log.info(f"Template fill completed: {report.to_dict()}")
        self.last_report = report
        return report

    def inspect_template(self, template: TemplateSource) -> Dict[str, Any]:
        """List the placeholders of every worksheet of a template."""
        workbook = self.load_template(template)
        try:
            return {
                "sheets": {
                    sheet.title: list_template_placeholders(sheet)
                    for sheet in workbook.worksheets
                }
            }
        finally:
            workbook.close()

    @staticmethod
    def save_to_bytes(workbook: Workbook) -> bytes:
        buffer = io.BytesIO()
        try:
            workbook.save(buffer)
        except (OSError, ValueError, TypeError) as e:
            raise ExcelProcessingError(f"Failed to write workbook: {e}")
        return buffer.getvalue()


def export_to_excel(
    data: Mapping[str, Any],
    template: TemplateSource,
    worksheet: WorksheetSelector = None,
) -> bytes:
    """Shortcut for ``ExcelTemplateFiller().export_to_excel``."""
    return ExcelTemplateFiller().export_to_excel(data, template, worksheet)
