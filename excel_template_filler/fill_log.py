"""Record of every action taken while filling a template."""

import logging
from datetime import datetime
from typing import Any, Dict, List

from openpyxl.workbook.workbook import Workbook

logger = logging.getLogger(__name__)

FILL_LOG_SHEET = "fill_log"
FILL_LOG_HEADERS = [
    "Timestamp",
    "Operation",
    "Cell/Range",
    "Status",
    "Details",
    "Original Value",
    "New Value",
]


class FillLog:
    """Collects fill actions and mirrors them to the module logger."""

    def __init__(self) -> None:
        self.entries: List[Dict[str, Any]] = []

    def info(self, message: str) -> None:
        self.entries.append(
            {
                "timestamp": datetime.now().isoformat(),
                "operation": "INFO",
                "status": "INFO",
                "details": message,
            }
        )
        logger.info(message)

    def success(
        self,
        message: str,
        cell: str = "",
        original_value: Any = "",
        new_value: Any = "",
    ) -> None:
        self.entries.append(
            {
                "timestamp": datetime.now().isoformat(),
                "operation": "FILL",
                "cell": cell,
                "status": "SUCCESS",
                "details": message,
                "original_value": str(original_value) if original_value is not None else "",
                "new_value": str(new_value) if new_value is not None else "",
            }
        )
        logger.debug(message)

    def warning(self, message: str, cell: str = "") -> None:
        self.entries.append(
            {
                "timestamp": datetime.now().isoformat(),
                "operation": "WARNING",
                "cell": cell,
                "status": "WARNING",
                "details": message,
            }
        )
        logger.warning(message)

    def error(self, message: str, cell: str = "") -> None:
        self.entries.append(
            {
                "timestamp": datetime.now().isoformat(),
                "operation": "ERROR",
                "cell": cell,
                "status": "ERROR",
                "details": message,
            }
        )
        logger.error(message)

    def count(self, status: str) -> int:
        return sum(1 for entry in self.entries if entry["status"] == status)

    def write_sheet(self, workbook: Workbook) -> None:
        """Append a diagnostic sheet listing every entry."""
        if FILL_LOG_SHEET in workbook.sheetnames:
            del workbook[FILL_LOG_SHEET]

        log_sheet = workbook.create_sheet(FILL_LOG_SHEET)

        for col_idx, header in enumerate(FILL_LOG_HEADERS, 1):
            log_sheet.cell(row=1, column=col_idx, value=header)

        for row_idx, entry in enumerate(self.entries, 2):
            log_sheet.cell(row=row_idx, column=1, value=entry["timestamp"])
            log_sheet.cell(row=row_idx, column=2, value=entry["operation"])
            log_sheet.cell(row=row_idx, column=3, value=entry.get("cell", ""))
            log_sheet.cell(row=row_idx, column=4, value=entry["status"])
            log_sheet.cell(row=row_idx, column=5, value=entry["details"])
            log_sheet.cell(row=row_idx, column=6, value=entry.get("original_value", ""))
            log_sheet.cell(row=row_idx, column=7, value=entry.get("new_value", ""))

        logger.info(f"Created {FILL_LOG_SHEET} sheet with {len(self.entries)} entries")
