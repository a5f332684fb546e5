"""Excel Template Filler - fill xlsx templates with JSON data."""

from .image_embedder import ImageEmbedder, ImageSettings
from .template_filler import (
    ExcelTemplateFiller,
    FillerSettings,
    FillReport,
    export_to_excel,
)
from .utils.exceptions import (
    ExcelProcessingError,
    TemplateFillerError,
    TemplateNotFoundError,
    ValidationError,
    WorksheetNotFoundError,
)

__version__ = "0.1.0"

__all__ = [
    "ExcelTemplateFiller",
    "FillerSettings",
    "FillReport",
    "ImageEmbedder",
    "ImageSettings",
    "export_to_excel",
    "TemplateFillerError",
    "TemplateNotFoundError",
    "WorksheetNotFoundError",
    "ExcelProcessingError",
    "ValidationError",
]
