"""Custom exceptions for Excel Template Filler."""

from typing import Optional


class TemplateFillerError(Exception):
    """Base exception for Excel Template Filler operations."""

    def __init__(self, message: str, error_code: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code


class FileProcessingError(TemplateFillerError):
    """Exception raised for file processing errors."""

    pass


class TemplateNotFoundError(FileProcessingError):
    """Exception raised when the template file does not exist."""

    def __init__(self, template_path: str) -> None:
        super().__init__(
            f"Template file not found: {template_path}",
            error_code="TEMPLATE_NOT_FOUND",
        )
        self.template_path = template_path


class ExcelProcessingError(FileProcessingError):
    """Exception raised for Excel file processing errors."""

    pass


class WorksheetNotFoundError(ExcelProcessingError):
    """Exception raised when the requested worksheet is missing from the template."""

    def __init__(self, message: str = "Worksheet not found in template") -> None:
        super().__init__(message, error_code="WORKSHEET_NOT_FOUND")


class ConfigurationError(TemplateFillerError):
    """Exception raised for configuration-related errors."""

    pass


class ValidationError(TemplateFillerError):
    """Exception raised for validation errors."""

    pass


class APIError(TemplateFillerError):
    """Exception raised for API-related errors."""

    pass


class AuthenticationError(APIError):
    """Exception raised for authentication errors."""

    pass
