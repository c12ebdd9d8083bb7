class IngestionError(Exception):
    """Base exception for all ingestion-related errors."""


class UnsupportedFormatError(IngestionError):
    """Raised when the uploaded file extension is not .csv, .xlsx or .xls."""


class FileTooLargeError(IngestionError):
    """Raised when the uploaded file exceeds the configured size limit."""


class EmptyDatasetError(IngestionError):
    """Raised when no data rows could be parsed from the file."""


class NoColumnsFoundError(IngestionError):
    """Raised when the parsed table resolves to zero columns."""


class SheetNotFoundError(IngestionError):
    """Raised when the selected sheet name is absent from the workbook."""


class SheetSelectionRequiredError(IngestionError):
    """Raised when a multi-sheet workbook is ingested without a sheet choice."""

    def __init__(self, sheet_names: list[str]) -> None:
        super().__init__(
            f"Workbook has {len(sheet_names)} sheets, select one of: {sheet_names}"
        )
        self.sheet_names = sheet_names


class ParseFailureError(IngestionError):
    """Raised when the file content cannot be read as a table."""
