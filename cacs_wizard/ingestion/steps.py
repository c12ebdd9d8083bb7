from cacs_wizard.ingestion.delimited import coerce_cell, decode_text, read_rows
from cacs_wizard.ingestion.exceptions import (
    EmptyDatasetError,
    FileTooLargeError,
    NoColumnsFoundError,
    SheetNotFoundError,
    SheetSelectionRequiredError,
    UnsupportedFormatError,
)
from cacs_wizard.ingestion.header_detection import DEFAULT_HEADER_THRESHOLD, detect_headers
from cacs_wizard.ingestion.pipeline import IngestionContext, PipelineStep
from cacs_wizard.ingestion.spreadsheet import (
    SPREADSHEET_EXTENSIONS,
    list_sheet_names,
    sheet_to_csv,
)
from cacs_wizard.logging.logger import Log

ACCEPTED_EXTENSIONS = (".csv", ".xlsx", ".xls")


def _is_spreadsheet(context: IngestionContext) -> bool:
    return context.file.extension in SPREADSHEET_EXTENSIONS


class ValidateFileStep(PipelineStep):
    def __init__(self, max_bytes: int) -> None:
        self._max_bytes = max_bytes

    def run(self, context: IngestionContext) -> IngestionContext:
        extension = context.file.extension
        if extension not in ACCEPTED_EXTENSIONS:
            raise UnsupportedFormatError(
                f"Unsupported file format '{extension or context.file.name}'. "
                f"Please upload a CSV or Excel file ({', '.join(ACCEPTED_EXTENSIONS)})"
            )
        if context.file.size > self._max_bytes:
            limit_mb = self._max_bytes / (1024 * 1024)
            raise FileTooLargeError(f"File size must be less than {limit_mb:g}MB")
        return context


class SelectSheetStep(PipelineStep):
    """Resolves which workbook sheet to read; no-op for delimited text."""

    def run(self, context: IngestionContext) -> IngestionContext:
        if not _is_spreadsheet(context):
            return context
        sheet_names = list_sheet_names(context.file.content)
        if not sheet_names:
            raise EmptyDatasetError("Workbook contains no sheets")
        if context.sheet_name is None:
            if len(sheet_names) > 1:
                raise SheetSelectionRequiredError(sheet_names)
            context.sheet_name = sheet_names[0]
        elif context.sheet_name not in sheet_names:
            raise SheetNotFoundError(
                f"Sheet '{context.sheet_name}' not found. Available sheets: {sheet_names}"
            )
        context.sheet_names = sheet_names if len(sheet_names) > 1 else None
        return context


class ExtractSheetStep(PipelineStep):
    def run(self, context: IngestionContext) -> IngestionContext:
        if not _is_spreadsheet(context):
            return context
        if context.sheet_name is None:
            raise ValueError("IngestionContext.sheet_name must be set before sheet extraction")
        context.text = sheet_to_csv(context.file.content, context.sheet_name)
        context.delimiter = ","
        Log.debug(f"Converted sheet '{context.sheet_name}' to {len(context.text)} chars of CSV")
        return context


class DecodeTextStep(PipelineStep):
    def run(self, context: IngestionContext) -> IngestionContext:
        if _is_spreadsheet(context):
            return context
        context.text = decode_text(context.file.content)
        return context


class ParseRowsStep(PipelineStep):
    def __init__(self, max_rows: int) -> None:
        self._max_rows = max_rows

    def run(self, context: IngestionContext) -> IngestionContext:
        table = read_rows(context.text, self._max_rows, delimiter=context.delimiter)
        if table.width == 0:
            raise NoColumnsFoundError("No columns found in the file")
        context.rows = table.rows
        context.delimiter = table.delimiter
        Log.debug(
            f"Parsed {len(table.rows)} rows from '{context.file.name}'",
            delimiter=table.delimiter,
        )
        return context


class DetectHeaderStep(PipelineStep):
    def __init__(self, threshold: float = DEFAULT_HEADER_THRESHOLD) -> None:
        self._threshold = threshold

    def run(self, context: IngestionContext) -> IngestionContext:
        context.has_headers = detect_headers(
            context.rows[0],
            threshold=self._threshold,
            override=context.has_headers_override,
        )
        return context


class ResolveColumnsStep(PipelineStep):
    def run(self, context: IngestionContext) -> IngestionContext:
        first_row = context.rows[0]
        if context.has_headers:
            context.columns = _header_names(first_row)
        else:
            context.columns = [f"Column {index}" for index in range(1, len(first_row) + 1)]
        if not context.columns:
            raise NoColumnsFoundError("No columns found in the file")
        return context


class BuildPreviewStep(PipelineStep):
    def __init__(self, preview_rows: int) -> None:
        self._preview_rows = preview_rows

    def run(self, context: IngestionContext) -> IngestionContext:
        data_rows = context.rows[1:] if context.has_headers else context.rows
        data_rows = data_rows[: self._preview_rows]
        if not data_rows:
            raise EmptyDatasetError("No data rows found below the header row")
        context.preview = [
            {column: coerce_cell(cell) for column, cell in zip(context.columns, row)}
            for row in data_rows
        ]
        context.first_row_data = list(context.rows[0])
        return context


def _header_names(first_row: list[str]) -> list[str]:
    names: list[str] = []
    seen: dict[str, int] = {}
    for index, cell in enumerate(first_row, start=1):
        name = cell.strip() or f"Column {index}"
        if name in seen:
            seen[name] += 1
            name = f"{name}_{seen[name]}"
        else:
            seen[name] = 1
        names.append(name)
    return names
