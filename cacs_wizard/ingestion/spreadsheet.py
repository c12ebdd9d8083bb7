import io

import pandas as pd

from cacs_wizard.ingestion.exceptions import ParseFailureError, SheetNotFoundError

SPREADSHEET_EXTENSIONS = frozenset({".xlsx", ".xls"})


def list_sheet_names(content: bytes) -> list[str]:
    """Return workbook sheet names in workbook order.

    Raises:
        ParseFailureError: if the bytes are not a readable workbook.
    """
    try:
        with pd.ExcelFile(io.BytesIO(content)) as workbook:
            return [str(name) for name in workbook.sheet_names]
    except Exception as exc:
        raise ParseFailureError(f"Failed to read workbook: {exc}") from exc


def sheet_to_csv(content: bytes, sheet_name: str) -> str:
    """Serialize one sheet to comma-separated text, one line per row.

    Quoting follows RFC 4180 (pandas ``to_csv`` defaults). Rows with no values
    are dropped; an empty sheet yields an empty string.

    Raises:
        SheetNotFoundError: if the workbook has no sheet with that name.
        ParseFailureError: if the workbook cannot be read.
    """
    sheet_names = list_sheet_names(content)
    if sheet_name not in sheet_names:
        raise SheetNotFoundError(
            f"Sheet '{sheet_name}' not found. Available sheets: {sheet_names}"
        )
    try:
        frame = pd.read_excel(
            io.BytesIO(content),
            sheet_name=sheet_name,
            header=None,
            dtype=object,
        )
    except Exception as exc:
        raise ParseFailureError(f"Failed to read sheet '{sheet_name}': {exc}") from exc

    frame = frame.dropna(how="all")
    if frame.empty:
        return ""
    return frame.to_csv(index=False, header=False, lineterminator="\n")
