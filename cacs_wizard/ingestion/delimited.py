import csv
import io
import re

import pandas as pd

from cacs_wizard.ingestion.exceptions import EmptyDatasetError, ParseFailureError
from cacs_wizard.ingestion.models import CellValue, ParsedTable

TEXT_ENCODINGS = ("utf-8-sig", "cp1252", "latin-1")
CANDIDATE_DELIMITERS = (",", ";", "\t", "|")

_SNIFF_LINES = 10
_INT_RE = re.compile(r"^[-+]?(0|[1-9]\d*)$")
_FLOAT_RE = re.compile(r"^[-+]?(\d+\.\d*|\.\d+|\d+)([eE][-+]?\d+)?$")
_LEADING_ZERO_RE = re.compile(r"^[-+]?0\d")


def decode_text(content: bytes) -> str:
    """Decode file bytes, trying each supported encoding in turn."""
    for encoding in TEXT_ENCODINGS:
        try:
            return content.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise ParseFailureError(f"Could not decode file with any of {list(TEXT_ENCODINGS)}")


def detect_delimiter(text: str) -> str:
    """Pick the delimiter that splits the leading lines most consistently.

    A candidate qualifies when every sampled line splits into at least two
    fields. Consistent field counts beat inconsistent ones, then more fields
    beat fewer. Falls back to a comma.
    """
    lines = [line for line in text.splitlines() if line.strip()][:_SNIFF_LINES]
    if not lines:
        return ","
    sample = "\n".join(lines)

    best = ","
    best_rank: tuple[bool, float] | None = None
    for delimiter in CANDIDATE_DELIMITERS:
        try:
            reader = csv.reader(io.StringIO(sample), delimiter=delimiter)
            counts = [len(fields) for fields in reader]
        except csv.Error:
            continue
        if not counts or min(counts) < 2:
            continue
        rank = (len(set(counts)) == 1, sum(counts) / len(counts))
        if best_rank is None or rank > best_rank:
            best, best_rank = delimiter, rank
    return best


def read_rows(text: str, max_rows: int, delimiter: str | None = None) -> ParsedTable:
    """Parse delimited text into string rows without assuming a header row.

    Raises:
        EmptyDatasetError: if the text holds no rows.
        ParseFailureError: if the text is not a consistent table.
    """
    sep = delimiter or detect_delimiter(text)
    try:
        frame = pd.read_csv(
            io.StringIO(text),
            sep=sep,
            header=None,
            nrows=max_rows,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
        )
    except pd.errors.EmptyDataError as exc:
        raise EmptyDatasetError("No data found in the file") from exc
    except (pd.errors.ParserError, ValueError) as exc:
        raise ParseFailureError(f"Failed to parse delimited text: {exc}") from exc

    rows = [
        ["" if pd.isna(cell) else str(cell) for cell in record]
        for record in frame.itertuples(index=False, name=None)
    ]
    if not rows:
        raise EmptyDatasetError("No data found in the file")
    return ParsedTable(rows=_trim_empty_trailing_columns(rows), delimiter=sep)


def coerce_cell(raw: str) -> CellValue:
    """Infer a scalar type for a cell where the text is unambiguous.

    Blank cells become None, true/false become booleans, and numeric literals
    become int or float. Codes with leading zeros such as ``007`` stay text.
    """
    value = raw.strip()
    if not value:
        return None
    lowered = value.lower()
    if lowered in ("true", "false"):
        return lowered == "true"
    if _INT_RE.match(value):
        return int(value)
    if _FLOAT_RE.match(value) and not _LEADING_ZERO_RE.match(value):
        return float(value)
    return raw


def _trim_empty_trailing_columns(rows: list[list[str]]) -> list[list[str]]:
    width = max(len(row) for row in rows)
    while width > 0 and all(len(row) < width or not row[width - 1].strip() for row in rows):
        width -= 1
    return [row[:width] + [""] * (width - len(row)) for row in rows]
