"""First-row header detection.

A cell looks like a header token when it is a non-empty string that is not
numeric, not a boolean-ish data token, and is either snake_case, camelCase or
an alphabetic phrase. The row is a header row when the share of such cells
exceeds the threshold.
"""

import re
from collections.abc import Sequence

DEFAULT_HEADER_THRESHOLD = 0.5

_BOOLEAN_TOKENS = frozenset({"yes", "no", "true", "false", "male", "female", "m", "f"})
_NUMERIC_RE = re.compile(r"^[-+]?(\d+\.?\d*|\.\d+)([eE][-+]?\d+)?$")
_CAMEL_CASE_RE = re.compile(r"^[a-z]+[A-Z][A-Za-z0-9]*$")
_ALPHA_PHRASE_RE = re.compile(r"^[A-Za-z][A-Za-z ]*$")


def is_numeric_token(value: str) -> bool:
    return bool(_NUMERIC_RE.match(value.strip()))


def looks_like_header(cell: object) -> bool:
    if not isinstance(cell, str):
        return False
    token = cell.strip()
    if not token:
        return False
    if is_numeric_token(token) or token.lower() in _BOOLEAN_TOKENS:
        return False
    if "_" in token or _CAMEL_CASE_RE.match(token):
        return True
    return len(token) > 1 and bool(_ALPHA_PHRASE_RE.match(token))


def header_score(first_row: Sequence[object]) -> float:
    """Fraction of header-like cells in the row (0.0 for an empty row)."""
    if not first_row:
        return 0.0
    hits = sum(1 for cell in first_row if looks_like_header(cell))
    return hits / len(first_row)


def detect_headers(
    first_row: Sequence[object],
    threshold: float = DEFAULT_HEADER_THRESHOLD,
    override: bool | None = None,
) -> bool:
    """Decide whether the first row is a header row.

    Args:
        first_row: Cells of the first parsed row.
        threshold: Header-like fraction that must be exceeded.
        override: Explicit user choice; when set it wins over the heuristic.
    """
    if override is not None:
        return override
    return header_score(first_row) > threshold
