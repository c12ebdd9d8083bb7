from dataclasses import dataclass
from pathlib import PurePath

CellValue = str | int | float | bool | None


@dataclass(frozen=True)
class RawFile:
    """A user-selected file before it is uploaded or parsed."""

    name: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def extension(self) -> str:
        return PurePath(self.name).suffix.lower()


@dataclass(frozen=True)
class UploadedDataset:
    """Canonical tabular preview of an uploaded file."""

    name: str
    url: str
    columns: list[str]
    has_headers: bool
    preview: list[dict[str, CellValue]]
    first_row_data: list[str]
    size: int
    sheet_names: list[str] | None = None


@dataclass(frozen=True)
class ParsedTable:
    """Raw string rows read from delimited text, before header resolution."""

    rows: list[list[str]]
    delimiter: str = ","

    @property
    def width(self) -> int:
        return max((len(row) for row in self.rows), default=0)
