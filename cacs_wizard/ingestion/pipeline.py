from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from cacs_wizard.ingestion.models import CellValue, RawFile


@dataclass(slots=True)
class IngestionContext:
    file: RawFile
    url: str = ""
    sheet_name: str | None = None
    has_headers_override: bool | None = None
    sheet_names: list[str] | None = None
    text: str = ""
    delimiter: str | None = None
    rows: list[list[str]] = field(default_factory=list)
    has_headers: bool = False
    columns: list[str] = field(default_factory=list)
    preview: list[dict[str, CellValue]] = field(default_factory=list)
    first_row_data: list[str] = field(default_factory=list)


class PipelineStep(ABC):
    @abstractmethod
    def run(self, context: IngestionContext) -> IngestionContext:
        raise NotImplementedError
