from collections.abc import Sequence

from cacs_wizard.config.settings import Settings
from cacs_wizard.ingestion.exceptions import IngestionError
from cacs_wizard.ingestion.models import RawFile, UploadedDataset
from cacs_wizard.ingestion.pipeline import IngestionContext, PipelineStep
from cacs_wizard.ingestion.spreadsheet import SPREADSHEET_EXTENSIONS, list_sheet_names
from cacs_wizard.ingestion.steps import (
    BuildPreviewStep,
    DecodeTextStep,
    DetectHeaderStep,
    ExtractSheetStep,
    ParseRowsStep,
    ResolveColumnsStep,
    SelectSheetStep,
    ValidateFileStep,
)
from cacs_wizard.logging.logger import Log


class IngestionPipeline:
    """Turns raw uploaded bytes into an UploadedDataset.

    Pipeline: validate -> select sheet -> extract sheet -> decode -> parse rows
    -> detect header -> resolve columns -> build preview.

    Every run works on a fresh context and only returns a dataset when all
    steps succeed, so a failure never leaves a half-built dataset behind.
    """

    def __init__(
        self,
        steps: Sequence[PipelineStep],
        check_steps: Sequence[PipelineStep] = (),
    ) -> None:
        self._steps = list(steps)
        self._check_steps = list(check_steps)

    def list_sheets(self, file: RawFile) -> list[str]:
        """Sheet names of a workbook; delimited files have none."""
        if file.extension not in SPREADSHEET_EXTENSIONS:
            return []
        return list_sheet_names(file.content)

    def check(self, file: RawFile, sheet_name: str | None = None) -> None:
        """Run only the pre-upload checks (format, size, sheet choice)."""
        context = IngestionContext(file=file, sheet_name=sheet_name)
        for step in self._check_steps:
            context = step.run(context)

    def run(
        self,
        file: RawFile,
        url: str = "",
        sheet_name: str | None = None,
        has_headers: bool | None = None,
    ) -> UploadedDataset:
        """Parse a file into a dataset preview.

        Raises:
            IngestionError: subclass describing the failing stage.
        """
        context = IngestionContext(
            file=file,
            url=url,
            sheet_name=sheet_name,
            has_headers_override=has_headers,
        )
        for step in self._steps:
            try:
                context = step.run(context)
            except IngestionError as exc:
                Log.error(f"Ingestion of '{file.name}' failed: {exc}", step=type(step).__name__)
                raise

        Log.info(
            f"Ingested '{file.name}'",
            columns=len(context.columns),
            preview_rows=len(context.preview),
            has_headers=context.has_headers,
        )
        return UploadedDataset(
            name=file.name,
            url=context.url,
            columns=context.columns,
            has_headers=context.has_headers,
            preview=context.preview,
            first_row_data=context.first_row_data,
            size=file.size,
            sheet_names=context.sheet_names,
        )


def build_ingestion_pipeline(settings: Settings) -> IngestionPipeline:
    """Build an IngestionPipeline with the configured limits."""
    validate = ValidateFileStep(max_bytes=settings.max_upload_bytes)
    select_sheet = SelectSheetStep()
    return IngestionPipeline(
        steps=[
            validate,
            select_sheet,
            ExtractSheetStep(),
            DecodeTextStep(),
            ParseRowsStep(max_rows=settings.preview_rows + 1),
            DetectHeaderStep(threshold=settings.header_detection_threshold),
            ResolveColumnsStep(),
            BuildPreviewStep(preview_rows=settings.preview_rows),
        ],
        check_steps=[validate, select_sheet],
    )
