import asyncio
from dataclasses import dataclass
from typing import Any, Literal

from cacs_wizard.analysis.cache import AnalysisCache
from cacs_wizard.analysis.client_base import BaseAnalysisClient
from cacs_wizard.analysis.exceptions import AnalysisError
from cacs_wizard.analysis.http_client import HttpAnalysisClient
from cacs_wizard.analysis.models import THRESHOLD_FIELDS, AnalysisResponse, FieldError
from cacs_wizard.analysis.request_builder import AnalysisRequest, build_analysis_request
from cacs_wizard.analysis.thresholds import (
    Band,
    ThresholdError,
    classification_shares,
    threshold_bands,
)
from cacs_wizard.config.settings import Settings
from cacs_wizard.ethnicity.models import EthnicityTarget
from cacs_wizard.ingestion.exceptions import IngestionError, SheetSelectionRequiredError
from cacs_wizard.ingestion.ingestor import IngestionPipeline, build_ingestion_pipeline
from cacs_wizard.ingestion.models import RawFile, UploadedDataset
from cacs_wizard.logging.logger import Log
from cacs_wizard.mapping.resolver import missing_required_fields
from cacs_wizard.upload.base import BaseFileUploader
from cacs_wizard.upload.exceptions import UploadError
from cacs_wizard.upload.http_uploader import HttpFileUploader
from cacs_wizard.wizard import state as wizard_state
from cacs_wizard.wizard.controller import StepController
from cacs_wizard.wizard.state import WizardState
from cacs_wizard.wizard.steps import Step

NotificationLevel = Literal["info", "success", "warning", "error"]

UPLOAD_PROGRESS_STEP = 10
UPLOAD_PROGRESS_CEILING = 90


@dataclass(frozen=True)
class Notification:
    level: NotificationLevel
    message: str


@dataclass(frozen=True)
class _UploadSource:
    file: RawFile
    url: str
    sheet_name: str | None


class WizardSession:
    """Drives one user's pass through the wizard.

    Flow: start -> upload -> map columns -> map ethnicities (skipped without an
    ethnicity column) -> settings -> thresholds -> analysis.

    The session is the single writer of WizardState. User-facing failures of
    upload and parsing become notifications and never modify state; analysis
    failures propagate as AnalysisError for AnalysisBoundary to handle.
    """

    def __init__(
        self,
        pipeline: IngestionPipeline,
        uploader: BaseFileUploader,
        analysis_client: BaseAnalysisClient,
        cache: AnalysisCache,
        *,
        ethnicity_default: EthnicityTarget | None = None,
        progress_interval_seconds: float = 0.2,
    ) -> None:
        self._pipeline = pipeline
        self._uploader = uploader
        self._analysis_client = analysis_client
        self._cache = cache
        self._progress_interval_seconds = progress_interval_seconds

        self._state = WizardState(ethnicity_default=ethnicity_default or EthnicityTarget())
        self._controller = StepController(
            skip_ethnicity=lambda: not wizard_state.has_ethnicity_column(self._state)
        )
        self._notifications: list[Notification] = []
        self._upload_progress = 0
        self._upload_sequence = 0
        self._source: _UploadSource | None = None
        self._sheet_choices: list[str] = []
        self._analysis_key: str | None = None
        self._result: AnalysisResponse | None = None

    @property
    def state(self) -> WizardState:
        return self._state

    @property
    def controller(self) -> StepController:
        return self._controller

    @property
    def current_step(self) -> Step:
        return self._controller.current

    @property
    def upload_progress(self) -> int:
        return self._upload_progress

    @property
    def sheet_choices(self) -> list[str]:
        """Sheets offered after a multi-sheet workbook was uploaded without a choice."""
        return list(self._sheet_choices)

    @property
    def result(self) -> AnalysisResponse | None:
        return self._result

    @property
    def threshold_bands(self) -> list[Band]:
        return threshold_bands(self._state.settings.percentile_thresholds)

    @property
    def classification_shares(self) -> dict[str, int]:
        return classification_shares(self._state.settings.percentile_thresholds)

    def notifications(self) -> list[Notification]:
        return list(self._notifications)

    def drain_notifications(self) -> list[Notification]:
        drained, self._notifications = self._notifications, []
        return drained

    def start(self) -> Step:
        return self._controller.start()

    def list_sheets(self, file: RawFile) -> list[str]:
        return self._pipeline.list_sheets(file)

    async def upload(
        self,
        file: RawFile,
        sheet_name: str | None = None,
        has_headers: bool | None = None,
    ) -> UploadedDataset | None:
        """Check, upload and parse a file, then commit it as the session dataset.

        Returns None when the upload failed or was superseded by a newer one.
        """
        self._upload_sequence += 1
        sequence = self._upload_sequence
        self._upload_progress = 0

        try:
            self._pipeline.check(file, sheet_name)
        except SheetSelectionRequiredError as exc:
            self._sheet_choices = exc.sheet_names
            self._notify("info", f"Select a sheet to import from '{file.name}'")
            return None
        except IngestionError as exc:
            self._fail_upload(file, str(exc))
            return None

        self._sheet_choices = []
        Log.info(f"Uploading '{file.name}'", size_bytes=file.size, sequence=sequence)
        ticker = asyncio.ensure_future(self._tick_upload_progress(sequence))
        try:
            receipt = await self._uploader.upload(file)
            if sequence != self._upload_sequence:
                Log.warning(f"Discarding superseded upload of '{file.name}'", sequence=sequence)
                return None
            self._upload_progress = UPLOAD_PROGRESS_CEILING
            dataset = self._pipeline.run(
                file,
                url=receipt.url,
                sheet_name=sheet_name,
                has_headers=has_headers,
            )
        except UploadError as exc:
            if sequence == self._upload_sequence:
                self._fail_upload(file, f"Upload failed: {exc}")
            return None
        except IngestionError as exc:
            if sequence == self._upload_sequence:
                self._fail_upload(file, f"Failed to parse file: {exc}")
            return None
        finally:
            ticker.cancel()

        self._upload_progress = 100
        self._source = _UploadSource(file=file, url=receipt.url, sheet_name=sheet_name)
        self._commit_dataset(dataset)
        self._controller.mark_complete(Step.UPLOAD)
        self._controller.advance()
        self._notify("success", f"Uploaded '{file.name}'")
        return dataset

    def set_has_headers(self, has_headers: bool) -> UploadedDataset | None:
        """Re-parse the uploaded file with an explicit header flag, without re-uploading."""
        if self._source is None:
            raise RuntimeError("No file has been uploaded")
        source = self._source
        try:
            dataset = self._pipeline.run(
                source.file,
                url=source.url,
                sheet_name=source.sheet_name,
                has_headers=has_headers,
            )
        except IngestionError as exc:
            Log.error(f"Re-parsing '{source.file.name}' failed: {exc}")
            self._notify("error", f"Failed to parse file: {exc}")
            return None
        self._commit_dataset(dataset)
        return dataset

    def bind_column(self, field_key: str, column: str | None) -> None:
        self._state = wizard_state.column_bound(self._state, field_key, column)
        if field_key == "ethnicity":
            self._controller.reevaluate()

    def submit_mapping(self) -> list[str]:
        """Complete the mapping step; returns the required fields still unmapped."""
        if self._state.dataset is None:
            raise RuntimeError("No dataset has been uploaded")
        missing = missing_required_fields(self._state.column_mapping)
        if missing:
            Log.debug("Mapping incomplete", missing=missing)
            return missing
        self._controller.mark_complete(Step.MAP)
        self._controller.advance()
        return []

    def set_ethnicity_target(
        self,
        raw_value: str,
        ascvd: str | None = None,
        mesa: str | None = None,
    ) -> None:
        self._state = wizard_state.ethnicity_target_set(
            self._state, raw_value, ascvd=ascvd, mesa=mesa
        )

    def submit_ethnicity(self) -> bool:
        if not wizard_state.ethnicity_complete(self._state):
            return False
        self._controller.mark_complete(Step.ETHNICITY)
        self._controller.advance()
        return True

    def update_settings(self, **changes: Any) -> list[FieldError]:
        """Apply settings changes and return the resulting inline errors.

        Thresholds are edited with set_threshold.
        """
        if "percentile_thresholds" in changes:
            raise ValueError("Use set_threshold to change percentile thresholds")
        self._state = wizard_state.settings_updated(self._state, **changes)
        return wizard_state.settings_errors(self._state)

    def submit_settings(self) -> list[FieldError]:
        errors = wizard_state.settings_errors(self._state)
        if not errors:
            self._controller.mark_complete(Step.SETTINGS)
            self._controller.advance()
        return errors

    def set_threshold(self, field_name: str, value: int) -> list[ThresholdError]:
        if field_name not in THRESHOLD_FIELDS:
            raise ValueError(f"Unknown threshold '{field_name}'")
        self._state = wizard_state.threshold_set(self._state, field_name, value)
        return wizard_state.threshold_errors(self._state)

    def submit_thresholds(self) -> list[ThresholdError]:
        errors = wizard_state.threshold_errors(self._state)
        if not errors:
            self._controller.mark_complete(Step.THRESHOLDS)
            self._controller.advance()
        return errors

    def go_back(self) -> Step:
        return self._controller.retreat()

    def build_request(self) -> AnalysisRequest:
        """Assemble the analysis request from the current state.

        Raises:
            RuntimeError: if mapping, ethnicity, settings or thresholds block submission.
        """
        dataset = self._state.dataset
        if dataset is None or not wizard_state.can_submit(self._state):
            raise RuntimeError("Wizard is not ready to submit an analysis")
        return build_analysis_request(
            file_url=dataset.url,
            column_mapping=self._state.column_mapping,
            cholesterol_unit=self._state.settings.cholesterol_unit,
            settings=self._state.settings,
            ethnicity_mapping=wizard_state.effective_ethnicity_mapping(self._state),
        )

    async def run_analysis(self) -> AnalysisResponse | None:
        """Submit the current request, reusing a cached or in-flight response.

        Returns None when a newer request superseded this one while it was in
        flight; its response stays cached but is not published.

        Raises:
            AnalysisError: if the request fails and is still the latest one.
        """
        request = self.build_request()
        key = request.cache_key()
        self._analysis_key = key
        try:
            response = await self._cache.fetch(
                key, lambda: self._analysis_client.analyse(request)
            )
        except AnalysisError as exc:
            if key != self._analysis_key:
                Log.debug(f"Ignoring failure of superseded analysis request: {exc}")
                return None
            raise
        if key != self._analysis_key:
            Log.debug("Analysis response superseded by a newer request, not publishing")
            return None
        self._result = response
        self._controller.mark_complete(Step.RESULTS)
        Log.info(
            "Analysis completed",
            n_total=response.summary.n_total,
            n_complete=response.summary.n_complete,
        )
        return response

    def _commit_dataset(self, dataset: UploadedDataset) -> None:
        self._state = wizard_state.dataset_loaded(self._state, dataset)
        self._state = wizard_state.suggestions_applied(self._state)
        self._result = None

    async def _tick_upload_progress(self, sequence: int) -> None:
        while (
            sequence == self._upload_sequence
            and self._upload_progress < UPLOAD_PROGRESS_CEILING
        ):
            await asyncio.sleep(self._progress_interval_seconds)
            if sequence != self._upload_sequence:
                return
            self._upload_progress = min(
                self._upload_progress + UPLOAD_PROGRESS_STEP, UPLOAD_PROGRESS_CEILING
            )

    def _fail_upload(self, file: RawFile, message: str) -> None:
        Log.error(message, file_name=file.name)
        self._upload_progress = 0
        self._notify("error", message)

    def _notify(self, level: NotificationLevel, message: str) -> None:
        self._notifications.append(Notification(level=level, message=message))


def build_session(
    settings: Settings,
    uploader: BaseFileUploader | None = None,
    analysis_client: BaseAnalysisClient | None = None,
) -> WizardSession:
    """Build a WizardSession wired to the configured HTTP adapters."""
    Log.configure(settings.log_level)
    return WizardSession(
        pipeline=build_ingestion_pipeline(settings),
        uploader=uploader
        or HttpFileUploader(
            endpoint_url=settings.upload_endpoint_url,
            timeout_seconds=settings.upload_timeout_seconds,
            path_prefix=settings.upload_path_prefix,
        ),
        analysis_client=analysis_client
        or HttpAnalysisClient(
            base_url=settings.analysis_api_base_url,
            timeout_seconds=settings.analysis_timeout_seconds,
        ),
        cache=AnalysisCache(ttl_seconds=settings.analysis_cache_ttl_seconds),
        ethnicity_default=EthnicityTarget(
            ascvd=settings.default_ascvd_category,
            mesa=settings.default_mesa_category,
        ),
        progress_interval_seconds=settings.upload_progress_interval_seconds,
    )
