import asyncio
import logging
from collections.abc import Callable
from unittest.mock import AsyncMock, MagicMock

import pytest

from cacs_wizard.analysis.cache import AnalysisCache
from cacs_wizard.analysis.exceptions import AnalysisTransportError
from cacs_wizard.analysis.models import AnalysisResponse, AnalysisSummary, ClassificationCounts
from cacs_wizard.analysis.request_builder import AnalysisRequest
from cacs_wizard.config.settings import Settings
from cacs_wizard.ingestion.ingestor import build_ingestion_pipeline
from cacs_wizard.ingestion.models import RawFile
from cacs_wizard.mapping.fields import REQUIRED_KEYS
from cacs_wizard.upload.base import UploadReceipt
from cacs_wizard.upload.exceptions import UploadTransportError
from cacs_wizard.wizard.boundary import AnalysisBoundary
from cacs_wizard.wizard.session import Notification, WizardSession, build_session
from cacs_wizard.wizard.state import MappingPhase
from cacs_wizard.wizard.steps import Step

FILE_URL = "https://cdn.example.com/uploads/abc.csv"


def _response(n_total: int = 4) -> AnalysisResponse:
    return AnalysisResponse(
        results=[],
        summary=AnalysisSummary(
            n_total=n_total,
            n_complete=n_total,
            classifications=ClassificationCounts(resilient=n_total),
        ),
    )


def _make_session(
    settings: Settings,
) -> tuple[WizardSession, AsyncMock, MagicMock]:
    """Create a WizardSession with mocked transport adapters."""
    mock_uploader = MagicMock()
    mock_uploader.upload = AsyncMock(
        return_value=UploadReceipt(url=FILE_URL, path="uploads/abc.csv")
    )
    mock_client = MagicMock()
    mock_client.analyse = AsyncMock(return_value=_response())
    session = WizardSession(
        pipeline=build_ingestion_pipeline(settings),
        uploader=mock_uploader,
        analysis_client=mock_client,
        cache=AnalysisCache(ttl_seconds=600),
        progress_interval_seconds=0,
    )
    return session, mock_uploader.upload, mock_client


def _uploaded(settings: Settings, file: RawFile) -> tuple[WizardSession, AsyncMock, MagicMock]:
    session, upload, client = _make_session(settings)
    session.start()
    asyncio.run(session.upload(file))
    return session, upload, client


def _ready_to_submit(session: WizardSession) -> None:
    assert session.submit_mapping() == []
    assert session.submit_ethnicity() is True
    assert session.submit_settings() == []
    assert session.submit_thresholds() == []


class TestUpload:
    def test_successful_upload_advances_to_mapping(
        self, settings: Settings, full_cohort_csv: RawFile
    ) -> None:
        session, upload, _client = _uploaded(settings, full_cohort_csv)

        upload.assert_awaited_once_with(full_cohort_csv)
        assert session.current_step == Step.MAP
        assert session.controller.is_complete(Step.UPLOAD)
        assert session.upload_progress == 100
        assert session.state.dataset is not None
        assert session.state.dataset.url == FILE_URL
        assert session.state.mapping_phase is MappingPhase.SUGGESTIONS_APPLIED
        assert session.notifications()[-1].level == "success"

    def test_unsupported_file_never_uploads(self, settings: Settings) -> None:
        session, upload, _client = _make_session(settings)
        session.start()

        result = asyncio.run(session.upload(RawFile(name="notes.txt", content=b"x")))

        assert result is None
        upload.assert_not_awaited()
        assert session.state.dataset is None
        assert session.notifications() == [
            Notification(
                level="error",
                message="Unsupported file format '.txt'. "
                "Please upload a CSV or Excel file (.csv, .xlsx, .xls)",
            )
        ]

    def test_drain_notifications_empties_the_queue(self, settings: Settings) -> None:
        session, _upload, _client = _make_session(settings)

        asyncio.run(session.upload(RawFile(name="notes.txt", content=b"x")))

        assert [n.level for n in session.drain_notifications()] == ["error"]
        assert session.notifications() == []

    def test_upload_failure_leaves_state_untouched(
        self, settings: Settings, full_cohort_csv: RawFile, cohort_csv: RawFile
    ) -> None:
        session, upload, _client = _uploaded(settings, full_cohort_csv)
        before = session.state
        upload.side_effect = UploadTransportError("HTTP 500")

        result = asyncio.run(session.upload(cohort_csv))

        assert result is None
        assert session.state is before
        assert session.upload_progress == 0
        assert session.notifications()[-1] == Notification("error", "Upload failed: HTTP 500")

    def test_parse_failure_after_upload(self, settings: Settings) -> None:
        session, _upload, _client = _make_session(settings)
        session.start()

        result = asyncio.run(session.upload(RawFile(name="empty.csv", content=b"cacs,age\n")))

        assert result is None
        assert session.state.dataset is None
        assert session.current_step == Step.UPLOAD
        assert session.notifications()[-1].message.startswith("Failed to parse file:")

    def test_multi_sheet_workbook_asks_for_sheet(
        self, settings: Settings, make_xlsx: Callable[..., bytes]
    ) -> None:
        session, upload, _client = _make_session(settings)
        book = RawFile(
            name="cohort.xlsx",
            content=make_xlsx({"Cohort": [["cacs", "age"], [0, 54]], "Notes": [["x"]]}),
        )

        assert asyncio.run(session.upload(book)) is None
        assert session.sheet_choices == ["Cohort", "Notes"]
        upload.assert_not_awaited()

        dataset = asyncio.run(session.upload(book, sheet_name="Cohort"))
        assert dataset is not None
        assert dataset.columns == ["cacs", "age"]
        assert session.sheet_choices == []

    def test_newer_upload_supersedes_older(
        self, settings: Settings, full_cohort_csv: RawFile, cohort_csv: RawFile
    ) -> None:
        session, upload, _client = _make_session(settings)
        release_first = asyncio.Event()

        async def slow_then_fast(file: RawFile) -> UploadReceipt:
            if file is full_cohort_csv:
                await release_first.wait()
                return UploadReceipt(url="https://cdn.example.com/old.csv", path="old.csv")
            return UploadReceipt(url="https://cdn.example.com/new.csv", path="new.csv")

        upload.side_effect = slow_then_fast

        async def run() -> tuple[object, object]:
            first = asyncio.ensure_future(session.upload(full_cohort_csv))
            await asyncio.sleep(0)
            second = await session.upload(cohort_csv)
            release_first.set()
            return await first, second

        first, second = asyncio.run(run())

        assert first is None
        assert second is not None
        assert session.state.dataset is not None
        assert session.state.dataset.url == "https://cdn.example.com/new.csv"


class TestHeaderOverride:
    def test_reparses_without_reuploading(self, settings: Settings, cohort_csv: RawFile) -> None:
        session, upload, _client = _uploaded(settings, cohort_csv)

        dataset = session.set_has_headers(False)

        assert dataset is not None
        assert dataset.columns == ["Column 1", "Column 2", "Column 3"]
        assert upload.await_count == 1
        assert session.state.column_mapping.cacs == ""
        assert session.state.mapping_phase is MappingPhase.SUGGESTIONS_APPLIED

    def test_requires_upload(self, settings: Settings) -> None:
        session, _upload, _client = _make_session(settings)
        with pytest.raises(RuntimeError):
            session.set_has_headers(True)


class TestStepSubmission:
    def test_incomplete_mapping_does_not_advance(
        self, settings: Settings, cohort_csv: RawFile
    ) -> None:
        session, _upload, _client = _uploaded(settings, cohort_csv)

        missing = session.submit_mapping()

        assert "total_cholesterol" in missing
        assert "cacs" not in missing
        assert session.current_step == Step.MAP

    def test_mapping_without_ethnicity_skips_to_settings(
        self, settings: Settings, cohort_csv: RawFile
    ) -> None:
        session, _upload, _client = _uploaded(settings, cohort_csv)
        for key in REQUIRED_KEYS:
            if not session.state.column_mapping.get(key):
                session.bind_column(key, "sex")

        assert session.submit_mapping() == []
        assert session.current_step == Step.SETTINGS
        assert session.controller.is_complete(Step.ETHNICITY)

    def test_mapping_with_ethnicity_enters_ethnicity_step(
        self, settings: Settings, full_cohort_csv: RawFile
    ) -> None:
        session, _upload, _client = _uploaded(settings, full_cohort_csv)
        assert session.submit_mapping() == []
        assert session.current_step == Step.ETHNICITY

    def test_unbinding_ethnicity_on_ethnicity_step_skips_it(
        self, settings: Settings, full_cohort_csv: RawFile
    ) -> None:
        session, _upload, _client = _uploaded(settings, full_cohort_csv)
        session.submit_mapping()

        session.bind_column("ethnicity", "__none__")

        assert session.current_step == Step.SETTINGS

    def test_settings_errors_block_progress(
        self, settings: Settings, cohort_csv: RawFile
    ) -> None:
        session, _upload, _client = _uploaded(settings, cohort_csv)
        errors = session.update_settings(risk_scores=["ascvd"])
        assert [error.message for error in errors] == ["ascvd requires an ethnicity column"]
        session.controller.jump_to(Step.SETTINGS)
        assert session.submit_settings() == errors
        assert session.current_step == Step.SETTINGS

    def test_update_settings_rejects_thresholds(self, settings: Settings) -> None:
        session, _upload, _client = _make_session(settings)
        with pytest.raises(ValueError):
            session.update_settings(percentile_thresholds=None)

    def test_invalid_threshold_blocks_progress(
        self, settings: Settings, full_cohort_csv: RawFile
    ) -> None:
        session, _upload, _client = _uploaded(settings, full_cohort_csv)
        session.controller.jump_to(Step.THRESHOLDS)

        errors = session.set_threshold("reference_low", 10)

        assert [error.field for error in errors] == ["reference_low"]
        assert session.submit_thresholds() == errors
        assert session.current_step == Step.THRESHOLDS

    def test_unknown_threshold_rejected(self, settings: Settings) -> None:
        session, _upload, _client = _make_session(settings)
        with pytest.raises(ValueError):
            session.set_threshold("extreme", 99)

    def test_go_back(self, settings: Settings, full_cohort_csv: RawFile) -> None:
        session, _upload, _client = _uploaded(settings, full_cohort_csv)
        assert session.go_back() == Step.UPLOAD


class TestAnalysis:
    def test_build_request_requires_complete_state(
        self, settings: Settings, cohort_csv: RawFile
    ) -> None:
        session, _upload, _client = _uploaded(settings, cohort_csv)
        with pytest.raises(RuntimeError):
            session.build_request()

    def test_run_analysis_publishes_result(
        self, settings: Settings, full_cohort_csv: RawFile
    ) -> None:
        session, _upload, client = _uploaded(settings, full_cohort_csv)
        _ready_to_submit(session)

        response = asyncio.run(session.run_analysis())

        assert session.result is response
        assert session.current_step == Step.RESULTS
        assert session.controller.is_complete(Step.RESULTS)
        request = client.analyse.await_args.args[0]
        assert request.file_url == FILE_URL
        assert set(request.ethnicity_mappings) == {"White", "Chinese"}

    def test_identical_request_served_from_cache(
        self, settings: Settings, full_cohort_csv: RawFile
    ) -> None:
        session, _upload, client = _uploaded(settings, full_cohort_csv)
        _ready_to_submit(session)

        asyncio.run(session.run_analysis())
        asyncio.run(session.run_analysis())

        assert client.analyse.await_count == 1

    def test_changed_settings_bypass_cache(
        self, settings: Settings, full_cohort_csv: RawFile
    ) -> None:
        session, _upload, client = _uploaded(settings, full_cohort_csv)
        _ready_to_submit(session)

        asyncio.run(session.run_analysis())
        session.set_threshold("susceptible", 90)
        asyncio.run(session.run_analysis())

        assert client.analyse.await_count == 2


class TestAnalysisBoundary:
    def test_failure_is_captured(self, settings: Settings, full_cohort_csv: RawFile) -> None:
        session, _upload, client = _uploaded(settings, full_cohort_csv)
        _ready_to_submit(session)
        client.analyse.side_effect = AnalysisTransportError("network error")
        boundary = AnalysisBoundary(session)

        assert asyncio.run(boundary.run()) is None
        assert boundary.has_error is True
        assert boundary.message == "Analysis failed: network error"
        assert session.result is None

    def test_retry_reissues_request(self, settings: Settings, full_cohort_csv: RawFile) -> None:
        session, _upload, client = _uploaded(settings, full_cohort_csv)
        _ready_to_submit(session)
        client.analyse.side_effect = [AnalysisTransportError("down"), _response(9)]
        boundary = AnalysisBoundary(session)

        asyncio.run(boundary.run())
        response = asyncio.run(boundary.retry())

        assert response is not None
        assert response.summary.n_total == 9
        assert boundary.error is None
        assert client.analyse.await_count == 2

    def test_go_back_keeps_state(self, settings: Settings, full_cohort_csv: RawFile) -> None:
        session, _upload, client = _uploaded(settings, full_cohort_csv)
        _ready_to_submit(session)
        client.analyse.side_effect = AnalysisTransportError("down")
        boundary = AnalysisBoundary(session)
        asyncio.run(boundary.run())
        state_before = session.state

        assert boundary.go_back() == Step.THRESHOLDS
        assert boundary.error is None
        assert session.state is state_before


class TestBuildSession:
    def test_uses_configured_ethnicity_defaults(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DEFAULT_ASCVD_CATEGORY", "white")
        session = build_session(Settings(_env_file=None))
        assert session.state.ethnicity_default.ascvd == "white"
        assert session.current_step == Step.LANDING

    def test_follows_configured_log_level(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LOG_LEVEL", "DEBUG")

        build_session(Settings(_env_file=None))

        assert logging.getLogger("cacs_wizard").level == logging.DEBUG


def _gated_client(
    client: MagicMock, release: asyncio.Event, stale_outcome: AnalysisResponse | Exception
) -> None:
    """Hold the susceptible=80 request until released; answer any other at once."""

    async def analyse(request: AnalysisRequest) -> AnalysisResponse:
        if request.percentile_thresholds["susceptible"] == 80:
            await release.wait()
            if isinstance(stale_outcome, Exception):
                raise stale_outcome
            return stale_outcome
        return _response(9)

    client.analyse = AsyncMock(side_effect=analyse)


async def _overlapping_runs(
    session: WizardSession, boundary: AnalysisBoundary, release: asyncio.Event
) -> tuple[AnalysisResponse | None, AnalysisResponse | None]:
    stale = asyncio.ensure_future(boundary.run())
    await asyncio.sleep(0)
    session.set_threshold("susceptible", 90)
    latest = await boundary.run()
    release.set()
    return await stale, latest


class TestOverlappingAnalyses:
    def test_superseded_failure_is_not_surfaced(
        self, settings: Settings, full_cohort_csv: RawFile
    ) -> None:
        session, _upload, client = _uploaded(settings, full_cohort_csv)
        _ready_to_submit(session)
        release = asyncio.Event()
        _gated_client(client, release, AnalysisTransportError("old request failed"))
        boundary = AnalysisBoundary(session)

        stale, latest = asyncio.run(_overlapping_runs(session, boundary, release))

        assert stale is None
        assert latest is not None
        assert session.result is latest
        assert session.result.summary.n_total == 9
        assert boundary.has_error is False
        assert boundary.error is None

    def test_superseded_response_is_cached_not_published(
        self, settings: Settings, full_cohort_csv: RawFile
    ) -> None:
        session, _upload, client = _uploaded(settings, full_cohort_csv)
        _ready_to_submit(session)
        release = asyncio.Event()
        _gated_client(client, release, _response(4))
        boundary = AnalysisBoundary(session)

        stale, latest = asyncio.run(_overlapping_runs(session, boundary, release))

        assert stale is None
        assert session.result is latest
        assert session.result.summary.n_total == 9
        assert boundary.error is None

        session.set_threshold("susceptible", 80)
        restored = asyncio.run(session.run_analysis())

        assert restored is not None
        assert restored.summary.n_total == 4
        assert client.analyse.await_count == 2


class TestThresholdPreview:
    def test_bands_and_shares_follow_thresholds(
        self, settings: Settings, full_cohort_csv: RawFile
    ) -> None:
        session, _upload, _client = _uploaded(settings, full_cohort_csv)

        session.set_threshold("susceptible", 90)

        assert session.threshold_bands[-1].width == 10
        assert session.classification_shares["susceptible"] == 10
        assert sum(session.classification_shares.values()) == 100
