"""Validates the analysis service response body."""

from typing import Any

from cacs_wizard.analysis.exceptions import AnalysisReportedFailureError, AnalysisResponseError
from cacs_wizard.analysis.models import AnalysisResponse, AnalysisSummary, ClassificationCounts

_CLASSIFICATION_KEYS = ("resilient", "reference", "susceptible", "other")


def parse_analysis_response(data: Any) -> AnalysisResponse:
    """Build an AnalysisResponse from the decoded JSON body.

    Raises:
        AnalysisReportedFailureError: if the service reports ``success: false``
            or returns no results.
        AnalysisResponseError: if the body does not match the contract.
    """
    if not isinstance(data, dict):
        raise AnalysisResponseError("Analysis response must be an object")
    if not data.get("success"):
        raise AnalysisReportedFailureError(str(data.get("error") or "Analysis failed"))

    payload = data.get("data")
    if not isinstance(payload, dict) or payload.get("results") is None:
        raise AnalysisReportedFailureError(str(data.get("error") or "Analysis failed"))

    results = payload["results"]
    if not isinstance(results, list) or not all(isinstance(row, dict) for row in results):
        raise AnalysisResponseError("'data.results' must be a list of objects")

    plots = payload.get("plots") or {}
    if not isinstance(plots, dict):
        raise AnalysisResponseError("'data.plots' must be an object")

    return AnalysisResponse(
        results=results,
        summary=_build_summary(payload.get("summary")),
        plots=plots,
    )


def _build_summary(raw: Any) -> AnalysisSummary:
    if not isinstance(raw, dict):
        raise AnalysisResponseError("'data.summary' must be an object")
    n_total = _require_count(raw, "n_total", "summary")
    n_complete = _require_count(raw, "n_complete", "summary")
    classifications = raw.get("classifications")
    if not isinstance(classifications, dict):
        raise AnalysisResponseError("'summary.classifications' must be an object")
    counts = {
        key: _require_count(classifications, key, "summary.classifications")
        for key in _CLASSIFICATION_KEYS
    }
    return AnalysisSummary(
        n_total=n_total,
        n_complete=n_complete,
        classifications=ClassificationCounts(**counts),
    )


def _require_count(raw: dict[str, Any], key: str, where: str) -> int:
    value = raw.get(key)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise AnalysisResponseError(f"'{where}.{key}' must be a non-negative integer")
    return value
