import json
from dataclasses import dataclass
from typing import Any

from cacs_wizard.analysis.models import AnalysisSettings
from cacs_wizard.ethnicity.canonicalizer import ethnicity_payload
from cacs_wizard.ethnicity.models import EthnicityMapping
from cacs_wizard.mapping.models import ColumnMapping


@dataclass(frozen=True)
class AnalysisRequest:
    """Body of ``POST /api/analyse``."""

    file_url: str
    column_mappings: dict[str, str]
    cholesterol_unit: str
    risk_scores: list[str]
    risk_region: str
    ethnicity_mappings: dict[str, dict[str, str]]
    percentile_thresholds: dict[str, int]
    min_scores: int

    def to_payload(self) -> dict[str, Any]:
        return {
            "file_url": self.file_url,
            "column_mappings": dict(self.column_mappings),
            "cholesterol_unit": self.cholesterol_unit,
            "settings": {
                "risk_scores": list(self.risk_scores),
                "risk_region": self.risk_region,
                "ethnicity_mappings": {
                    value: dict(target) for value, target in self.ethnicity_mappings.items()
                },
                "percentile_thresholds": dict(self.percentile_thresholds),
                "min_scores": self.min_scores,
            },
        }

    def cache_key(self) -> str:
        """Stable key for the dataset reference plus the full settings snapshot."""
        return json.dumps(self.to_payload(), sort_keys=True, separators=(",", ":"))


def build_analysis_request(
    file_url: str,
    column_mapping: ColumnMapping,
    cholesterol_unit: str,
    settings: AnalysisSettings,
    ethnicity_mapping: EthnicityMapping,
) -> AnalysisRequest:
    """Assemble the analysis request from validated wizard state.

    Callers must only invoke this once the mapping is complete, the
    thresholds are valid and at least one risk score is selected.
    """
    return AnalysisRequest(
        file_url=file_url,
        column_mappings=column_mapping.as_dict(),
        cholesterol_unit=cholesterol_unit,
        risk_scores=list(settings.risk_scores),
        risk_region=settings.risk_region,
        ethnicity_mappings=ethnicity_payload(ethnicity_mapping),
        percentile_thresholds=settings.percentile_thresholds.as_dict(),
        min_scores=settings.min_scores,
    )
