from dataclasses import dataclass, field
from typing import Any

RISK_SCORES: tuple[str, ...] = ("frs", "ascvd", "mesa", "score2")
ETHNICITY_RISK_SCORES = frozenset({"ascvd", "mesa"})
RISK_REGIONS: tuple[str, ...] = ("Low", "Moderate", "High", "Very High")
CHOLESTEROL_UNITS: tuple[str, ...] = ("mmol/L", "mg/dL")

THRESHOLD_FIELDS: tuple[str, ...] = ("resilient", "reference_low", "reference_high", "susceptible")


@dataclass(frozen=True)
class FieldError:
    """Inline validation message for one form field."""

    field: str
    message: str


@dataclass(frozen=True)
class PercentileThresholds:
    resilient: int = 20
    reference_low: int = 40
    reference_high: int = 60
    susceptible: int = 80

    def as_dict(self) -> dict[str, int]:
        return {name: getattr(self, name) for name in THRESHOLD_FIELDS}


@dataclass(frozen=True)
class AnalysisSettings:
    """User-selected scoring parameters."""

    risk_scores: tuple[str, ...] = ("frs",)
    risk_region: str = "Low"
    cholesterol_unit: str = "mmol/L"
    min_scores: int = 1
    percentile_thresholds: PercentileThresholds = field(default_factory=PercentileThresholds)


@dataclass(frozen=True)
class ClassificationCounts:
    resilient: int = 0
    reference: int = 0
    susceptible: int = 0
    other: int = 0


@dataclass(frozen=True)
class AnalysisSummary:
    n_total: int
    n_complete: int
    classifications: ClassificationCounts


@dataclass(frozen=True)
class AnalysisResponse:
    """Successful response of the external scoring service."""

    results: list[dict[str, Any]]
    summary: AnalysisSummary
    plots: dict[str, Any] = field(default_factory=dict)
