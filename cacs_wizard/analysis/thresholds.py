"""Percentile threshold validation and band derivation.

The four cut points must satisfy
``0 <= resilient < reference_low < reference_high < susceptible <= 100``.
"""

from dataclasses import dataclass

from cacs_wizard.analysis.models import THRESHOLD_FIELDS, FieldError, PercentileThresholds

ThresholdError = FieldError


@dataclass(frozen=True)
class Band:
    label: str
    start: int
    width: int


def validate_thresholds(thresholds: PercentileThresholds) -> list[ThresholdError]:
    """Report every violated sub-condition as its own field-level error."""
    errors: list[ThresholdError] = []
    values = thresholds.as_dict()
    comparable: dict[str, bool] = {}
    for name in THRESHOLD_FIELDS:
        value = values[name]
        comparable[name] = isinstance(value, int) and not isinstance(value, bool)
        if not comparable[name]:
            errors.append(ThresholdError(name, "Must be a whole number"))
        elif not 0 <= value <= 100:
            errors.append(ThresholdError(name, "Must be between 0 and 100"))

    ordering = (
        ("resilient", "reference_low", "Must be greater than resilient threshold"),
        ("reference_low", "reference_high", "Must be greater than reference low threshold"),
        ("reference_high", "susceptible", "Must be greater than reference high threshold"),
    )
    for lower, upper, message in ordering:
        if comparable[lower] and comparable[upper] and not values[lower] < values[upper]:
            errors.append(ThresholdError(upper, message))
    return errors


def threshold_bands(thresholds: PercentileThresholds) -> list[Band]:
    """Five contiguous bands over 0-100, derived only from the cut points.

    Only meaningful once validate_thresholds reports no errors; out-of-order
    cut points give negative widths.
    """
    t = thresholds
    return [
        Band("Resilient", 0, t.resilient),
        Band("Other", t.resilient, t.reference_low - t.resilient),
        Band("Reference", t.reference_low, t.reference_high - t.reference_low),
        Band("Other", t.reference_high, t.susceptible - t.reference_high),
        Band("Susceptible", t.susceptible, 100 - t.susceptible),
    ]


def classification_shares(thresholds: PercentileThresholds) -> dict[str, int]:
    """Percentage of the cohort expected in each classification.

    Assumes valid thresholds, as threshold_bands does.
    """
    t = thresholds
    return {
        "resilient": t.resilient,
        "reference": t.reference_high - t.reference_low,
        "other": (t.reference_low - t.resilient) + (t.susceptible - t.reference_high),
        "susceptible": 100 - t.susceptible,
    }

