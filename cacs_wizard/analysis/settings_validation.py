from cacs_wizard.analysis.models import (
    CHOLESTEROL_UNITS,
    ETHNICITY_RISK_SCORES,
    RISK_REGIONS,
    RISK_SCORES,
    AnalysisSettings,
    FieldError,
)

MIN_SCORES_RANGE = (1, 4)


def validate_analysis_settings(
    settings: AnalysisSettings,
    has_ethnicity_column: bool,
) -> list[FieldError]:
    """Return inline errors for the settings form; empty when it may be submitted.

    ASCVD and MESA need an ethnicity column, and a region is only checked
    when SCORE2 is selected.
    """
    errors: list[FieldError] = []

    if not settings.risk_scores:
        errors.append(FieldError("risk_scores", "Select at least one risk score"))
    unknown = [score for score in settings.risk_scores if score not in RISK_SCORES]
    if unknown:
        errors.append(FieldError("risk_scores", f"Unknown risk scores: {unknown}"))
    if not has_ethnicity_column:
        blocked = sorted(ETHNICITY_RISK_SCORES.intersection(settings.risk_scores))
        if blocked:
            errors.append(
                FieldError("risk_scores", f"{', '.join(blocked)} requires an ethnicity column")
            )

    if "score2" in settings.risk_scores and settings.risk_region not in RISK_REGIONS:
        errors.append(
            FieldError("risk_region", f"Select a SCORE2 risk region: {list(RISK_REGIONS)}")
        )

    low, high = MIN_SCORES_RANGE
    min_scores = settings.min_scores
    is_whole = isinstance(min_scores, int) and not isinstance(min_scores, bool)
    if not is_whole or not low <= min_scores <= high:
        errors.append(FieldError("min_scores", f"Must be a whole number from {low} to {high}"))

    if settings.cholesterol_unit not in CHOLESTEROL_UNITS:
        errors.append(
            FieldError("cholesterol_unit", f"Unit must be one of {list(CHOLESTEROL_UNITS)}")
        )
    return errors
