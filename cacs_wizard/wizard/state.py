"""Consolidated wizard state with pure selectors and reducers.

Every reducer returns a new WizardState; the session is the only writer.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any

from cacs_wizard.analysis.models import AnalysisSettings, FieldError
from cacs_wizard.analysis.settings_validation import validate_analysis_settings
from cacs_wizard.analysis.thresholds import ThresholdError, validate_thresholds
from cacs_wizard.ethnicity.canonicalizer import (
    extract_ethnicity_values,
    is_ethnicity_complete,
    seed_ethnicity_mapping,
    set_ethnicity_target,
)
from cacs_wizard.ethnicity.models import EthnicityMapping, EthnicityTarget
from cacs_wizard.ingestion.models import UploadedDataset
from cacs_wizard.mapping.models import ColumnMapping
from cacs_wizard.mapping.resolver import bind_column, is_mapping_complete, suggest_mapping


class MappingPhase(Enum):
    EMPTY = "empty"
    DATASET_LOADED = "dataset_loaded"
    SUGGESTIONS_APPLIED = "suggestions_applied"


@dataclass(frozen=True)
class WizardState:
    dataset: UploadedDataset | None = None
    column_mapping: ColumnMapping = field(default_factory=ColumnMapping)
    ethnicity_mapping: EthnicityMapping = field(default_factory=dict)
    settings: AnalysisSettings = field(default_factory=AnalysisSettings)
    mapping_phase: MappingPhase = MappingPhase.EMPTY
    ethnicity_default: EthnicityTarget = field(default_factory=EthnicityTarget)


# Selectors


def has_ethnicity_column(state: WizardState) -> bool:
    return bool(state.column_mapping.ethnicity)


def ethnicity_values(state: WizardState) -> list[str]:
    if state.dataset is None or not has_ethnicity_column(state):
        return []
    return extract_ethnicity_values(state.dataset.preview, state.column_mapping.ethnicity)


def effective_ethnicity_mapping(state: WizardState) -> EthnicityMapping:
    """The ethnicity mapping that is sent; empty while no ethnicity column is bound."""
    if not has_ethnicity_column(state):
        return {}
    return dict(state.ethnicity_mapping)


def mapping_complete(state: WizardState) -> bool:
    return state.dataset is not None and is_mapping_complete(state.column_mapping)


def ethnicity_complete(state: WizardState) -> bool:
    if not has_ethnicity_column(state):
        return True
    return is_ethnicity_complete(ethnicity_values(state), state.ethnicity_mapping)


def settings_errors(state: WizardState) -> list[FieldError]:
    return validate_analysis_settings(state.settings, has_ethnicity_column(state))


def threshold_errors(state: WizardState) -> list[ThresholdError]:
    return validate_thresholds(state.settings.percentile_thresholds)


def can_submit(state: WizardState) -> bool:
    return (
        mapping_complete(state)
        and ethnicity_complete(state)
        and not settings_errors(state)
        and not threshold_errors(state)
    )


# Reducers


def dataset_loaded(state: WizardState, dataset: UploadedDataset) -> WizardState:
    """Replace the dataset wholesale; mappings from the previous dataset are dropped."""
    return replace(
        state,
        dataset=dataset,
        column_mapping=ColumnMapping(),
        ethnicity_mapping={},
        mapping_phase=MappingPhase.DATASET_LOADED,
    )


def suggestions_applied(state: WizardState) -> WizardState:
    """Apply column suggestions once per dataset; a no-op in any other phase."""
    if state.mapping_phase is not MappingPhase.DATASET_LOADED or state.dataset is None:
        return state
    updated = replace(
        state,
        column_mapping=suggest_mapping(state.dataset),
        mapping_phase=MappingPhase.SUGGESTIONS_APPLIED,
    )
    return _reseed_ethnicity(updated)


def column_bound(state: WizardState, field_key: str, column: str | None) -> WizardState:
    if state.dataset is None:
        raise ValueError("Cannot bind columns before a dataset is loaded")
    mapping = bind_column(state.column_mapping, state.dataset, field_key, column)
    updated = replace(state, column_mapping=mapping)
    if field_key == "ethnicity":
        updated = _reseed_ethnicity(updated)
    return updated


def ethnicity_target_set(
    state: WizardState,
    raw_value: str,
    ascvd: str | None = None,
    mesa: str | None = None,
) -> WizardState:
    mapping = set_ethnicity_target(state.ethnicity_mapping, raw_value, ascvd=ascvd, mesa=mesa)
    return replace(state, ethnicity_mapping=mapping)


def settings_updated(state: WizardState, **changes: Any) -> WizardState:
    if "risk_scores" in changes:
        changes["risk_scores"] = tuple(changes["risk_scores"])
    return replace(state, settings=replace(state.settings, **changes))


def threshold_set(state: WizardState, field_name: str, value: int) -> WizardState:
    thresholds = replace(state.settings.percentile_thresholds, **{field_name: value})
    return settings_updated(state, percentile_thresholds=thresholds)


def _reseed_ethnicity(state: WizardState) -> WizardState:
    mapping = seed_ethnicity_mapping(
        ethnicity_values(state),
        state.ethnicity_mapping,
        default=state.ethnicity_default,
    )
    return replace(state, ethnicity_mapping=mapping)
