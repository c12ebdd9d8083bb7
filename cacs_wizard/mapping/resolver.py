"""Column mapping suggestions and completion status."""

from collections.abc import Sequence
from typing import Literal

from cacs_wizard.ingestion.models import UploadedDataset
from cacs_wizard.mapping.fields import ALL_FIELDS, FIELDS_BY_KEY, REQUIRED_KEYS
from cacs_wizard.mapping.models import ColumnMapping

FieldStatus = Literal["mapped", "unmapped"]


def suggest_column(field_key: str, columns: Sequence[str]) -> str | None:
    """Return the first column (in dataset order) containing any field keyword.

    Matching is a case-insensitive substring test.
    """
    spec = FIELDS_BY_KEY.get(field_key)
    if spec is None:
        raise ValueError(f"Unknown mapping field '{field_key}'")
    keywords = [keyword.lower() for keyword in spec.keywords]
    for column in columns:
        lowered = column.lower()
        if any(keyword in lowered for keyword in keywords):
            return column
    return None


def suggest_mapping(dataset: UploadedDataset) -> ColumnMapping:
    """Build a suggested mapping for every canonical field.

    Headerless datasets only have synthesized ``Column N`` names, so they get
    an empty mapping.
    """
    mapping = ColumnMapping()
    if not dataset.has_headers:
        return mapping
    for spec in ALL_FIELDS:
        suggested = suggest_column(spec.key, dataset.columns)
        if suggested is not None:
            mapping = mapping.bind(spec.key, suggested)
    return mapping


def field_status(mapping: ColumnMapping, field_key: str) -> FieldStatus:
    return "mapped" if mapping.get(field_key) else "unmapped"


def missing_required_fields(mapping: ColumnMapping) -> list[str]:
    return [key for key in REQUIRED_KEYS if field_status(mapping, key) == "unmapped"]


def is_mapping_complete(mapping: ColumnMapping) -> bool:
    return not missing_required_fields(mapping)


def bind_column(
    mapping: ColumnMapping,
    dataset: UploadedDataset,
    field_key: str,
    column: str | None,
) -> ColumnMapping:
    """Bind a field to one of the dataset's columns.

    Raises:
        ValueError: if the field key or the column name is unknown.
    """
    updated = mapping.bind(field_key, column)
    bound = updated.get(field_key)
    if bound and bound not in dataset.columns:
        raise ValueError(f"Column '{bound}' is not in dataset '{dataset.name}'")
    return updated
