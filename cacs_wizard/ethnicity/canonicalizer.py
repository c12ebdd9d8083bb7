"""Maps raw ethnicity strings onto the ASCVD and MESA category sets."""

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import replace

from cacs_wizard.ethnicity.models import (
    ASCVD_CATEGORIES,
    MESA_CATEGORIES,
    EthnicityMapping,
    EthnicityTarget,
)
from cacs_wizard.ingestion.models import CellValue


def extract_ethnicity_values(
    preview: Iterable[Mapping[str, CellValue]],
    column: str,
) -> list[str]:
    """Distinct trimmed non-empty values of ``column``, in first-seen order."""
    values: list[str] = []
    seen: set[str] = set()
    for row in preview:
        raw = row.get(column)
        if raw is None:
            continue
        value = str(raw).strip()
        if value and value not in seen:
            seen.add(value)
            values.append(value)
    return values


def seed_ethnicity_mapping(
    values: Sequence[str],
    existing: EthnicityMapping,
    default: EthnicityTarget | None = None,
) -> EthnicityMapping:
    """Give every observed value an entry, keeping entries the user already set.

    Values that are no longer observed are dropped.
    """
    fallback = default or EthnicityTarget()
    return {value: existing.get(value, fallback) for value in values}


def set_ethnicity_target(
    mapping: EthnicityMapping,
    raw_value: str,
    ascvd: str | None = None,
    mesa: str | None = None,
) -> EthnicityMapping:
    """Return a copy of ``mapping`` with one value's categories replaced.

    Raises:
        ValueError: if the raw value is not mapped or a category is unknown.
    """
    if raw_value not in mapping:
        raise ValueError(f"Unknown ethnicity value '{raw_value}'")
    if ascvd is not None and ascvd not in ASCVD_CATEGORIES:
        raise ValueError(f"ASCVD category must be one of {list(ASCVD_CATEGORIES)}, got {ascvd!r}")
    if mesa is not None and mesa not in MESA_CATEGORIES:
        raise ValueError(f"MESA category must be one of {list(MESA_CATEGORIES)}, got {mesa!r}")

    target = mapping[raw_value]
    if ascvd is not None:
        target = replace(target, ascvd=ascvd)
    if mesa is not None:
        target = replace(target, mesa=mesa)
    return {**mapping, raw_value: target}


def is_ethnicity_complete(values: Sequence[str], mapping: EthnicityMapping) -> bool:
    return all(value in mapping and mapping[value].is_complete for value in values)


def ethnicity_payload(mapping: EthnicityMapping) -> dict[str, dict[str, str]]:
    return {value: target.as_dict() for value, target in mapping.items()}
