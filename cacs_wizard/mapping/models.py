from dataclasses import asdict, dataclass, fields, replace

# Select widgets use this value for "None"; it is stored as unmapped.
NONE_SENTINEL = "__none__"


@dataclass(frozen=True)
class ColumnMapping:
    """Canonical field key -> dataset column name ("" means unmapped)."""

    cacs: str = ""
    age: str = ""
    gender: str = ""
    total_cholesterol: str = ""
    hdl_cholesterol: str = ""
    systolic_bp: str = ""
    smoking_status: str = ""
    diabetes_status: str = ""
    bp_medication: str = ""
    lipid_medication: str = ""
    family_history_ihd: str = ""
    ethnicity: str = ""
    subject_id: str = ""

    @classmethod
    def keys(cls) -> tuple[str, ...]:
        return tuple(f.name for f in fields(cls))

    def get(self, key: str) -> str:
        if key not in self.keys():
            raise ValueError(f"Unknown mapping field '{key}'")
        return str(getattr(self, key))

    def bind(self, key: str, column: str | None) -> "ColumnMapping":
        """Return a copy with ``key`` bound to ``column`` (None/sentinel unbinds)."""
        if key not in self.keys():
            raise ValueError(f"Unknown mapping field '{key}'")
        value = "" if column in (None, NONE_SENTINEL) else str(column)
        return replace(self, **{key: value})

    def as_dict(self) -> dict[str, str]:
        return asdict(self)
