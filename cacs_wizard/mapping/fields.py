from dataclasses import dataclass


@dataclass(frozen=True)
class FieldSpec:
    """A canonical analysis field a dataset column can be mapped to."""

    key: str
    label: str
    description: str
    required: bool
    keywords: tuple[str, ...] = ()


REQUIRED_FIELDS: tuple[FieldSpec, ...] = (
    FieldSpec("cacs", "CACS Score", "Coronary Artery Calcium Score", True,
              ("cacs", "cac", "calcium", "score")),
    FieldSpec("age", "Age", "Age in years", True, ("age", "years")),
    FieldSpec("gender", "Gender", "Male/Female or 0/1", True,
              ("gender", "sex", "male", "female")),
    FieldSpec("total_cholesterol", "Total Cholesterol", "Total cholesterol level", True,
              ("total_chol", "tc", "cholesterol", "total_cholesterol")),
    FieldSpec("hdl_cholesterol", "HDL Cholesterol", "HDL cholesterol level", True,
              ("hdl", "hdl_chol", "hdl_cholesterol")),
    FieldSpec("systolic_bp", "Systolic BP", "Systolic blood pressure", True,
              ("sbp", "systolic", "sys_bp", "systolic_bp")),
    FieldSpec("smoking_status", "Smoking Status", "Current smoking status (0/1)", True,
              ("smoking", "smoker", "smoke")),
    FieldSpec("diabetes_status", "Diabetes Status", "Diabetes diagnosis (0/1)", True,
              ("diabetes", "dm", "diabetic")),
    FieldSpec("bp_medication", "BP Medication", "Blood pressure medication (0/1)", True,
              ("bp_med", "bp_medication", "antihypertensive")),
)

OPTIONAL_FIELDS: tuple[FieldSpec, ...] = (
    FieldSpec("lipid_medication", "Lipid Medication", "Lipid-lowering medication (0/1)", False,
              ("lipid_med", "lipid", "statin")),
    FieldSpec("family_history_ihd", "Family History IHD",
              "Family history of heart disease (0/1)", False,
              ("family_history", "fhx", "family")),
    FieldSpec("ethnicity", "Ethnicity", "Ethnic background", False,
              ("ethnicity", "ethnic", "race")),
    FieldSpec("subject_id", "Subject ID", "Unique subject identifier", False,
              ("subject_id", "subject", "patient_id", "participant")),
)

ALL_FIELDS: tuple[FieldSpec, ...] = REQUIRED_FIELDS + OPTIONAL_FIELDS
FIELDS_BY_KEY: dict[str, FieldSpec] = {spec.key: spec for spec in ALL_FIELDS}
REQUIRED_KEYS: tuple[str, ...] = tuple(spec.key for spec in REQUIRED_FIELDS)
