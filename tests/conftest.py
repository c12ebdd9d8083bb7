import io
import logging
from collections.abc import Callable, Iterator, Sequence

import pytest
from openpyxl import Workbook

from cacs_wizard.config.settings import Settings
from cacs_wizard.ingestion.models import RawFile

WorkbookFactory = Callable[[dict[str, Sequence[Sequence[object]]]], bytes]


@pytest.fixture()
def make_xlsx() -> WorkbookFactory:
    """Build an .xlsx workbook from ``{sheet_name: rows}``, sheets in insertion order."""

    def _make(sheets: dict[str, Sequence[Sequence[object]]]) -> bytes:
        workbook = Workbook()
        workbook.remove(workbook.active)
        for sheet_name, rows in sheets.items():
            sheet = workbook.create_sheet(title=sheet_name)
            for row in rows:
                sheet.append(list(row))
        buf = io.BytesIO()
        workbook.save(buf)
        return buf.getvalue()

    return _make


@pytest.fixture()
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest.fixture()
def cohort_csv() -> RawFile:
    """Three columns, five rows, clear header row."""
    content = (
        "patient_cacs,age_years,sex\n"
        "0,54,male\n"
        "12,61,female\n"
        "0,47,female\n"
        "150,70,male\n"
        "3,58,male\n"
    ).encode("utf-8")
    return RawFile(name="cohort.csv", content=content)


@pytest.fixture()
def full_cohort_csv() -> RawFile:
    """Every required field plus an ethnicity column."""
    content = (
        "subject_id,cacs,age,gender,total_chol,hdl,sbp,smoker,diabetes,bp_med,ethnicity\n"
        "S1,0,54,M,5.2,1.3,128,0,0,0,White\n"
        "S2,12,61,F,6.1,1.1,141,1,0,1,Chinese\n"
        "S3,0,47,F,4.8,1.6,119,0,0,0,White\n"
        "S4,150,70,M,5.9,0.9,152,0,1,1,Chinese\n"
    ).encode("utf-8")
    return RawFile(name="full_cohort.csv", content=content)


@pytest.fixture(autouse=True)
def restore_wizard_logger() -> Iterator[None]:
    """Undo handlers and level set by Log.configure during a test."""
    logger = logging.getLogger("cacs_wizard")
    saved_handlers = list(logger.handlers)
    saved_level = logger.level
    yield
    logger.handlers[:] = saved_handlers
    logger.setLevel(saved_level)
