from enum import IntEnum


class Step(IntEnum):
    LANDING = 0
    UPLOAD = 1
    MAP = 2
    ETHNICITY = 3
    SETTINGS = 4
    THRESHOLDS = 5
    RESULTS = 6


FIRST_STEP = Step.UPLOAD
LAST_STEP = Step.RESULTS

# Steps shown in the stepper; the landing page is not one of them.
STEPPER_STEPS: tuple[Step, ...] = tuple(step for step in Step if step >= FIRST_STEP)

STEP_LABELS: dict[Step, str] = {
    Step.UPLOAD: "Upload Data",
    Step.MAP: "Map Columns",
    Step.ETHNICITY: "Map Ethnicities",
    Step.SETTINGS: "Configure Settings",
    Step.THRESHOLDS: "Set Thresholds",
    Step.RESULTS: "View Results",
}
