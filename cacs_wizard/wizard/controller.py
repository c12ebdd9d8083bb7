"""Wizard navigation: current step, completed steps and the ethnicity skip guard."""

from collections.abc import Callable

from cacs_wizard.logging.logger import Log
from cacs_wizard.wizard.steps import FIRST_STEP, LAST_STEP, STEPPER_STEPS, Step


class StepController:
    """Finite-state machine over steps 0..6.

    ``skip_ethnicity`` is evaluated on every entry to the ethnicity step. When
    it returns True the step is marked complete and the controller moves on to
    settings in the same call, so the ethnicity step is never observable as
    the current step without an ethnicity column.
    """

    def __init__(self, skip_ethnicity: Callable[[], bool]) -> None:
        self._skip_ethnicity = skip_ethnicity
        self._current = Step.LANDING
        self._completed: set[Step] = set()

    @property
    def current(self) -> Step:
        return self._current

    @property
    def completed(self) -> frozenset[Step]:
        return frozenset(self._completed)

    @property
    def progress(self) -> float:
        """Percentage of stepper steps completed, 0-100."""
        done = sum(1 for step in STEPPER_STEPS if step in self._completed)
        return done / len(STEPPER_STEPS) * 100

    def start(self) -> Step:
        self.mark_complete(Step.LANDING)
        return self._enter(FIRST_STEP)

    def advance(self) -> Step:
        return self._enter(Step(min(self._current + 1, LAST_STEP)))

    def retreat(self) -> Step:
        target = Step(max(self._current - 1, FIRST_STEP))
        if target == Step.ETHNICITY and self._skip_ethnicity():
            target = Step.MAP
        self._current = target
        return self._current

    def jump_to(self, step: int) -> Step:
        if not Step.LANDING <= step <= LAST_STEP:
            raise ValueError(
                f"Step must be between {int(Step.LANDING)} and {int(LAST_STEP)}, got {step}"
            )
        return self._enter(Step(step))

    def mark_complete(self, step: int) -> None:
        self._completed.add(Step(step))

    def is_complete(self, step: int) -> bool:
        return step in self._completed

    def is_accessible(self, step: int) -> bool:
        return step <= self._current or step in self._completed

    def reevaluate(self) -> Step:
        """Re-apply the skip guard after the ethnicity binding changed."""
        if self._current == Step.ETHNICITY:
            return self._enter(Step.ETHNICITY)
        return self._current

    def reset(self) -> None:
        self._current = FIRST_STEP
        self._completed.clear()

    def _enter(self, step: Step) -> Step:
        self._current = step
        if step == Step.ETHNICITY and self._skip_ethnicity():
            Log.debug("No ethnicity column mapped, skipping ethnicity step")
            self.mark_complete(Step.ETHNICITY)
            self._current = Step.SETTINGS
        return self._current
