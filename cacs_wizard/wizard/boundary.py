from cacs_wizard.analysis.exceptions import AnalysisError
from cacs_wizard.analysis.models import AnalysisResponse
from cacs_wizard.logging.logger import Log
from cacs_wizard.wizard.session import WizardSession
from cacs_wizard.wizard.steps import Step


class AnalysisBoundary:
    """Runs the analysis and holds its failure so the user can retry or go back.

    Wizard state is never modified here; retrying re-issues the same request
    and going back returns to the thresholds step.
    """

    def __init__(self, session: WizardSession) -> None:
        self._session = session
        self._error: AnalysisError | None = None

    @property
    def error(self) -> AnalysisError | None:
        return self._error

    @property
    def has_error(self) -> bool:
        return self._error is not None

    @property
    def message(self) -> str | None:
        if self._error is None:
            return None
        return f"Analysis failed: {self._error}"

    async def run(self) -> AnalysisResponse | None:
        try:
            response = await self._session.run_analysis()
        except AnalysisError as exc:
            Log.error(f"Analysis failed: {exc}", error_type=type(exc).__name__)
            self._error = exc
            return None
        if response is None:
            # Superseded; the newer request owns the error state.
            return None
        self._error = None
        return response

    async def retry(self) -> AnalysisResponse | None:
        Log.info("Retrying analysis")
        self._error = None
        return await self.run()

    def go_back(self) -> Step:
        self._error = None
        return self._session.go_back()
