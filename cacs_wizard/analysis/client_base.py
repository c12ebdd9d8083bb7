from abc import ABC, abstractmethod

from cacs_wizard.analysis.models import AnalysisResponse
from cacs_wizard.analysis.request_builder import AnalysisRequest


class BaseAnalysisClient(ABC):
    """Contract for adapters calling the external scoring service."""

    @abstractmethod
    async def analyse(self, request: AnalysisRequest) -> AnalysisResponse:
        """Submit an analysis request and return the parsed response.

        Raises:
            AnalysisTransportError: if the service cannot be reached.
            AnalysisReportedFailureError: if the service reports a failure.
        """
