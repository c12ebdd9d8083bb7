import httpx

from cacs_wizard.analysis.client_base import BaseAnalysisClient
from cacs_wizard.analysis.exceptions import AnalysisResponseError, AnalysisTransportError
from cacs_wizard.analysis.models import AnalysisResponse
from cacs_wizard.analysis.request_builder import AnalysisRequest
from cacs_wizard.analysis.response import parse_analysis_response
from cacs_wizard.logging.logger import Log

ANALYSE_PATH = "/api/analyse"


class HttpAnalysisClient(BaseAnalysisClient):
    """Analysis client posting JSON to the scoring service over httpx."""

    def __init__(
        self,
        *,
        base_url: str,
        timeout_seconds: int,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._transport = transport

    async def analyse(self, request: AnalysisRequest) -> AnalysisResponse:
        Log.info(f"Submitting analysis for {request.file_url}", risk_scores=request.risk_scores)
        try:
            async with httpx.AsyncClient(
                base_url=self._base_url,
                timeout=self._timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(ANALYSE_PATH, json=request.to_payload())
                response.raise_for_status()
        except (httpx.ConnectError, httpx.TimeoutException) as exc:
            raise AnalysisTransportError(f"Analysis service network error: {exc}") from exc
        except httpx.HTTPStatusError as exc:
            raise AnalysisTransportError(
                f"Analysis service API error: HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise AnalysisTransportError(f"Analysis service request failed: {exc}") from exc

        try:
            body = response.json()
        except ValueError as exc:
            raise AnalysisResponseError(f"Invalid JSON response: {exc}") from exc
        return parse_analysis_response(body)
