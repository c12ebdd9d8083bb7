class AnalysisError(Exception):
    """Base exception for failures of the external analysis call."""


class AnalysisTransportError(AnalysisError):
    """Raised when the analysis service cannot be reached or answers with an HTTP error."""


class AnalysisReportedFailureError(AnalysisError):
    """Raised when the service answers with ``success: false`` or without results."""


class AnalysisResponseError(AnalysisError):
    """Raised when a successful response body does not match the contract."""
