class UploadError(Exception):
    """Base exception for file upload failures."""


class UploadTransportError(UploadError):
    """Raised when the upload endpoint cannot be reached or rejects the file."""
