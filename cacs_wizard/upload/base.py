from abc import ABC, abstractmethod
from dataclasses import dataclass

from cacs_wizard.ingestion.models import RawFile


@dataclass(frozen=True)
class UploadReceipt:
    """Where an uploaded file can be retrieved from."""

    url: str
    path: str


class BaseFileUploader(ABC):
    """Contract for adapters that store a raw file and return a public URL."""

    @abstractmethod
    async def upload(self, file: RawFile) -> UploadReceipt:
        """Store the file.

        Raises:
            UploadTransportError: if the upload fails for any reason.
        """
