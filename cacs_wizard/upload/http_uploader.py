import uuid

import httpx

from cacs_wizard.ingestion.models import RawFile
from cacs_wizard.logging.logger import Log
from cacs_wizard.upload.base import BaseFileUploader, UploadReceipt
from cacs_wizard.upload.exceptions import UploadTransportError


def object_path(prefix: str, file: RawFile) -> str:
    """Build a collision-free storage path: {prefix}/{uuid}{extension}"""
    return f"{prefix.strip('/')}/{uuid.uuid4().hex}{file.extension}"


class HttpFileUploader(BaseFileUploader):
    """Uploads files as multipart form data to the storage endpoint.

    The endpoint answers with ``{"url": ..., "path": ...}``.
    """

    def __init__(
        self,
        *,
        endpoint_url: str,
        timeout_seconds: int,
        path_prefix: str = "uploads",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._endpoint_url = endpoint_url
        self._timeout_seconds = timeout_seconds
        self._path_prefix = path_prefix
        self._transport = transport

    async def upload(self, file: RawFile) -> UploadReceipt:
        path = object_path(self._path_prefix, file)
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    self._endpoint_url,
                    data={"path": path},
                    files={"file": (file.name, file.content)},
                )
                response.raise_for_status()
                body = response.json()
        except (httpx.ConnectError, httpx.TimeoutException) as exc:
            raise UploadTransportError(f"Upload network error: {exc}") from exc
        except httpx.HTTPStatusError as exc:
            raise UploadTransportError(
                f"Upload failed: HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise UploadTransportError(f"Upload failed: {exc}") from exc
        except ValueError as exc:
            raise UploadTransportError(f"Upload endpoint returned invalid JSON: {exc}") from exc

        url = body.get("url") if isinstance(body, dict) else None
        if not url or not isinstance(url, str):
            raise UploadTransportError("Upload endpoint did not return a file URL")
        Log.info(f"Uploaded '{file.name}'", size_bytes=file.size, path=path)
        return UploadReceipt(url=url, path=str(body.get("path") or path))
