"""HTTP client for the remote upload store."""

import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from chunkpilot.backends.base import UploadBackend
from chunkpilot.models.upload import SessionView
from chunkpilot.upload.exceptions import (
    BackendError,
    ChunkTransmissionError,
    CompletionError,
    InitializationError,
    OracleQueryError,
)

logger = logging.getLogger(__name__)


def _status_code(error: Exception) -> Optional[int]:
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    return None


class HttpUploadBackend(UploadBackend):
    """Upload backend speaking the store's REST API.

    Connection failures and timeouts are retried with exponential backoff;
    HTTP error responses are not. Whatever still fails is mapped to the
    domain error of the operation.
    """

    def __init__(
        self,
        base_url: str,
        download_base_url: Optional[str] = None,
        timeout: float = 30,
        chunk_timeout: float = 600,
        max_attempts: int = 3,
        retry_min_seconds: float = 1.0,
        retry_max_seconds: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """Initialize the HTTP backend.

        Args:
            base_url: Base URL of the upload store API
            download_base_url: Base URL for download links (defaults to base_url)
            timeout: Timeout in seconds for control calls
            chunk_timeout: Timeout in seconds for a single chunk upload
            max_attempts: Attempts per call on transport failures
            retry_min_seconds: Minimum backoff between attempts
            retry_max_seconds: Maximum backoff between attempts
            client: Pre-configured client; created and owned here if omitted
        """
        self.base_url = base_url.rstrip("/")
        self.download_base_url = (download_base_url or base_url).rstrip("/")
        self.chunk_timeout = chunk_timeout
        self.max_attempts = max_attempts
        self.retry_min_seconds = retry_min_seconds
        self.retry_max_seconds = retry_max_seconds
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Send a request, retrying transport failures."""
        url = f"{self.base_url}{path}"
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(
                multiplier=1, min=self.retry_min_seconds, max=self.retry_max_seconds
            ),
            retry=retry_if_exception_type(httpx.TransportError),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        response = None
        async for attempt in retrying:
            with attempt:
                response = await self._client.request(method, url, **kwargs)
                response.raise_for_status()
        return response

    async def init_session(self, file_name: str, total_size: int) -> str:
        try:
            response = await self._request(
                "POST",
                "/upload/init",
                params={"fileName": file_name, "totalSize": total_size},
                json={},
            )
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(
                "Upload session initialization failed",
                extra={"file_name": file_name, "total_size": total_size, "error": str(e),
                       "status_code": _status_code(e)},
            )
            raise InitializationError(f"Failed to initialize upload session for {file_name}: {e}") from e

        session_id = (data.get("uploadId") or data.get("id")) if isinstance(data, dict) else None
        if not session_id:
            raise InitializationError(f"Backend returned no session id for {file_name}: {data!r}")

        logger.info(
            "Upload session initialized",
            extra={"session_id": session_id, "file_name": file_name, "total_size": total_size},
        )
        return str(session_id)

    async def get_uploaded_chunks(self, session_id: str) -> set[int]:
        try:
            response = await self._request("GET", f"/upload/{quote(session_id)}/uploadedChunks")
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(
                "Uploaded chunk query failed",
                extra={"session_id": session_id, "error": str(e), "status_code": _status_code(e)},
            )
            raise OracleQueryError(f"Failed to query uploaded chunks for {session_id}: {e}") from e

        if not isinstance(data, list) or not all(
            isinstance(i, int) and not isinstance(i, bool) and i >= 0 for i in data
        ):
            raise OracleQueryError(f"Malformed uploaded chunk list for {session_id}: {data!r}")
        return set(data)

    async def put_chunk(self, session_id: str, index: int, data: bytes) -> None:
        try:
            await self._request(
                "PATCH",
                f"/upload/{quote(session_id)}/chunk",
                data={"chunkIndex": str(index)},
                files={"chunk": (f"chunk-{index}", data, "application/octet-stream")},
                timeout=self.chunk_timeout,
            )
        except httpx.HTTPError as e:
            logger.error(
                "Chunk upload failed",
                extra={"session_id": session_id, "chunk_index": index, "size_bytes": len(data),
                       "error": str(e), "status_code": _status_code(e)},
            )
            raise ChunkTransmissionError(
                f"Failed to upload chunk {index} of {session_id}: {e}", index=index
            ) from e

        logger.debug(
            "Chunk uploaded",
            extra={"session_id": session_id, "chunk_index": index, "size_bytes": len(data)},
        )

    async def complete_session(self, session_id: str) -> None:
        try:
            await self._request("POST", f"/upload/{quote(session_id)}/complete", json={})
        except httpx.HTTPError as e:
            logger.error(
                "Upload completion failed",
                extra={"session_id": session_id, "error": str(e), "status_code": _status_code(e)},
            )
            raise CompletionError(f"Failed to complete upload session {session_id}: {e}") from e

        logger.info("Upload session completed", extra={"session_id": session_id})

    async def _list_sessions(self, path: str) -> list[SessionView]:
        try:
            response = await self._request("GET", path)
            data = response.json()
            if not isinstance(data, list):
                raise ValueError(f"expected a list, got {type(data).__name__}")
            return [SessionView.model_validate(item) for item in data]
        except (httpx.HTTPError, ValueError, ValidationError) as e:
            logger.warning(
                "Session listing failed",
                extra={"path": path, "error": str(e), "status_code": _status_code(e)},
            )
            raise BackendError(f"Failed to list sessions from {path}: {e}") from e

    async def list_finished_sessions(self) -> list[SessionView]:
        return await self._list_sessions("/upload/finished")

    async def list_unfinished_sessions(self) -> list[SessionView]:
        return await self._list_sessions("/upload/unfinished")

    def download_url(self, session_id: str) -> str:
        return f"{self.download_base_url}/download/{quote(session_id)}"

    def download_zip_url(self, session_id: str) -> str:
        return f"{self.download_base_url}/download/{quote(session_id)}/zip"

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
